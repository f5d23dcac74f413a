"""Record selection — decide which DNS records a run must look at."""

import logging
from dataclasses import dataclass, field

from cfddns.core.cloudflare_client import CloudflareAPIError, CloudflareClient
from cfddns.core.models import Candidate, DomainMode, RunResult
from cfddns.core.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Update candidates, in processing order, plus selection-time failures."""

    candidates: list[Candidate] = field(default_factory=list)
    result: RunResult = field(default_factory=RunResult)


class RecordSelector:
    """Builds the candidate list for the configured ``DomainMode``."""

    def __init__(self, cf: CloudflareClient, token: str) -> None:
        self._cf = cf
        self._token = token

    def select(self, settings: Settings) -> Selection:
        if settings.domain_mode is DomainMode.SINGLE_TARGET:
            return self.single_target(settings.domain, settings.target_record_name)
        if settings.domain_mode is DomainMode.EXPLICIT_LIST:
            return self.explicit_list(settings)
        return self.all_zones()

    # ------------------------------------------------------------------
    # SINGLE_TARGET
    # ------------------------------------------------------------------

    def single_target(self, domain: str, record_name: str) -> Selection:
        """All A records named *record_name* in the zone *domain*.

        A missing zone or an empty record set ends selection early; the
        run goes on to report it as a failure.
        """
        selection = Selection()
        logger.info("Processing single target %s", record_name)

        try:
            zone = self._cf.find_zone(self._token, domain)
        except CloudflareAPIError as exc:
            selection.result.add_failure(
                "ZONE_FETCH", f"Failed to retrieve zone for {domain}: {exc}", count_record=False,
            )
            return selection
        if zone is None:
            selection.result.add_failure(
                "ZONE_FETCH", f"Zone not found for domain {domain}", count_record=False,
            )
            return selection

        try:
            records = self._cf.list_a_records(self._token, zone["id"], name=record_name)
        except CloudflareAPIError as exc:
            selection.result.add_failure(
                "RECORD_FETCH", f"Failed to retrieve records for {record_name}: {exc}",
                count_record=False,
            )
            return selection
        if not records:
            selection.result.add_failure(
                "RECORD_FETCH", f"No A records found for: {record_name}", count_record=False,
            )
            return selection

        logger.info("Found %d A record(s) for %s", len(records), record_name)
        self._add_listed(selection, zone["id"], zone["name"], records)
        return selection

    # ------------------------------------------------------------------
    # EXPLICIT_LIST
    # ------------------------------------------------------------------

    def explicit_list(self, settings: Settings) -> Selection:
        """The configured records, verbatim.  Incomplete entries count as failed."""
        selection = Selection()
        entries = settings.selected_records
        logger.info("Processing explicit list with %d selected record(s)", len(entries))

        for index, entry in enumerate(entries, start=1):
            if not entry.is_complete:
                logger.warning("Invalid record entry [%d/%d]: '%s'", index, len(entries), entry)
                selection.result.add_failure("INVALID_RECORD", f"Incomplete record entry '{entry}'")
                continue
            logger.debug("Record [%d/%d]: %s", index, len(entries), entry)
            selection.candidates.append(Candidate(
                zone_id=entry.zone_id,
                record_id=entry.record_id,
                record_name=entry.record_name,
                record_type=entry.record_type,
            ))
        return selection

    # ------------------------------------------------------------------
    # ALL_ZONES
    # ------------------------------------------------------------------

    def all_zones(self) -> Selection:
        """Every A record in every zone.  A zone that fails is skipped."""
        selection = Selection()
        logger.info("Fetching zones from Cloudflare...")

        try:
            zones = self._cf.list_zones(self._token)
        except CloudflareAPIError as exc:
            selection.result.add_failure(
                "ZONE_FETCH", f"Failed to retrieve zones from Cloudflare: {exc}", count_record=False,
            )
            return selection

        logger.info("Found %d zone(s) to process", len(zones))
        if not zones:
            logger.warning("No zones found in Cloudflare account")

        for zone in zones:
            zone_id, zone_name = zone.get("id"), zone.get("name")
            if not zone_id or not zone_name:
                logger.warning("Skipping invalid zone data: %s", zone)
                continue
            try:
                records = self._cf.list_a_records(self._token, zone_id)
            except CloudflareAPIError as exc:
                logger.error("Failed to retrieve records for zone %s: %s", zone_name, exc)
                selection.result.add_failure(
                    "RECORD_FETCH", f"Failed to retrieve records for zone {zone_name}: {exc}",
                    count_record=False,
                )
                continue
            logger.info("Found %d A record(s) in zone %s", len(records), zone_name)
            self._add_listed(selection, zone_id, zone_name, records)

        return selection

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _add_listed(selection: Selection, zone_id: str, zone_name: str, records: list[dict]) -> None:
        """Turn listed records into candidates, counting malformed ones as failed."""
        for rec in records:
            if not rec.get("id") or not rec.get("name") or not rec.get("type"):
                logger.warning("Invalid record in zone %s: %s", zone_name, rec)
                selection.result.add_failure(
                    "INVALID_RECORD", f"Record with missing id/name/type in zone {zone_name}",
                )
                continue
            selection.candidates.append(Candidate(
                zone_id=zone_id,
                record_id=rec["id"],
                record_name=rec["name"],
                record_type=rec["type"],
                content=rec.get("content") or None,
                zone_name=zone_name,
            ))
