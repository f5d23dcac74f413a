"""Record updater — point one DNS record at the current IP, verify, retry."""

import logging
import time
from typing import Any, Iterable

from cfddns.config import DEFAULT_PROXIED, DEFAULT_TTL, VERIFICATION_DELAY_SECONDS
from cfddns.core.cloudflare_client import CloudflareAPIError, CloudflareClient
from cfddns.core.logs import SUCCESS
from cfddns.core.models import Candidate, RunResult, UpdateOutcome
from cfddns.core.retry import constant, retry_call
from cfddns.core.settings import Settings

logger = logging.getLogger(__name__)


class _UnverifiedWrite(Exception):
    """The write was accepted but reading the record back disagreed."""


def build_payload(
    record_type: str, record_name: str, content: str, ttl: Any, proxied: Any,
) -> dict[str, Any]:
    """Return the PUT body for an address update.

    Raises ``ValueError`` if any field has the wrong shape.
    """
    for label, value in (("type", record_type), ("name", record_name), ("content", content)):
        if not isinstance(value, str) or not value:
            raise ValueError(f"Invalid {label}: {value!r}")
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 1:
        raise ValueError(f"Invalid ttl: {ttl!r}")
    if not isinstance(proxied, bool):
        raise ValueError(f"Invalid proxied flag: {proxied!r}")
    return {
        "type": record_type,
        "name": record_name,
        "content": content,
        "ttl": ttl,
        "proxied": proxied,
    }


class RecordUpdater:
    """Idempotent, verified updates of individual records."""

    def __init__(self, cf: CloudflareClient, token: str, settings: Settings) -> None:
        self._cf = cf
        self._token = token
        self._settings = settings

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def process(self, candidates: Iterable[Candidate], desired_ip: str) -> RunResult:
        """Run :meth:`update_if_needed` for each candidate, in order."""
        result = RunResult()
        for cand in candidates:
            outcome = self.update_if_needed(
                cand.zone_id, cand.record_id, cand.record_name, cand.record_type,
                desired_ip, listed_content=cand.content,
            )
            if outcome is UpdateOutcome.FAILED:
                result.add_failure(
                    "UPDATE_RECORD",
                    f"Failed to update {cand.record_name} (ID: {cand.record_id}) "
                    f"after {self._settings.max_retries} attempts",
                )
            else:
                result.add_outcome(outcome)
        return result

    # ------------------------------------------------------------------
    # Single record
    # ------------------------------------------------------------------

    def update_if_needed(
        self,
        zone_id: str,
        record_id: str,
        record_name: str,
        record_type: str,
        desired_ip: str,
        *,
        listed_content: str | None = None,
    ) -> UpdateOutcome:
        """Make record *record_id* resolve to *desired_ip*.

        No write is issued when the record already holds *desired_ip*,
        either in *listed_content* or in a fresh read taken just before
        writing.
        """
        if listed_content == desired_ip:
            logger.info("Record %s (ID: %s) already has correct IP: %s - skipping",
                        record_name, record_id, desired_ip)
            return UpdateOutcome.SKIPPED

        current = self._fetch(zone_id, record_id, record_name)
        if current is not None and current["content"] == desired_ip:
            logger.info("Record %s (ID: %s) already has correct IP: %s - skipping",
                        record_name, record_id, desired_ip)
            return UpdateOutcome.SKIPPED

        if current is not None and current["content"]:
            logger.info("Record %s (ID: %s) needs update: %s → %s",
                        record_name, record_id, current["content"], desired_ip)
        else:
            logger.warning("Could not read current IP for record %s - will update to be safe",
                           record_name)

        payload = self._payload(record_type, record_name, desired_ip, current)
        if payload is None:
            return UpdateOutcome.FAILED

        if self._write(zone_id, record_id, record_name, payload, desired_ip):
            logger.log(SUCCESS, "Successfully updated record %s (ID: %s)", record_name, record_id)
            return UpdateOutcome.UPDATED
        logger.error("Failed to update record %s (ID: %s)", record_name, record_id)
        return UpdateOutcome.FAILED

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _fetch(self, zone_id: str, record_id: str, record_name: str) -> dict | None:
        try:
            return self._cf.get_record(self._token, zone_id, record_id)
        except CloudflareAPIError as exc:
            logger.warning("Could not fetch current settings for %s, using defaults: %s",
                           record_name, exc)
            return None

    def _payload(
        self, record_type: str, record_name: str, desired_ip: str, current: dict | None,
    ) -> dict[str, Any] | None:
        """Build the update body, preserving the record's proxy/TTL settings."""
        proxied, ttl = DEFAULT_PROXIED, DEFAULT_TTL
        if current is not None:
            if current.get("proxied") is not None:
                proxied = current["proxied"]
            if current.get("ttl") is not None:
                ttl = current["ttl"]
        logger.info("Preserving current settings: proxied=%s, ttl=%s", proxied, ttl)

        try:
            return build_payload(record_type, record_name, desired_ip, ttl, proxied)
        except ValueError as exc:
            logger.warning("Payload creation failed for %s (%s); falling back to defaults",
                           record_name, exc)
        try:
            return build_payload(record_type, record_name, desired_ip, DEFAULT_TTL, DEFAULT_PROXIED)
        except ValueError as exc:
            logger.error("Failed to create even a minimal payload for %s: %s", record_name, exc)
            return None

    def _write(
        self, zone_id: str, record_id: str, record_name: str, payload: dict, desired_ip: str,
    ) -> bool:
        """PUT *payload*, then read back.  ``True`` once a write has succeeded.

        A read-back mismatch triggers another attempt, except on the last
        attempt where the accepted write is taken as success.
        """
        max_retries = self._settings.max_retries

        def attempt_write(attempt: int) -> None:
            logger.info("Sending update request for %s (attempt %d/%d)",
                        record_name, attempt, max_retries)
            try:
                self._cf.update_record(self._token, zone_id, record_id, payload)
            except CloudflareAPIError:
                logger.warning("API call failed for %s (attempt %d/%d)",
                               record_name, attempt, max_retries)
                raise
            logger.log(SUCCESS, "API call successful for %s", record_name)

            if self._settings.skip_verification:
                logger.info("Verification skipped for %s", record_name)
                return
            if self._verify(zone_id, record_id, record_name, desired_ip, attempt):
                return
            if attempt == max_retries:
                logger.info("Considering update of %s successful: the write was accepted "
                            "but could not be verified", record_name)
                return
            raise _UnverifiedWrite(record_name)

        try:
            retry_call(
                attempt_write,
                attempts=max_retries,
                delay=constant(self._settings.sleep_between_retries),
                retry_on=(CloudflareAPIError, _UnverifiedWrite),
                description=f"update {record_name}",
            )
        except CloudflareAPIError:
            return False
        return True

    def _verify(
        self, zone_id: str, record_id: str, record_name: str, desired_ip: str, attempt: int,
    ) -> bool:
        time.sleep(VERIFICATION_DELAY_SECONDS)
        logger.info("Verifying update for %s (after %ds delay)...",
                    record_name, VERIFICATION_DELAY_SECONDS)
        max_retries = self._settings.max_retries
        try:
            record = self._cf.get_record(self._token, zone_id, record_id)
        except CloudflareAPIError as exc:
            logger.warning("Failed to verify update for %s (attempt %d/%d): %s",
                           record_name, attempt, max_retries, exc)
            return False

        seen = record.get("content")
        if not seen:
            logger.warning("Failed to parse verification response for %s (attempt %d/%d)",
                           record_name, attempt, max_retries)
            return False
        if seen != desired_ip:
            logger.warning("Update verification failed for %s: expected '%s', got '%s' "
                           "(attempt %d/%d); this may be propagation delay",
                           record_name, desired_ip, seen, attempt, max_retries)
            return False

        logger.log(SUCCESS, "%s updated successfully to %s (verified)", record_name, desired_ip)
        return True
