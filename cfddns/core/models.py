"""Shared data structures for a single update run."""

from dataclasses import dataclass, field
from enum import Enum


class DomainMode(Enum):
    """Which records a run is responsible for."""

    SINGLE_TARGET = "SINGLE_TARGET"
    EXPLICIT_LIST = "EXPLICIT_LIST"
    ALL_ZONES = "ALL_ZONES"


class UpdateOutcome(Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SelectedRecord:
    """One configured record in EXPLICIT_LIST mode.

    Fields may be empty when the configuration entry was malformed; such
    entries are rejected when the run processes them, not when loading.
    """

    zone_id: str
    record_id: str
    record_name: str
    record_type: str

    @property
    def is_complete(self) -> bool:
        return all((self.zone_id, self.record_id, self.record_name, self.record_type))

    def __str__(self) -> str:
        return ":".join((self.zone_id, self.record_id, self.record_name, self.record_type))


@dataclass(frozen=True)
class Candidate:
    """A DNS record that may need to point at the current public IP.

    ``content`` is the value seen when the record was listed, or ``None``
    when nothing was fetched yet.
    """

    zone_id: str
    record_id: str
    record_name: str
    record_type: str = "A"
    content: str | None = None
    zone_name: str = ""


@dataclass
class RunResult:
    """Aggregate counters and failure log for one run."""

    updated: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)

    def add_outcome(self, outcome: UpdateOutcome) -> None:
        if outcome is UpdateOutcome.UPDATED:
            self.updated += 1
        elif outcome is UpdateOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def add_failure(self, operation: str, message: str, *, count_record: bool = True) -> None:
        """Register a failed operation.

        *count_record* is ``False`` for failures that are not tied to one
        record (e.g. a zone whose records could not be listed).
        """
        self.failures.append((operation, message))
        if count_record:
            self.failed += 1

    def merge(self, other: "RunResult") -> "RunResult":
        return RunResult(
            updated=self.updated + other.updated,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            failures=self.failures + other.failures,
        )

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0 and not self.failures

    @property
    def summary(self) -> str:
        return (
            f"{self.updated} updated, {self.skipped} already correct, "
            f"{self.failed} failed"
        )
