"""Storage protocol and result type for filing exports."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from secapi.models.filing import Filing


@dataclass
class SaveResult:
    """Counts from writing one or more batches of filings."""

    saved: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.saved + self.skipped

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def merge(self, other: "SaveResult") -> "SaveResult":
        """Combine the results of two batches of one backfill."""
        return SaveResult(
            saved=self.saved + other.saved,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )

    def summary(self) -> str:
        line = f"Saved: {self.saved}  Skipped: {self.skipped}"
        if self.errors:
            line += f"  Errors: {len(self.errors)}"
        return line


@runtime_checkable
class FilingStorage(Protocol):
    """Anything a backfill can write filings into."""

    @property
    def name(self) -> str: ...

    def save_filings(self, filings: Iterable[Filing]) -> SaveResult:
        """Write filings, replacing earlier rows with the same accession number."""
        ...

    def load_accession_numbers(self) -> set[str]:
        """Accession numbers already stored."""
        ...
