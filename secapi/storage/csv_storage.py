"""CSV export of filing metadata."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from secapi.models.filing import Filing
from secapi.observability.logger import get_logger

from .base import SaveResult

logger = get_logger(__name__)

KEY_COLUMN = "accession_number"


@dataclass
class FilingCSVStorage:
    """Append filings to a single CSV file, one row per accession number.

    Re-saving a filing replaces its earlier row, so an interrupted backfill
    can simply be run again.
    """

    output_path: Path

    def __post_init__(self) -> None:
        self.output_path = Path(self.output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "csv"

    def save_filings(self, filings: Iterable[Filing]) -> SaveResult:
        """Merge filings into the CSV file.

        Filings without an accession number cannot be keyed and are skipped.

        Returns:
            SaveResult with counts of saved/skipped filings
        """
        records = []
        skipped = 0
        for filing in filings:
            if not filing.accession_number:
                skipped += 1
                continue
            records.append(filing.to_record())

        if not records:
            return SaveResult(saved=0, skipped=skipped)

        try:
            df = pd.DataFrame(records).drop_duplicates(subset=[KEY_COLUMN], keep="last")
            saved = len(df)

            # Merge with existing data
            if self.output_path.exists():
                existing = pd.read_csv(self.output_path, dtype=str)
                df = pd.concat([existing, df]).drop_duplicates(subset=[KEY_COLUMN], keep="last")

            df = df.sort_values(KEY_COLUMN).reset_index(drop=True)
            df.to_csv(self.output_path, index=False)

            logger.info(f"Saved {saved} filings to {self.output_path}")
            return SaveResult(saved=saved, skipped=skipped)

        except (OSError, ValueError) as e:
            logger.error(f"Failed to save filings: {e}")
            return SaveResult(saved=0, skipped=skipped, errors=[str(e)])

    def load_accession_numbers(self) -> set[str]:
        """Accession numbers already on disk (for resume)."""
        if not self.output_path.exists():
            return set()
        df = pd.read_csv(self.output_path, usecols=[KEY_COLUMN], dtype=str)
        return set(df[KEY_COLUMN].dropna())

    def load_df(self) -> pd.DataFrame | None:
        """Load the exported filings as a DataFrame."""
        if not self.output_path.exists():
            return None
        return pd.read_csv(self.output_path, dtype=str)
