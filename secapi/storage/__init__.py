"""Local export of fetched filings."""

from .base import FilingStorage, SaveResult
from .csv_storage import FilingCSVStorage

__all__ = [
    "FilingStorage",
    "SaveResult",
    "FilingCSVStorage",
]
