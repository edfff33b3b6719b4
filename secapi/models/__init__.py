"""Domain models for API responses."""

from .filing import DataFile, DocumentFormatFile, Entity, Filing
from .fulltext import ExtractedData, FulltextResult

__all__ = [
    "Filing",
    "Entity",
    "DocumentFormatFile",
    "DataFile",
    "FulltextResult",
    "ExtractedData",
]
