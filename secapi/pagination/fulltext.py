"""Full-text search results."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import pydantic

from secapi.core.errors import ValidationError
from secapi.models.fulltext import FulltextResult


@dataclass(frozen=True)
class FulltextResults:
    """Immutable list of full-text search hits."""

    results: tuple[FulltextResult, ...] = ()
    total: int | Mapping[str, Any] | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> FulltextResults:
        raw = data.get("filings") or []
        try:
            results = tuple(FulltextResult.model_validate(item) for item in raw if item is not None)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Malformed full-text hit in response: {e}") from e
        return cls(
            results=results,
            total=data.get("total"),
        )

    def __iter__(self) -> Iterator[FulltextResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)
