"""Fluent builder for Lucene-syntax filing queries.

Usage:
    page = (
        client.query()
        .ticker("AAPL", "TSLA")
        .form_type("10-K", "10-Q")
        .date_range("2020-01-01", "2023-12-31")
        .search()
    )
    # query: ticker:(AAPL, TSLA) AND formType:("10-K" OR "10-Q") AND filedAt:[2020-01-01 TO 2023-12-31]
"""

from __future__ import annotations

import copy
import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from secapi.config.constants import DEFAULT_PAGE_SIZE, DEFAULT_SORT
from secapi.pagination import FulltextResults, Page

if TYPE_CHECKING:
    from secapi.client import Client

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _flatten(values: tuple[Any, ...]) -> list[str]:
    flat: list[str] = []
    for value in values:
        if isinstance(value, (list, tuple, set)):
            flat.extend(str(v) for v in value)
        else:
            flat.append(str(value))
    return flat


def _coerce_date(value: Any) -> str:
    """Render a date, datetime or YYYY-MM-DD string as YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        if not _ISO_DATE.match(value):
            raise ValueError(
                f"Date string must be in ISO 8601 format (YYYY-MM-DD), got: {value!r}"
            )
        return value
    raise ValueError(
        f"Expected date, datetime, or ISO 8601 string, got {type(value).__name__}"
    )


class Query:
    """Accumulates search terms and runs them against the query API."""

    def __init__(self, client: Client) -> None:
        self._client = client
        self._parts: list[str] = []
        self._from_offset = 0
        self._page_size = DEFAULT_PAGE_SIZE
        self._sort = copy.deepcopy(DEFAULT_SORT)

    def ticker(self, *tickers: str | list[str]) -> Query:
        """Filter by one or more ticker symbols (upper-cased)."""
        symbols = [t.upper() for t in _flatten(tickers)]
        if not symbols:
            raise ValueError("At least one ticker is required")
        if len(symbols) == 1:
            self._parts.append(f"ticker:{symbols[0]}")
        else:
            self._parts.append(f"ticker:({', '.join(symbols)})")
        return self

    def cik(self, cik: str | int) -> Query:
        """Filter by CIK; leading zeros are stripped."""
        normalized = str(cik).lstrip("0")
        if not normalized:
            raise ValueError("CIK cannot be empty or zero")
        self._parts.append(f"cik:{normalized}")
        return self

    def form_type(self, *types: str | list[str]) -> Query:
        """Filter by one or more form types, e.g. "10-K"."""
        forms = _flatten(types)
        if not forms:
            raise ValueError("At least one form type is required")
        if len(forms) == 1:
            self._parts.append(f'formType:"{forms[0]}"')
        else:
            quoted = " OR ".join(f'"{form}"' for form in forms)
            self._parts.append(f"formType:({quoted})")
        return self

    def date_range(self, from_date: date | datetime | str, to_date: date | datetime | str) -> Query:
        """Filter by filing date, both ends inclusive."""
        if from_date is None:
            raise ValueError("from_date is required")
        if to_date is None:
            raise ValueError("to_date is required")
        self._parts.append(f"filedAt:[{_coerce_date(from_date)} TO {_coerce_date(to_date)}]")
        return self

    def page_size(self, size: int) -> Query:
        """Results per page."""
        if size <= 0:
            raise ValueError("Page size must be positive")
        self._page_size = size
        return self

    def to_lucene(self) -> str:
        return " AND ".join(self._parts)

    def payload(self) -> dict[str, Any]:
        """Request body for the accumulated terms."""
        return {
            "query": self.to_lucene(),
            "from": str(self._from_offset),
            "size": str(self._page_size),
            "sort": self._sort,
        }

    def search(self, query: str | None = None, **options: Any) -> Page:
        """Run the query and return the first page.

        Args:
            query: Raw Lucene query; when omitted the builder's terms are used
            **options: Extra request fields merged into a raw query

        Returns:
            First page of matching filings
        """
        if isinstance(query, str):
            body: dict[str, Any] = {"query": query, **options}
        else:
            body = self.payload()
        return self._client.fetch_page(body)

    def fulltext(self, query: str, **options: Any) -> FulltextResults:
        """Search the full text of filings."""
        return self._client.fulltext(query, **options)

    def __repr__(self) -> str:
        return f"Query({self.to_lucene()!r})"
