"""Offset-based pages of filings and lazy iteration across them.

A Page holds one server response: its filings (deduplicated by accession
number), the offset it started at and the server-reported total. The next
offset is derived, never stored:

    next_offset = from_offset + len(items)

Usage:
    page = client.query().ticker("AAPL").form_type("10-K").search()

    page.count()                    # total across all pages (server-reported)
    page.has_more()                 # next_offset < total
    second = page.fetch_next_page()

    for filing in page.iterate():   # lazily walks every following page
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

import pydantic

from secapi.core.errors import PaginationError, ValidationError
from secapi.models.filing import Filing


@runtime_checkable
class PageFetcher(Protocol):
    """Anything that can run a query and return one page (the client)."""

    def fetch_page(self, query_context: Mapping[str, Any]) -> Page: ...


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _dedupe(filings: list[Filing]) -> tuple[Filing, ...]:
    """Drop repeated accession numbers, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[Filing] = []
    for filing in filings:
        key = filing.accession_number
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        unique.append(filing)
    return tuple(unique)


@dataclass(frozen=True)
class Page:
    """One immutable page of filings.

    Attributes:
        items: Filings on this page, unique by accession number
        from_offset: Offset of the first item within the full result set
        total: Server-reported total, an int or a {"value": n} object
        query_context: Request body that produced this page
        fetcher: Issues the request for the next page; None disables paging
    """

    items: tuple[Filing, ...] = ()
    from_offset: int = 0
    total: int | Mapping[str, Any] | None = None
    query_context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    fetcher: PageFetcher | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_response(
        cls,
        data: Mapping[str, Any],
        *,
        fetcher: PageFetcher | None = None,
        query_context: Mapping[str, Any] | None = None,
    ) -> Page:
        """Build a page from a decoded query API response.

        Args:
            data: Response body with "filings", "total" and optionally "from"
            fetcher: Client used to fetch following pages
            query_context: Request body that produced `data`

        Returns:
            New Page
        """
        context = dict(query_context or {})
        raw = data.get("filings") or []
        try:
            filings = [Filing.model_validate(item) for item in raw if item is not None]
        except pydantic.ValidationError as e:
            raise ValidationError(f"Malformed filing in response: {e}") from e

        offset = _to_int(data.get("from"))
        if offset is None and isinstance(data.get("query"), Mapping):
            offset = _to_int(data["query"].get("from"))
        if offset is None:
            offset = _to_int(context.get("from"))

        total = data.get("total")
        if isinstance(total, Mapping):
            total = MappingProxyType(dict(total))

        return cls(
            items=_dedupe(filings),
            from_offset=offset or 0,
            total=total,
            query_context=MappingProxyType(context),
            fetcher=fetcher,
        )

    # ==================== Cursor ====================

    @property
    def next_offset(self) -> int:
        """Offset of the first result not yet fetched."""
        return self.from_offset + len(self.items)

    @property
    def total_available(self) -> int | None:
        """Server-reported total as an int, whichever form it arrived in."""
        if isinstance(self.total, Mapping):
            return _to_int(self.total.get("value"))
        return _to_int(self.total)

    def has_more(self) -> bool:
        """True if a fetcher is bound and results remain past this page."""
        if self.fetcher is None:
            return False
        total = self.total_available
        if total is None:
            return False
        return self.next_offset < total

    def fetch_next_page(self) -> Page:
        """Fetch the page that follows this one.

        Raises:
            PaginationError: If there are no more pages
        """
        if not self.has_more():
            raise PaginationError("No more pages available")
        assert self.fetcher is not None
        context = {**self.query_context, "from": str(self.next_offset)}
        return self.fetcher.fetch_page(context)

    def iterate(self) -> LazyPager:
        """Iterate every filing from this page onward, fetching lazily.

        Raises:
            PaginationError: If no fetcher is bound
        """
        if self.fetcher is None:
            raise PaginationError("Cannot paginate without client reference")
        return LazyPager(self)

    # ==================== Collection ====================

    def count(self, predicate: Callable[[Filing], bool] | None = None) -> int:
        """Total results across all pages, or matches on this page only.

        Args:
            predicate: When given, count filings on the current page that match

        Returns:
            Server-reported total (page size if unknown), or the match count
        """
        if predicate is not None:
            return sum(1 for filing in self.items if predicate(filing))
        total = self.total_available
        return total if total is not None else len(self.items)

    @property
    def filings(self) -> tuple[Filing, ...]:
        return self.items

    def __iter__(self) -> Iterator[Filing]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class LazyPager(Iterator[Filing]):
    """Single-pass iterator over a page and every page after it.

    Holds only the current page. A new page is requested only when the
    consumer asks for an item past the end of the current one, so stopping
    early never triggers an extra fetch.
    """

    def __init__(self, page: Page) -> None:
        self._page: Page | None = page
        self._items: Iterator[Filing] = iter(page.items)

    def __iter__(self) -> LazyPager:
        return self

    def __next__(self) -> Filing:
        while self._page is not None:
            filing = next(self._items, None)
            if filing is not None:
                return filing

            page = self._page
            if not page.has_more():
                break

            next_page = page.fetch_next_page()
            if not next_page.items and next_page.next_offset == page.next_offset:
                # Upstream claims more results but returned nothing new
                break

            self._page = next_page
            self._items = iter(next_page.items)

        self._page = None
        raise StopIteration

    @property
    def current_page(self) -> Page | None:
        """Page being consumed, None once exhausted."""
        return self._page
