"""Tests for secapi/pagination."""

from types import MappingProxyType

import pydantic
import pytest

from secapi.core.errors import PaginationError, SecApiError, ValidationError
from secapi.pagination import FulltextResults, LazyPager, Page, PageFetcher

from .fixtures.api_responses import FULLTEXT_RESPONSE, make_filing, query_response


class FakeFetcher:
    """Serves pages of `page_size` filings out of `total`, recording each request."""

    def __init__(self, total: int, page_size: int, empty_after: int | None = None) -> None:
        self.total = total
        self.page_size = page_size
        self.empty_after = empty_after
        self.contexts: list[dict] = []

    def fetch_page(self, query_context):
        self.contexts.append(dict(query_context))
        start = int(query_context.get("from", 0))
        count = max(min(self.page_size, self.total - start), 0)
        if self.empty_after is not None and start >= self.empty_after:
            count = 0
        return Page.from_response(
            query_response(start, count, self.total),
            fetcher=self,
            query_context=query_context,
        )

    def first_page(self) -> Page:
        return self.fetch_page({"query": "ticker:AAPL", "from": "0", "size": str(self.page_size)})


class TestPageCursor:
    """Offset arithmetic and has_more()."""

    def test_first_of_two_pages(self):
        """50 of 100 leaves more to fetch starting at 50."""
        page = Page.from_response(query_response(0, 50, 100), fetcher=FakeFetcher(100, 50))
        assert page.has_more() is True
        assert page.next_offset == 50

    def test_last_page(self):
        """90 + 10 of 100 is the end."""
        page = Page.from_response(query_response(90, 10, 100), fetcher=FakeFetcher(100, 10))
        assert page.has_more() is False
        assert page.next_offset == 100

    def test_no_fetcher_has_no_more(self):
        page = Page.from_response(query_response(0, 50, 100))
        assert page.has_more() is False

    def test_unknown_total_has_no_more(self):
        page = Page.from_response({"filings": [make_filing(1)]}, fetcher=FakeFetcher(10, 1))
        assert page.total_available is None
        assert page.has_more() is False

    def test_integer_total(self):
        """A plain integer total is accepted as well as {"value": n}."""
        page = Page.from_response(query_response(0, 5, 20, object_total=False), fetcher=FakeFetcher(20, 5))
        assert page.total_available == 20
        assert page.has_more() is True

    def test_offset_from_query_context(self):
        """Offset falls back to the request's "from" when the response omits it."""
        data = {"total": {"value": 100}, "filings": [make_filing(i) for i in range(10)]}
        page = Page.from_response(data, query_context={"from": "40"})
        assert page.from_offset == 40
        assert page.next_offset == 50

    def test_query_context_is_read_only(self):
        page = Page.from_response(query_response(0, 1, 1), query_context={"query": "x"})
        assert isinstance(page.query_context, MappingProxyType)
        with pytest.raises(TypeError):
            page.query_context["query"] = "y"

    def test_total_is_read_only(self):
        """A {"value": n} total cannot be changed through the page."""
        data = query_response(0, 1, 1)
        page = Page.from_response(data)
        assert isinstance(page.total, MappingProxyType)
        with pytest.raises(TypeError):
            page.total["value"] = 99
        data["total"]["value"] = 99
        assert page.total_available == 1

    def test_malformed_filing_raises_client_error(self):
        """A filing that fails model validation surfaces as a SecApiError."""
        with pytest.raises(ValidationError, match="Malformed filing") as exc_info:
            Page.from_response({"total": 1, "filings": ["not-a-filing"]})
        assert isinstance(exc_info.value, SecApiError)
        assert isinstance(exc_info.value.__cause__, pydantic.ValidationError)


class TestDeduplication:
    """Accession numbers are unique within a page."""

    def test_duplicates_dropped_in_order(self):
        data = {
            "total": 3,
            "filings": [make_filing(1), make_filing(2), make_filing(1, formType="10-K/A")],
        }
        page = Page.from_response(data)
        assert [f.accession_number for f in page] == ["0000320193-23-000001", "0000320193-23-000002"]
        assert page.items[0].form_type == "10-K"

    def test_missing_accession_kept(self):
        data = {"total": 2, "filings": [make_filing(1, accessionNo=None), make_filing(2, accessionNo=None)]}
        assert len(Page.from_response(data)) == 2


class TestFetchNextPage:
    """Explicit paging."""

    def test_requests_next_offset(self):
        fetcher = FakeFetcher(100, 50)
        second = fetcher.first_page().fetch_next_page()
        assert fetcher.contexts[-1] == {"query": "ticker:AAPL", "from": "50", "size": "50"}
        assert second.from_offset == 50
        assert second.has_more() is False

    def test_no_more_pages_raises(self):
        fetcher = FakeFetcher(10, 10)
        with pytest.raises(PaginationError, match="No more pages available"):
            fetcher.first_page().fetch_next_page()

    def test_fetch_does_not_mutate_page(self):
        fetcher = FakeFetcher(100, 50)
        first = fetcher.first_page()
        first.fetch_next_page()
        assert first.from_offset == 0
        assert first.query_context["from"] == "0"


class TestIterate:
    """Lazy iteration across pages."""

    def test_requires_fetcher(self):
        page = Page.from_response(query_response(0, 5, 5))
        with pytest.raises(PaginationError, match="Cannot paginate without client reference"):
            page.iterate()

    def test_walks_all_pages(self):
        """Pages of 3 and 2 with total 5 yield 5 filings with one extra fetch."""
        fetcher = FakeFetcher(total=5, page_size=3)
        first = fetcher.first_page()

        filings = list(first.iterate())

        assert len(filings) == 5
        assert [f.accession_number for f in filings] == [make_filing(i)["accessionNo"] for i in range(5)]
        assert len({f.accession_number for f in filings}) == 5
        assert len(fetcher.contexts) == 2

    def test_lazy(self):
        """Nothing is fetched until the consumer moves past the current page."""
        fetcher = FakeFetcher(total=100, page_size=10)
        pager = fetcher.first_page().iterate()
        assert isinstance(pager, LazyPager)

        for _ in range(10):
            next(pager)
        assert len(fetcher.contexts) == 1

        next(pager)
        assert len(fetcher.contexts) == 2
        assert pager.current_page.from_offset == 10

    def test_stops_on_empty_page(self):
        """An empty page that makes no progress ends iteration instead of looping."""
        fetcher = FakeFetcher(total=100, page_size=10, empty_after=20)
        filings = list(fetcher.first_page().iterate())
        assert len(filings) == 20
        assert len(fetcher.contexts) == 3

    def test_single_pass(self):
        fetcher = FakeFetcher(total=3, page_size=3)
        pager = fetcher.first_page().iterate()
        assert len(list(pager)) == 3
        assert list(pager) == []
        assert pager.current_page is None

    def test_fetcher_protocol(self):
        assert isinstance(FakeFetcher(1, 1), PageFetcher)


class TestCount:
    """count() with and without a predicate."""

    def test_total_versus_predicate(self):
        """Without a predicate the server total; with one, matches on this page only."""
        data = {
            "total": {"value": 1250, "relation": "eq"},
            "filings": [make_filing(i, formType="10-K" if i % 2 else "10-Q") for i in range(50)],
        }
        page = Page.from_response(data)
        assert page.count() == 1250
        assert page.count(lambda f: f.form_type == "10-K") == 25

    def test_unknown_total_counts_page(self):
        page = Page.from_response({"filings": [make_filing(1), make_filing(2)]})
        assert page.count() == 2


class TestFulltextResults:
    """Tests for FulltextResults."""

    def test_from_response(self):
        results = FulltextResults.from_response(FULLTEXT_RESPONSE)
        assert len(results) == 2
        first = next(iter(results))
        assert first.ticker == "AAPL"
        assert first.url == "https://www.sec.gov/Archives/edgar/data/320193/a.htm"
        assert first.filed_on == "2023-11-02"

    def test_empty(self):
        assert len(FulltextResults.from_response({})) == 0

    def test_malformed_hit_raises_client_error(self):
        with pytest.raises(ValidationError, match="Malformed full-text hit"):
            FulltextResults.from_response({"filings": [42]})
