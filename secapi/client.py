"""Client for the filings search API.

Usage:
    from secapi import Client

    with Client(api_key="your_api_key") as client:
        page = client.query().ticker("AAPL").form_type("10-K").search()
        for filing in page.iterate():
            print(filing.accession_number, filing.filed_at)

        print(client.rate_limit_summary())
"""

from __future__ import annotations

import time
from collections.abc import Mapping as MappingABC
from typing import Any, Callable

import httpx

from secapi.config.settings import ClientSettings, load_settings
from secapi.core.errors import ValidationError
from secapi.extractor import Extractor
from secapi.mapping import Mapping
from secapi.observability.hooks import Hooks
from secapi.observability.logger import get_logger
from secapi.observability.metrics import MetricsCollector
from secapi.pagination import FulltextResults, Page
from secapi.query import Query
from secapi.rate_limit.state import RateLimitState
from secapi.rate_limit.tracker import RateLimitTracker
from secapi.transport import GovernedTransport, json_body

logger = get_logger(__name__)


class Client:
    """Entry point for searching filings.

    Each client owns one rate-limit tracker shared by every call it makes,
    so concurrent threads using the same client are governed together.
    Pass the same `tracker` to several clients to share one API quota.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        hooks: Hooks | None = None,
        metrics: MetricsCollector | None = None,
        tracker: RateLimitTracker | None = None,
        http_transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        **overrides: Any,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Prebuilt settings; when omitted they are loaded from
                SECAPI_* environment variables and `overrides`
            hooks: Observer callbacks
            metrics: Metrics collector (a private one is created if omitted)
            tracker: Rate-limit tracker to share between clients
            http_transport: httpx transport, e.g. httpx.MockTransport in tests
            clock: Wall-clock source in epoch seconds
            sleep: Blocking sleep used for throttling and backoff
            **overrides: Settings fields such as api_key or retry_max_attempts

        Raises:
            ConfigurationError: If settings are missing or invalid
        """
        self.settings = settings if settings is not None else load_settings(**overrides)
        self._metrics = metrics if metrics is not None else MetricsCollector()
        self._transport = GovernedTransport(
            self.settings,
            tracker=tracker,
            hooks=hooks,
            metrics=self._metrics,
            http_transport=http_transport,
            clock=clock,
            sleep=sleep,
        )
        self.mapping = Mapping(self._transport)
        self.extractor = Extractor(self._transport)
        logger.debug(
            "Client initialized",
            extra={"base_url": self.settings.base_url, "api_key": self.settings.masked_api_key()},
        )

    # ==================== Search ====================

    def query(self) -> Query:
        """Start a new fluent query."""
        return Query(self)

    def search(self, query: str, **options: Any) -> Page:
        """Run a raw Lucene query and return the first page."""
        return self.query().search(query, **options)

    def fetch_page(self, query_context: MappingABC[str, Any]) -> Page:
        """POST one query body and wrap the response as a page.

        Args:
            query_context: Query API request body (query, from, size, sort)

        Returns:
            Page bound to this client for further pagination
        """
        body = dict(query_context)
        response = self._transport.post("/", json=body)
        data = json_body(response)
        if not isinstance(data, MappingABC):
            raise ValidationError(
                f"Unexpected query response body: {type(data).__name__}",
                status=response.status_code,
            )
        return Page.from_response(data, fetcher=self, query_context=body)

    def fulltext(self, query: str, **options: Any) -> FulltextResults:
        """Search the full text of filings."""
        response = self._transport.post("/full-text-search", json={"query": query, **options})
        data = json_body(response)
        if not isinstance(data, MappingABC):
            raise ValidationError(
                f"Unexpected full-text response body: {type(data).__name__}",
                status=response.status_code,
            )
        return FulltextResults.from_response(data)

    def extract(self, filing: Any, **options: Any) -> Any:
        return self.extractor.extract(filing, **options)

    # ==================== Rate limit ====================

    @property
    def rate_limit_state(self) -> RateLimitState | None:
        return self._transport.tracker.current_state

    @property
    def queued_requests(self) -> int:
        return self._transport.tracker.queued_count

    def rate_limit_summary(self) -> dict[str, Any]:
        """Snapshot of quota and queue state for display."""
        state = self.rate_limit_state
        return {
            "remaining": state.remaining if state else None,
            "limit": state.limit if state else None,
            "percentage": state.percentage_remaining if state else None,
            "reset_at": state.reset_at if state else None,
            "queued_count": self.queued_requests,
            "exhausted": state.exhausted if state else False,
        }

    # ==================== Accessors ====================

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def transport(self) -> GovernedTransport:
        return self._transport

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
