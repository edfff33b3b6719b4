"""Governed HTTP transport.

Every logical call goes through the same pipeline:

    RetryExecutor ─┬─ attempt 1: governor.before_request → httpx send
                   │             → governor.after_response → classify
                   ├─ attempt 2: ...
                   └─ success: response / failure: typed SecApiError

One correlation id is generated per logical call and shared by the
governor, classifier, retry executor, observer callbacks and log records.
"""

from __future__ import annotations

import ssl
import time
import uuid
from typing import Any, Callable

import httpx

from secapi.config.settings import ClientSettings
from secapi.core.errors import SecApiError
from secapi.observability.hooks import Hooks
from secapi.observability.logger import get_logger, log_context
from secapi.observability.metrics import MetricsCollector
from secapi.rate_limit.governor import RequestGovernor
from secapi.rate_limit.tracker import RateLimitTracker
from secapi.resilience.classifier import ErrorClassifier, Outcome
from secapi.resilience.retry import RetryExecutor

logger = get_logger(__name__)

_REDACTED_HEADERS = frozenset({"authorization"})

MIN_SEND_TIMEOUT = 0.01


def new_request_id() -> str:
    return str(uuid.uuid4())


def json_body(response: httpx.Response) -> Any:
    """Decode a JSON response, falling back to text for anything else."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return response.json()
    return response.text


class GovernedTransport:
    """httpx client wrapped with rate-limit governance, classification and retries.

    Usage:
        transport = GovernedTransport(settings, tracker=RateLimitTracker())
        response = transport.request("POST", "/", json={"query": "ticker:AAPL"})
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        tracker: RateLimitTracker | None = None,
        hooks: Hooks | None = None,
        metrics: MetricsCollector | None = None,
        http_transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.tracker = tracker if tracker is not None else RateLimitTracker()
        self.hooks = hooks if hooks is not None else Hooks()
        self.metrics = metrics
        self.clock = clock

        self.governor = RequestGovernor(
            tracker=self.tracker,
            threshold=settings.rate_limit_threshold,
            default_wait=settings.queue_default_wait,
            warning_threshold=settings.queue_wait_warning_threshold,
            hooks=self.hooks,
            metrics=metrics,
            clock=clock,
            sleep=sleep,
        )
        self.classifier = ErrorClassifier(clock=clock)
        self.retry = RetryExecutor.from_settings(
            settings,
            hooks=self.hooks,
            metrics=metrics,
            clock=clock,
            sleep=sleep,
        )
        self.http = httpx.Client(
            base_url=settings.base_url,
            headers={"Authorization": settings.api_key or ""},
            timeout=settings.request_timeout,
            transport=http_transport,
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Perform one logical call.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            json: JSON request body
            timeout: Overall seconds the caller is willing to wait, retries included

        Returns:
            Successful (non-error) response

        Raises:
            SecApiError: Typed error once classification and retries are done
        """
        request_id = new_request_id()
        method = method.upper()
        deadline = self.clock() + timeout if timeout is not None else None

        with log_context(correlation_id=request_id, method=method, path=path):
            def send_once(attempt: int) -> Outcome:
                with log_context(attempt=attempt + 1):
                    return self._attempt(method, path, json, request_id, deadline)

            try:
                return self.retry.execute(send_once, request_id, deadline)
            except SecApiError as e:
                self._on_final_error(e, method, path, request_id)
                raise

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, json=json, **kwargs)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> GovernedTransport:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ==================== Single attempt ====================

    def _attempt(
        self,
        method: str,
        path: str,
        body: Any,
        request_id: str,
        deadline: float | None,
    ) -> Outcome:
        self.governor.before_request(request_id, deadline)

        # The send itself may not outlive the caller's deadline
        send_timeout = float(self.settings.request_timeout)
        if deadline is not None:
            send_timeout = max(min(send_timeout, deadline - self.clock()), MIN_SEND_TIMEOUT)

        request = self.http.build_request(method, path, json=body, timeout=send_timeout)
        url = str(request.url)
        self.hooks.emit(
            "on_request",
            {
                "request_id": request_id,
                "method": method,
                "url": url,
                "headers": _safe_headers(request.headers),
            },
        )
        logger.info(
            f"{method} {path}",
            extra={"event": "secapi.request.start", "request_id": request_id, "url": url},
        )
        if self.metrics is not None:
            self.metrics.record_request(method)

        started = time.monotonic()
        try:
            response = self.http.send(request)
        except (httpx.TransportError, ssl.SSLError) as e:
            self.governor.release()
            duration_ms = (time.monotonic() - started) * 1000
            outcome = self.classifier.classify_exception(e, request_id)
            self._record_failure(outcome, method, duration_ms)
            return outcome

        duration_ms = (time.monotonic() - started) * 1000
        self.governor.after_response(response.headers, request_id)

        outcome = self.classifier.classify_response(response, request_id)
        if outcome.is_success:
            if self.metrics is not None:
                self.metrics.record_response(method, response.status_code, duration_ms)
            self.hooks.emit(
                "on_response",
                {
                    "request_id": request_id,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                    "url": url,
                    "method": method,
                },
            )
            logger.info(
                f"{method} {path} -> {response.status_code} ({duration_ms:.0f}ms)",
                extra={
                    "event": "secapi.request.complete",
                    "request_id": request_id,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                    "success": response.is_success,
                },
            )
        else:
            response.close()
            self._record_failure(outcome, method, duration_ms, response.status_code)
        return outcome

    def _record_failure(
        self,
        outcome: Outcome,
        method: str,
        duration_ms: float,
        status: int | None = None,
    ) -> None:
        error = outcome.error
        assert error is not None
        error_type = type(error).__name__
        if self.metrics is not None:
            self.metrics.record_error(method, error_type, duration_ms, status)
            if status == 429:
                self.metrics.record_rate_limit()
        logger.debug(
            f"Attempt failed: {error_type}",
            extra={
                "event": "secapi.request.attempt_failed",
                "status": status,
                "branch": outcome.branch.value if outcome.branch else None,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def _on_final_error(
        self,
        error: SecApiError,
        method: str,
        path: str,
        request_id: str,
    ) -> None:
        url = str(self.http.base_url.join(path))
        self.hooks.emit(
            "on_error",
            {"request_id": request_id, "error": error, "url": url, "method": method},
        )
        logger.error(
            f"{method} {path} failed: {error.message}",
            extra={
                "event": "secapi.request.error",
                "request_id": request_id,
                "error_class": type(error).__name__,
                "error_message": error.message,
                "url": url,
            },
        )


def _safe_headers(headers: httpx.Headers) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in _REDACTED_HEADERS}
