"""Classify HTTP exchanges and transport failures into typed outcomes.

Every attempt produces exactly one Outcome: the response passed through, or
a typed error sitting on the transient or permanent branch. The classifier
never decides whether to retry; callers inspect `outcome.branch` and hand
transient outcomes to the retry executor.

Usage:
    classifier = ErrorClassifier()

    outcome = classifier.classify_response(response, request_id)
    if outcome.is_success:
        return outcome.response
    if outcome.branch is Branch.PERMANENT:
        raise outcome.error
"""

from __future__ import annotations

import ssl
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable

import httpx

from secapi.core.errors import (
    AuthenticationError,
    Branch,
    ErrorKind,
    NetworkError,
    NotFoundError,
    RateLimitError,
    SecApiError,
    ServerError,
    ValidationError,
)
from secapi.rate_limit.state import RateLimitState


@dataclass(frozen=True)
class Outcome:
    """Result of one attempt: a response or a typed error, never both."""

    response: httpx.Response | None = None
    error: SecApiError | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("Outcome needs exactly one of response or error")

    @classmethod
    def success(cls, response: httpx.Response) -> Outcome:
        return cls(response=response)

    @classmethod
    def failure(cls, error: SecApiError) -> Outcome:
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    @property
    def branch(self) -> Branch | None:
        return self.error.branch if self.error is not None else None

    @property
    def status(self) -> int | None:
        return self.response.status_code if self.response is not None else None

    def unwrap(self) -> httpx.Response:
        """Return the response or raise the error."""
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


class ErrorClassifier:
    """Map HTTP statuses and transport exceptions onto the error taxonomy.

    | Status / condition            | Error               | Branch    |
    |-------------------------------|---------------------|-----------|
    | 400, 422                      | ValidationError     | permanent |
    | 401, 403                      | AuthenticationError | permanent |
    | 404                           | NotFoundError       | permanent |
    | 429                           | RateLimitError      | transient |
    | 500-504                       | ServerError         | transient |
    | timeout / connect / TLS       | NetworkError        | transient |
    | anything else                 | passed through      | -         |
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock

    def classify_response(self, response: httpx.Response, request_id: str | None = None) -> Outcome:
        """Classify a completed HTTP exchange."""
        error = self._error_for_status(response, request_id)
        if error is None:
            return Outcome.success(response)
        return Outcome.failure(error)

    def classify_exception(
        self,
        exc: httpx.TransportError | ssl.SSLError,
        request_id: str | None = None,
    ) -> Outcome:
        """Classify a transport-level failure (no HTTP status available)."""
        if isinstance(exc, httpx.TimeoutException):
            message = (
                f"Request timed out: {exc}. Check network connectivity "
                "or increase request_timeout in configuration."
            )
        elif _is_tls_failure(exc):
            message = (
                f"SSL/TLS error: {exc}. This may indicate certificate validation "
                "issues. Verify your system's SSL certificates are up to date."
            )
        else:
            message = (
                f"Connection failed: {exc}. Verify network connectivity "
                "and API availability."
            )
        return Outcome.failure(NetworkError(message, request_id=request_id))

    # ==================== Status mapping ====================

    def _error_for_status(
        self,
        response: httpx.Response,
        request_id: str | None,
    ) -> SecApiError | None:
        status = response.status_code

        if status == 400:
            return ValidationError(
                "Bad request (400): the request was malformed or contains invalid "
                "parameters. Check your query parameters, ticker symbols, or search criteria.",
                status=status,
                request_id=request_id,
            )
        if status == 401:
            return AuthenticationError(
                "API authentication failed (401 Unauthorized). "
                "Verify your API key in the SECAPI_API_KEY environment variable.",
                request_id=request_id,
            )
        if status == 403:
            return AuthenticationError(
                "Access forbidden (403): your API key does not have permission "
                "for this resource. Verify your subscription plan.",
                request_id=request_id,
            )
        if status == 404:
            return NotFoundError(
                f"Resource not found (404): {_request_path(response)}. "
                "Check ticker symbol, CIK, or filing identifier.",
                request_id=request_id,
            )
        if status == 422:
            return ValidationError(
                "Unprocessable entity (422): the request was valid but could not be "
                "processed. This may indicate unsupported parameter combinations.",
                status=status,
                request_id=request_id,
            )
        if status == 429:
            retry_after = self.parse_retry_after(response.headers.get("retry-after"))
            state = RateLimitState.from_headers(response.headers)
            reset_at = state.reset_at if state is not None else None
            return RateLimitError(
                _rate_limit_message(retry_after, reset_at),
                retry_after=retry_after,
                reset_at=reset_at,
                request_id=request_id,
            )
        if 500 <= status <= 504:
            return ServerError(
                f"API server error ({status}): {response.reason_phrase or 'server failure'}. "
                "This is usually temporary.",
                status=status,
                request_id=request_id,
            )
        return None

    def parse_retry_after(self, value: str | None) -> float | None:
        """Parse Retry-After as integer seconds or an HTTP-date.

        Returns:
            Seconds to wait (never negative), or None if absent or unparseable
        """
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if value.isdigit():
            return float(int(value))
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return float(max(int(when.timestamp() - self.clock()), 0))


def _rate_limit_message(retry_after: float | None, reset_at: datetime | None) -> str:
    parts = ["Rate limit exceeded (429 Too Many Requests)."]
    if retry_after is not None:
        parts.append(f"Retry after {retry_after:g} seconds.")
    elif reset_at is not None:
        parts.append(
            f"Rate limit resets at {reset_at.astimezone(timezone.utc):%Y-%m-%d %H:%M:%S} UTC."
        )
    return " ".join(parts)


def _request_path(response: httpx.Response) -> str:
    try:
        return response.request.url.path
    except RuntimeError:
        return "unknown"


def _is_tls_failure(exc: BaseException) -> bool:
    if isinstance(exc, ssl.SSLError):
        return True
    cause = exc.__cause__ or exc.__context__
    if isinstance(cause, ssl.SSLError):
        return True
    text = str(exc).upper()
    return "SSL" in text or "CERTIFICATE_VERIFY_FAILED" in text
