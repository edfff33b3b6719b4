"""Error hierarchy for the filings API client.

All client errors inherit from SecApiError and sit under exactly one of two
branches:

    SecApiError
    ├── TransientError   (retry may succeed)
    │   ├── RateLimitError
    │   ├── ServerError
    │   └── NetworkError
    └── PermanentError   (never retried)
        ├── ValidationError
        ├── AuthenticationError
        ├── NotFoundError
        ├── PaginationError
        └── ConfigurationError

Catch TransientError or PermanentError to decide retry-vs-fail; catch
SecApiError to handle everything. Use `is_retryable` or `branch` when an
error travels as a value instead of being raised.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar


class Branch(str, Enum):
    """Retry classification of an error kind."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class ErrorKind(str, Enum):
    """Closed set of error kinds produced by the client."""

    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    PAGINATION = "pagination"
    CONFIGURATION = "configuration"

    @property
    def branch(self) -> Branch:
        if self in (ErrorKind.RATE_LIMIT, ErrorKind.SERVER, ErrorKind.NETWORK):
            return Branch.TRANSIENT
        return Branch.PERMANENT


class SecApiError(Exception):
    """Base error for all client errors.

    Attributes:
        message: Error description without the request id prefix
        request_id: Correlation id of the call that produced the error
    """

    kind: ClassVar[ErrorKind | None] = None

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
    ) -> None:
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{request_id}] {message}" if request_id else message)

    @property
    def branch(self) -> Branch | None:
        """Transient/permanent branch, None for the bare root type."""
        return self.kind.branch if self.kind is not None else None

    @property
    def is_retryable(self) -> bool:
        """Whether this error can be retried."""
        return self.branch is Branch.TRANSIENT

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "request_id": self.request_id,
            "is_retryable": self.is_retryable,
        }


class TransientError(SecApiError):
    """Failure that may succeed on retry."""

    @property
    def branch(self) -> Branch:
        return Branch.TRANSIENT

    @property
    def is_retryable(self) -> bool:
        return True


class PermanentError(SecApiError):
    """Failure that will not succeed on retry."""

    @property
    def branch(self) -> Branch:
        return Branch.PERMANENT

    @property
    def is_retryable(self) -> bool:
        return False


class RateLimitError(TransientError):
    """Rate limit exceeded (HTTP 429), or a governed wait ran past its deadline.

    Retry after `retry_after` seconds when the server sent Retry-After,
    otherwise after `reset_at`.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        reset_at: datetime | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        self.reset_at = reset_at

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["retry_after"] = self.retry_after
        d["reset_at"] = self.reset_at.isoformat() if self.reset_at else None
        return d


class ServerError(TransientError):
    """Upstream server failure (HTTP 500-504)."""

    kind = ErrorKind.SERVER

    def __init__(
        self,
        message: str = "Server error",
        *,
        status: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["status"] = self.status
        return d


class NetworkError(TransientError):
    """Timeout, connection failure or TLS failure."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str = "Network error", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ValidationError(PermanentError):
    """Request was malformed or unprocessable (HTTP 400/422)."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation error",
        *,
        status: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["status"] = self.status
        return d


class AuthenticationError(PermanentError):
    """API key rejected or lacks permission (HTTP 401/403)."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Authentication failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class NotFoundError(PermanentError):
    """Requested resource does not exist (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class PaginationError(PermanentError):
    """No further page can be fetched."""

    kind = ErrorKind.PAGINATION

    def __init__(self, message: str = "Pagination error", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ConfigurationError(PermanentError):
    """Client settings are missing or invalid."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str = "Invalid configuration", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


_ERRORS_BY_KIND: dict[ErrorKind, type[SecApiError]] = {
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.SERVER: ServerError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.PAGINATION: PaginationError,
    ErrorKind.CONFIGURATION: ConfigurationError,
}


def error_for_kind(kind: ErrorKind) -> type[SecApiError]:
    """Return the error class raised for an error kind."""
    return _ERRORS_BY_KIND[kind]
