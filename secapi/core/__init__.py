"""Core infrastructure for the filings API client."""

from .errors import (
    AuthenticationError,
    Branch,
    ConfigurationError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    PaginationError,
    PermanentError,
    RateLimitError,
    SecApiError,
    ServerError,
    TransientError,
    ValidationError,
    error_for_kind,
)

__all__ = [
    # Classification
    "Branch",
    "ErrorKind",
    "error_for_kind",
    # Errors
    "SecApiError",
    "TransientError",
    "PermanentError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "PaginationError",
    "ConfigurationError",
]
