"""Client for a filings search API with rate-limit governance and retries."""

from secapi.client import Client
from secapi.config.settings import ClientSettings, load_settings
from secapi.core.errors import (
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
)
from secapi.models import ExtractedData, Filing, FulltextResult
from secapi.observability import Hooks, MetricsCollector, setup_logging
from secapi.pagination import FulltextResults, Page
from secapi.query import Query
from secapi.rate_limit import RateLimitState, RateLimitTracker

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "Client",
    "ClientSettings",
    "load_settings",
    "Query",
    # Results
    "Page",
    "Filing",
    "FulltextResult",
    "FulltextResults",
    "ExtractedData",
    # Rate limit
    "RateLimitState",
    "RateLimitTracker",
    # Observability
    "Hooks",
    "MetricsCollector",
    "setup_logging",
    # Errors
    "Branch",
    "ErrorKind",
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
