"""Configuration module for the filings API client."""

from .constants import (
    # API
    DEFAULT_BASE_URL,
    # Timeouts
    DEFAULT_REQUEST_TIMEOUT,
    # Rate limit
    DEFAULT_QUEUE_WAIT,
    DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD,
    DEFAULT_RATE_LIMIT_THRESHOLD,
)
from .settings import ClientSettings, get_settings, load_settings

__all__ = [
    "ClientSettings",
    "get_settings",
    "load_settings",
    "DEFAULT_BASE_URL",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_QUEUE_WAIT",
    "DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD",
    "DEFAULT_RATE_LIMIT_THRESHOLD",
]
