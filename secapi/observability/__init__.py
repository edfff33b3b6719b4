"""Observability infrastructure for the filings API client.

Provides structured logging, observer callbacks and metrics collection.
"""

from .hooks import Hooks
from .logger import LogContext, get_logger, log_context, setup_logging
from .metrics import MetricsBackend, MetricsCollector, RequestMetrics

__all__ = [
    "Hooks",
    "LogContext",
    "get_logger",
    "log_context",
    "setup_logging",
    "MetricsBackend",
    "MetricsCollector",
    "RequestMetrics",
]
