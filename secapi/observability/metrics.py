"""Metrics collection for the filings API client.

Tracks request statistics like success rate, latency, retries and
rate-limit pressure. Counters are kept in memory and can also be forwarded
to an external backend (StatsD, Datadog, Prometheus adapters, ...).

Usage:
    from secapi.observability import MetricsCollector

    metrics = MetricsCollector(backend=statsd_adapter)
    client = Client(metrics=metrics)

    client.search("ticker:AAPL")
    print(metrics.current.success_rate)  # 100.0
    print(metrics.current.to_summary())
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from .logger import get_logger

logger = get_logger(__name__)

# Metric names forwarded to the backend
REQUESTS_TOTAL = "sec_api.requests.total"
REQUESTS_SUCCESS = "sec_api.requests.success"
REQUESTS_ERROR = "sec_api.requests.error"
REQUESTS_DURATION_MS = "sec_api.requests.duration_ms"
RETRIES_TOTAL = "sec_api.retries.total"
RETRIES_EXHAUSTED = "sec_api.retries.exhausted"
RATE_LIMIT_HIT = "sec_api.rate_limit.hit"
RATE_LIMIT_THROTTLE = "sec_api.rate_limit.throttle"
RATE_LIMIT_QUEUED = "sec_api.rate_limit.queued"
RATE_LIMIT_REMAINING = "sec_api.rate_limit.remaining"


@runtime_checkable
class MetricsBackend(Protocol):
    """Protocol for external metrics sinks."""

    def increment(self, name: str, tags: dict[str, str] | None = None) -> None: ...

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None: ...

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None: ...


@dataclass
class RequestMetrics:
    """Request statistics since the collector was created or last reset."""

    started_at: datetime = field(default_factory=datetime.now)

    # Counts
    requests: int = 0
    successful: int = 0
    failed: int = 0

    # Breakdown
    status_counts: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)

    # Timing (milliseconds)
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    # Resilience
    retries: int = 0
    retries_exhausted: int = 0
    rate_limit_hits: int = 0
    throttles: int = 0
    throttle_seconds: float = 0.0
    queue_waits: int = 0
    queue_seconds: float = 0.0

    @property
    def success_rate(self) -> float:
        """Success rate as percentage (0-100)."""
        if self.requests == 0:
            return 0.0
        return self.successful / self.requests * 100

    @property
    def average_duration_ms(self) -> float:
        """Mean duration of completed requests."""
        completed = self.successful + self.failed
        if completed == 0:
            return 0.0
        return self.total_duration_ms / completed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/storage."""
        return {
            "started_at": self.started_at.isoformat(),
            "requests": self.requests,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": round(self.success_rate, 2),
            "average_duration_ms": round(self.average_duration_ms, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "status_counts": self.status_counts,
            "errors_by_type": self.errors_by_type,
            "retries": self.retries,
            "retries_exhausted": self.retries_exhausted,
            "rate_limit_hits": self.rate_limit_hits,
            "throttles": self.throttles,
            "throttle_seconds": round(self.throttle_seconds, 2),
            "queue_waits": self.queue_waits,
            "queue_seconds": round(self.queue_seconds, 2),
        }

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Request Summary",
            "=" * 40,
            f"Requests: {self.requests}",
            f"Success: {self.successful} ({self.success_rate:.1f}%)",
            f"Failed: {self.failed}",
            f"Avg latency: {self.average_duration_ms:.0f}ms",
        ]

        if self.errors_by_type:
            lines.append("")
            lines.append("Errors by Type:")
            for error_type, count in sorted(
                self.errors_by_type.items(), key=lambda x: -x[1]
            ):
                lines.append(f"  {error_type}: {count}")

        if self.retries > 0:
            lines.append(f"\nRetries: {self.retries} ({self.retries_exhausted} exhausted)")

        if self.rate_limit_hits > 0:
            lines.append(f"Rate Limit Hits: {self.rate_limit_hits}")

        if self.throttles > 0:
            lines.append(f"Throttled: {self.throttles} times, {self.throttle_seconds:.1f}s")

        if self.queue_waits > 0:
            lines.append(f"Queued: {self.queue_waits} times, {self.queue_seconds:.1f}s")

        return "\n".join(lines)


class MetricsCollector:
    """Collect request metrics and forward them to an optional backend.

    Safe to share between threads. Backend failures are logged, never raised.
    """

    def __init__(self, backend: MetricsBackend | None = None) -> None:
        self.backend = backend
        self._lock = threading.Lock()
        self._current = RequestMetrics()

    @property
    def current(self) -> RequestMetrics:
        """Get current request metrics."""
        return self._current

    def reset(self) -> RequestMetrics:
        """Start a fresh metrics window and return the finished one."""
        with self._lock:
            finished = self._current
            self._current = RequestMetrics()
        return finished

    def record_request(self, method: str) -> None:
        """Record that a request attempt is about to be sent."""
        with self._lock:
            self._current.requests += 1
        self._forward("increment", REQUESTS_TOTAL, tags={"method": method})

    def record_response(self, method: str, status: int, duration_ms: float) -> None:
        """Record a response that passed classification."""
        with self._lock:
            m = self._current
            m.successful += 1
            m.status_counts[status] = m.status_counts.get(status, 0) + 1
            self._record_duration(duration_ms)
        tags = {"method": method, "status": str(status)}
        self._forward("increment", REQUESTS_SUCCESS, tags=tags)
        self._forward("histogram", REQUESTS_DURATION_MS, duration_ms, tags=tags)

    def record_error(
        self,
        method: str,
        error_type: str,
        duration_ms: float,
        status: int | None = None,
    ) -> None:
        """Record a failed request attempt."""
        with self._lock:
            m = self._current
            m.failed += 1
            m.errors_by_type[error_type] = m.errors_by_type.get(error_type, 0) + 1
            if status is not None:
                m.status_counts[status] = m.status_counts.get(status, 0) + 1
            self._record_duration(duration_ms)
        tags = {"method": method, "error_class": error_type}
        self._forward("increment", REQUESTS_ERROR, tags=tags)
        self._forward("histogram", REQUESTS_DURATION_MS, duration_ms, tags=tags)

    def record_retry(self, attempt: int, error_type: str) -> None:
        """Record a retry about to happen."""
        with self._lock:
            self._current.retries += 1
        self._forward(
            "increment",
            RETRIES_TOTAL,
            tags={"attempt": str(attempt), "error_class": error_type},
        )

    def record_retries_exhausted(self, attempts: int, error_type: str) -> None:
        """Record a call that failed after its last retry."""
        with self._lock:
            self._current.retries_exhausted += 1
        self._forward(
            "increment",
            RETRIES_EXHAUSTED,
            tags={"attempts": str(attempts), "error_class": error_type},
        )

    def record_rate_limit(self) -> None:
        """Record a 429 response."""
        with self._lock:
            self._current.rate_limit_hits += 1
        self._forward("increment", RATE_LIMIT_HIT)

    def record_throttle(self, delay: float, remaining: int | None) -> None:
        """Record a proactive throttle sleep."""
        with self._lock:
            self._current.throttles += 1
            self._current.throttle_seconds += delay
        self._forward("histogram", RATE_LIMIT_THROTTLE, delay)
        if remaining is not None:
            self._forward("gauge", RATE_LIMIT_REMAINING, float(remaining))

    def record_queue_wait(self, waited: float) -> None:
        """Record a caller parked on an exhausted budget."""
        with self._lock:
            self._current.queue_waits += 1
            self._current.queue_seconds += waited
        self._forward("histogram", RATE_LIMIT_QUEUED, waited)

    def _record_duration(self, duration_ms: float) -> None:
        # Caller holds the lock
        self._current.total_duration_ms += duration_ms
        self._current.max_duration_ms = max(self._current.max_duration_ms, duration_ms)

    def _forward(self, method: str, name: str, *args: Any, **kwargs: Any) -> None:
        if self.backend is None:
            return
        try:
            getattr(self.backend, method)(name, *args, **kwargs)
        except Exception as e:
            logger.warning(
                f"Metrics backend {method}({name}) failed: {e}",
                extra={"event": "secapi.metrics_error", "metric": name},
            )
