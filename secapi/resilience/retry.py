"""Exponential Backoff Retry Executor.

Retries transient outcomes with exponential backoff:
- Configurable max retries, initial delay, factor and cap
- Rate-limit responses wait for Retry-After or the reset time instead
- Permanent outcomes are surfaced immediately
- A caller deadline stops further retries
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

import httpx

from secapi.core.errors import Branch, RateLimitError, SecApiError
from secapi.observability.hooks import Hooks
from secapi.observability.logger import get_logger
from secapi.observability.metrics import MetricsCollector
from secapi.rate_limit.backoff import BackoffPolicy, ExponentialBackoff

from .classifier import Outcome

if TYPE_CHECKING:
    from secapi.config.settings import ClientSettings

logger = get_logger(__name__)

# Floor for waits derived from the rate-limit reset header
MIN_RESET_DELAY = 1.0


@dataclass
class RetryExecutor:
    """Retry executor driven by classified outcomes.

    Usage:
        executor = RetryExecutor(backoff=ExponentialBackoff(max_attempts_val=3))

        response = executor.execute(send_once, request_id)

    `send_once(attempt)` must return an Outcome; it is never expected to raise
    for HTTP or transport failures.
    """

    backoff: BackoffPolicy = field(default_factory=ExponentialBackoff)
    hooks: Hooks = field(default_factory=Hooks)
    metrics: MetricsCollector | None = None
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kwargs) -> RetryExecutor:
        return cls(backoff=ExponentialBackoff.from_settings(settings), **kwargs)

    def execute(
        self,
        send_once: Callable[[int], Outcome],
        request_id: str,
        deadline: float | None = None,
    ) -> httpx.Response:
        """Run `send_once` until it succeeds or retrying stops.

        Args:
            send_once: Performs one attempt (0-based attempt number)
            request_id: Correlation id shared by all attempts
            deadline: Absolute time after which no retry is scheduled

        Returns:
            The successful response

        Raises:
            SecApiError: Permanent error at once, transient error once retries are exhausted
        """
        attempt = 0
        while True:
            outcome = send_once(attempt)

            if outcome.is_success:
                assert outcome.response is not None
                return outcome.response

            error = outcome.error
            assert error is not None

            if outcome.branch is not Branch.TRANSIENT:
                logger.debug(f"Non-retryable error: {type(error).__name__}")
                raise error

            if not self.backoff.should_retry(attempt):
                self._on_exhausted(error, attempt)
                raise error

            delay = self.delay_for(error, attempt)
            if deadline is not None and self.clock() + delay > deadline:
                logger.warning(
                    f"Retry in {delay:.1f}s would pass the request deadline",
                    extra={"event": "secapi.request.retry_abandoned", "error": type(error).__name__},
                )
                raise error

            self._on_retry(error, attempt, delay, request_id)
            self.sleep(delay)
            attempt += 1

    def delay_for(self, error: SecApiError, attempt: int) -> float:
        """Calculate the wait before retry number `attempt` (0-based)."""
        delay = self.backoff.next_delay(attempt)
        cap = self.backoff.max_delay()

        if isinstance(error, RateLimitError):
            if error.retry_after is not None:
                delay = max(delay, error.retry_after)
            elif error.reset_at is not None:
                until_reset = error.reset_at.timestamp() - self.clock()
                if until_reset > 0:
                    delay = min(max(until_reset, MIN_RESET_DELAY), cap)

        return min(delay, cap)

    def _on_retry(self, error: SecApiError, attempt: int, delay: float, request_id: str) -> None:
        max_attempts = self.backoff.max_attempts()
        error_type = type(error).__name__

        if self.metrics is not None:
            self.metrics.record_retry(attempt + 1, error_type)

        if isinstance(error, RateLimitError):
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "event": "secapi.rate_limit.exceeded",
                    "retry_after": error.retry_after,
                    "reset_at": error.reset_at.isoformat() if error.reset_at else None,
                    "attempt": attempt + 1,
                },
            )
            self.hooks.emit(
                "on_rate_limit",
                {
                    "retry_after": error.retry_after,
                    "reset_at": error.reset_at,
                    "attempt": attempt + 1,
                    "request_id": request_id,
                },
            )

        logger.info(
            f"Retry {attempt + 1}/{max_attempts} after {delay:.1f}s",
            extra={
                "event": "secapi.request.retry",
                "attempt": attempt + 1,
                "max_attempts": max_attempts,
                "error_class": error_type,
                "error_message": error.message,
                "will_retry_in": round(delay, 2),
            },
        )
        self.hooks.emit(
            "on_retry",
            {
                "request_id": request_id,
                "attempt": attempt + 1,
                "max_attempts": max_attempts,
                "error": error,
                "delay": delay,
            },
        )

    def _on_exhausted(self, error: SecApiError, attempt: int) -> None:
        error_type = type(error).__name__
        if self.metrics is not None:
            self.metrics.record_retries_exhausted(attempt + 1, error_type)
        logger.warning(
            f"Max retries ({self.backoff.max_attempts()}) exhausted",
            extra={"event": "secapi.request.retries_exhausted", "error": error_type},
        )
