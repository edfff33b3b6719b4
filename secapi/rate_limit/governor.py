"""Request governor: gates every outbound call against the shared budget.

Two policies run before each request:

- Exhaustion queueing: when the last response reported zero remaining
  requests, the caller parks on the tracker's condition until the window
  resets or another response reports capacity again.
- Proactive throttling: when remaining quota falls below the threshold
  fraction of the limit, the caller sleeps until the reset time so the
  remaining budget is not burned in a burst.

After each response the governor stores the new rate-limit headers and
wakes one parked caller, which re-checks the state before proceeding.

Usage:
    governor = RequestGovernor(tracker=RateLimitTracker())

    governor.before_request(request_id)
    response = http.send(request)
    governor.after_response(response.headers, request_id)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from secapi.config.constants import (
    DEFAULT_QUEUE_WAIT,
    DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD,
    DEFAULT_RATE_LIMIT_THRESHOLD,
)
from secapi.core.errors import RateLimitError
from secapi.observability.hooks import Hooks
from secapi.observability.logger import get_logger
from secapi.observability.metrics import MetricsCollector

from .state import RateLimitState
from .tracker import RateLimitTracker

logger = get_logger(__name__)


@dataclass
class RequestGovernor:
    """Throttle and queue callers based on the tracker's rate-limit state.

    Attributes:
        tracker: Shared state store, one per client
        threshold: Fraction of the limit below which throttling starts
        default_wait: Queue wait when exhausted and the reset time is unknown
        warning_threshold: Queue waits longer than this fire on_excessive_wait
        hooks: Observer callbacks
        metrics: Optional metrics collector
        clock: Returns the current Unix time; used to read reset times and
            deadlines. Queue waits always elapse in real time.
        sleep: Blocks for the given seconds (throttle only)
    """

    tracker: RateLimitTracker
    threshold: float = DEFAULT_RATE_LIMIT_THRESHOLD
    default_wait: float = DEFAULT_QUEUE_WAIT
    warning_threshold: float = DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD
    hooks: Hooks = field(default_factory=Hooks)
    metrics: MetricsCollector | None = None
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], None] = time.sleep

    def before_request(self, request_id: str, deadline: float | None = None) -> None:
        """Block until the request may be sent.

        Args:
            request_id: Correlation id of the call
            deadline: Absolute time (same scale as `clock`) the caller will wait until

        Raises:
            RateLimitError: If the deadline passes while queued or throttling
        """
        state = self.tracker.current_state
        if state is None:
            return

        if state.exhausted:
            self._wait_for_capacity(state, request_id, deadline)
            state = self.tracker.current_state
            if state is None or state.exhausted:
                # Window presumed reset; let the request discover the new budget
                return

        self._throttle(state, request_id, deadline)

    def after_response(self, headers: Mapping[str, Any], request_id: str | None = None) -> None:
        """Record rate-limit headers from a response and wake one waiter."""
        try:
            state = RateLimitState.from_headers(headers)
            if state is not None:
                self.tracker.update(state)
                logger.debug(
                    "Rate limit state updated",
                    extra={"event": "secapi.rate_limit.update", **state.to_dict()},
                )
        finally:
            self.tracker.notify_one()

    def release(self) -> None:
        """Wake one waiter after a call that produced no response."""
        self.tracker.notify_one()

    # ==================== Exhaustion queue ====================

    def _wait_for_capacity(
        self,
        state: RateLimitState,
        request_id: str,
        deadline: float | None,
    ) -> None:
        started = self.clock()
        wait_until = started + self._queue_wait(state, started)
        wait_time = wait_until - started

        with self.tracker.queued() as queue_size:
            self.hooks.emit(
                "on_queue",
                {
                    "queue_size": queue_size,
                    "wait_time": wait_time,
                    "reset_at": state.reset_at,
                    "request_id": request_id,
                },
            )
            logger.info(
                f"Rate limit exhausted, queued for up to {wait_time:.1f}s",
                extra={
                    "event": "secapi.rate_limit.queued",
                    "queue_size": queue_size,
                    "wait_time": round(wait_time, 2),
                },
            )
            if wait_time > self.warning_threshold:
                self._warn_excessive_wait(wait_time, state, request_id)

            self._park(state, wait_until, request_id, deadline)

            waited = self.clock() - started

        remaining_queue = self.tracker.queued_count

        if self.metrics is not None:
            self.metrics.record_queue_wait(waited)
        self.hooks.emit(
            "on_dequeue",
            {"queue_size": remaining_queue, "waited": waited, "request_id": request_id},
        )
        logger.info(
            f"Left rate limit queue after {waited:.1f}s",
            extra={"event": "secapi.rate_limit.dequeued", "waited": round(waited, 2)},
        )

    def _park(
        self,
        seen: RateLimitState,
        wait_until: float,
        request_id: str,
        deadline: float | None,
    ) -> None:
        # wait_until and deadline are on the clock's scale; the condition wait
        # runs in real time, so both are converted to monotonic ends once.
        started = time.monotonic()
        now = self.clock()
        wait_end = started + (wait_until - now)
        deadline_end = started + (deadline - now) if deadline is not None else None

        # Re-check after every wake: another caller may have consumed the
        # capacity that woke us, or a newer exhausted state may move the reset.
        with self.tracker.locked():
            while True:
                state = self.tracker.current_state
                if state is None or not state.exhausted:
                    return
                mono = time.monotonic()
                if state is not seen:
                    seen = state
                    wait_end = mono + self._queue_wait(state, self.clock())
                if mono >= wait_end:
                    return
                if deadline_end is not None and mono >= deadline_end:
                    raise RateLimitError(
                        "Deadline exceeded while waiting for rate limit reset",
                        reset_at=state.reset_at,
                        request_id=request_id,
                    )
                timeout = wait_end - mono
                if deadline_end is not None:
                    timeout = min(timeout, deadline_end - mono)
                self.tracker.wait(timeout)

    def _queue_wait(self, state: RateLimitState, now: float) -> float:
        seconds = state.seconds_until_reset(now)
        if seconds is not None and seconds > 0:
            return seconds
        return self.default_wait

    def _warn_excessive_wait(
        self,
        wait_time: float,
        state: RateLimitState,
        request_id: str,
    ) -> None:
        self.hooks.emit(
            "on_excessive_wait",
            {
                "wait_time": wait_time,
                "threshold": self.warning_threshold,
                "reset_at": state.reset_at,
                "request_id": request_id,
            },
        )
        logger.warning(
            f"Rate limit queue wait of {wait_time:.0f}s exceeds {self.warning_threshold:.0f}s",
            extra={
                "event": "secapi.rate_limit.excessive_wait",
                "wait_time": round(wait_time, 2),
                "threshold": self.warning_threshold,
            },
        )

    # ==================== Proactive throttle ====================

    def should_throttle(self, state: RateLimitState, now: float | None = None) -> bool:
        """Whether `state` is below the throttle threshold with a future reset."""
        if self.threshold <= 0:
            return False
        if state.limit is None or state.remaining is None or state.reset_at is None:
            return False
        if state.is_stale(self.clock() if now is None else now):
            return False
        # Exact ratio; percentage_remaining is rounded for display
        if state.limit == 0:
            return True
        return state.remaining / state.limit < self.threshold

    def _throttle(
        self,
        state: RateLimitState,
        request_id: str,
        deadline: float | None,
    ) -> None:
        now = self.clock()
        if not self.should_throttle(state, now):
            return

        delay = max(state.seconds_until_reset(now) or 0.0, 0.0)
        if deadline is not None and now + delay > deadline:
            raise RateLimitError(
                f"Throttle delay of {delay:.1f}s would exceed the request deadline",
                reset_at=state.reset_at,
                request_id=request_id,
            )

        self.hooks.emit(
            "on_throttle",
            {
                "remaining": state.remaining,
                "limit": state.limit,
                "delay": delay,
                "reset_at": state.reset_at,
                "request_id": request_id,
            },
        )
        logger.info(
            f"Throttling for {delay:.1f}s ({state.remaining}/{state.limit} remaining)",
            extra={
                "event": "secapi.rate_limit.throttle",
                "remaining": state.remaining,
                "limit": state.limit,
                "delay": round(delay, 2),
            },
        )
        if self.metrics is not None:
            self.metrics.record_throttle(delay, state.remaining)

        self.sleep(delay)
