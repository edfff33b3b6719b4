"""Thread-safe holder of the shared rate-limit state.

One tracker exists per client and is passed explicitly to everything that
reads or updates the budget. The lock, the condition used to park exhausted
callers, the state and the queue counter all live here together.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .state import RateLimitState


@dataclass
class RateLimitTracker:
    """Shared rate-limit state plus the count of parked callers.

    Usage:
        tracker = RateLimitTracker()
        tracker.update(RateLimitState(limit=100, remaining=95))

        state = tracker.current_state
        print(state.percentage_remaining)  # 95.0
    """

    _state: RateLimitState | None = field(default=None, init=False)
    _queued_count: int = field(default=0, init=False)
    # Reentrant so governor code holding locked() can still call the accessors
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _condition: threading.Condition = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._condition = threading.Condition(self._lock)

    @property
    def current_state(self) -> RateLimitState | None:
        """Latest state, or None before any rate-limit headers were seen."""
        with self._lock:
            return self._state

    @property
    def queued_count(self) -> int:
        """Number of callers currently waiting for capacity."""
        with self._lock:
            return self._queued_count

    def update(self, state: RateLimitState) -> None:
        """Replace the current state."""
        with self._lock:
            self._state = state

    def reset(self) -> None:
        """Forget the current state and queue count."""
        with self._lock:
            self._state = None
            self._queued_count = 0

    def increment_queued(self) -> int:
        with self._lock:
            self._queued_count += 1
            return self._queued_count

    def decrement_queued(self) -> int:
        """Decrement the queue count, never going below zero."""
        with self._lock:
            self._queued_count = max(self._queued_count - 1, 0)
            return self._queued_count

    @contextmanager
    def queued(self) -> Iterator[int]:
        """Hold a queue slot for the duration of the block.

        Yields:
            Queue size after this caller joined
        """
        size = self.increment_queued()
        try:
            yield size
        finally:
            self.decrement_queued()

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the tracker lock, required around wait()."""
        with self._condition:
            yield

    def wait(self, timeout: float) -> bool:
        """Park until notified or `timeout` seconds pass. Caller must hold locked()."""
        return self._condition.wait(timeout)

    def notify_one(self) -> None:
        """Wake one parked caller so it can re-check the state."""
        with self._condition:
            self._condition.notify()
