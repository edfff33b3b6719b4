"""Delays between retries of a transient failure.

The retry executor asks its policy two things: may attempt N be retried,
and how long to sleep before it. Server hints (Retry-After, reset time)
are layered on top by the executor; a policy only knows about attempts.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from secapi.config.constants import (
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY,
)

if TYPE_CHECKING:
    from secapi.config.settings import ClientSettings


class BackoffPolicy(ABC):
    """How long to wait before each retry, and how many retries to allow."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Seconds to sleep before retry number `attempt` (0 = first retry)."""
        ...

    @abstractmethod
    def max_attempts(self) -> int:
        """Retries allowed after the first send."""
        ...

    @abstractmethod
    def max_delay(self) -> float:
        """Ceiling for any single sleep, server hints included."""
        ...

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts()


@dataclass
class ExponentialBackoff(BackoffPolicy):
    """Doubling delays, capped.

    delay = min(initial * (factor ^ attempt) + jitter, max_delay)

    With defaults (1s, x2, cap 60s): 1, 2, 4, 8, 16 seconds.
    """

    initial_delay: float = DEFAULT_RETRY_INITIAL_DELAY
    factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    max_delay_val: float = DEFAULT_RETRY_MAX_DELAY
    jitter: float = 0.0
    max_attempts_val: int = DEFAULT_RETRY_MAX_ATTEMPTS

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> ExponentialBackoff:
        return cls(
            initial_delay=settings.retry_initial_delay,
            factor=settings.retry_backoff_factor,
            max_delay_val=settings.retry_max_delay,
            max_attempts_val=settings.retry_max_attempts,
        )

    def next_delay(self, attempt: int) -> float:
        delay = self.initial_delay * (self.factor**attempt)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return min(delay, self.max_delay_val)

    def max_attempts(self) -> int:
        return self.max_attempts_val

    def max_delay(self) -> float:
        return self.max_delay_val


@dataclass
class NoBackoff(BackoffPolicy):
    """Retry immediately (for testing)."""

    max_attempts_val: int = 1

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def max_attempts(self) -> int:
        return self.max_attempts_val

    def max_delay(self) -> float:
        return 0.0
