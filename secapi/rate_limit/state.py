"""Immutable snapshot of the API's rate-limit headers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from secapi.config.constants import (
    RATE_LIMIT_LIMIT_HEADER,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
)


def _parse_int(value: Any) -> int | None:
    """Parse a header value as an integer, None when absent or malformed."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse a Unix-seconds header value as an aware UTC datetime."""
    seconds = _parse_int(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _header(headers: Mapping[str, Any], name: str) -> Any:
    # httpx.Headers is already case-insensitive; plain dicts are not
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if str(key).lower() == name:
            return candidate
    return None


@dataclass(frozen=True)
class RateLimitState:
    """Rate-limit information from the most recent response.

    Any field may be None when the server omitted the header.

    Attributes:
        limit: Requests allowed per window
        remaining: Requests left in the current window
        reset_at: When the window resets (UTC)
    """

    limit: int | None = None
    remaining: int | None = None
    reset_at: datetime | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, Any]) -> RateLimitState | None:
        """Build a state from response headers.

        Returns:
            New state, or None if none of the rate-limit headers are present
        """
        limit = _parse_int(_header(headers, RATE_LIMIT_LIMIT_HEADER))
        remaining = _parse_int(_header(headers, RATE_LIMIT_REMAINING_HEADER))
        reset_at = _parse_timestamp(_header(headers, RATE_LIMIT_RESET_HEADER))

        if limit is None and remaining is None and reset_at is None:
            return None
        return cls(limit=limit, remaining=remaining, reset_at=reset_at)

    @property
    def exhausted(self) -> bool:
        """True when the server reported zero remaining requests."""
        return self.remaining == 0

    @property
    def available(self) -> bool:
        """True unless exhausted. Unknown remaining counts as available."""
        return not self.exhausted

    @property
    def percentage_remaining(self) -> float | None:
        """Remaining quota as a percentage of the limit, one decimal place."""
        if self.limit is None or self.remaining is None:
            return None
        if self.limit == 0:
            return 0.0
        return round(self.remaining / self.limit * 100, 1)

    def seconds_until_reset(self, now: float) -> float | None:
        """Seconds from `now` (Unix time) until reset; negative when past."""
        if self.reset_at is None:
            return None
        return self.reset_at.timestamp() - now

    def is_stale(self, now: float) -> bool:
        """True when the reported reset time has already passed."""
        seconds = self.seconds_until_reset(now)
        return seconds is not None and seconds <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "percentage_remaining": self.percentage_remaining,
            "exhausted": self.exhausted,
        }
