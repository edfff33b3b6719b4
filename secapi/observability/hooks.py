"""Observer callbacks for request lifecycle and rate-limit events.

Usage:
    from secapi.observability import Hooks

    hooks = Hooks(
        on_throttle=lambda info: print(f"throttling {info['delay']:.1f}s"),
        on_response=lambda info: statsd.timing("api", info["duration_ms"]),
    )
    client = Client(hooks=hooks)

Every callback receives a single dict payload. A callback that raises is
logged and ignored; it never affects the request being observed.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable

from .logger import get_logger

logger = get_logger(__name__)

Callback = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class Hooks:
    """Optional callbacks, keyed by event name."""

    on_request: Callback | None = None
    on_response: Callback | None = None
    on_retry: Callback | None = None
    on_error: Callback | None = None
    on_rate_limit: Callback | None = None
    on_throttle: Callback | None = None
    on_queue: Callback | None = None
    on_dequeue: Callback | None = None
    on_excessive_wait: Callback | None = None

    @classmethod
    def event_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        """Invoke the callback registered for `name`, swallowing failures.

        Args:
            name: Callback attribute name (e.g. "on_throttle")
            payload: Event data passed to the callback
        """
        callback = getattr(self, name, None)
        if callback is None:
            return

        try:
            callback(payload)
        except Exception as e:
            logger.error(
                f"Callback {name} failed: {e}",
                extra={
                    "event": "secapi.callback_error",
                    "callback": name,
                    "request_id": payload.get("request_id"),
                    "error_class": type(e).__name__,
                    "error_message": str(e),
                },
            )
