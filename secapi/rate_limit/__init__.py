"""Rate limiting infrastructure for API requests."""

from .backoff import BackoffPolicy, ExponentialBackoff, NoBackoff
from .governor import RequestGovernor
from .state import RateLimitState
from .tracker import RateLimitTracker

__all__ = [
    # State
    "RateLimitState",
    "RateLimitTracker",
    # Governance
    "RequestGovernor",
    # Backoff policies
    "BackoffPolicy",
    "ExponentialBackoff",
    "NoBackoff",
]
