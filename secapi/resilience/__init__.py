"""Resilience components for API requests.

Provides the error classification and retry patterns:
- ErrorClassifier: Maps statuses and transport failures to typed outcomes
- Outcome: Tagged result of a single attempt
- RetryExecutor: Exponential backoff over transient outcomes
"""

from .classifier import ErrorClassifier, Outcome
from .retry import RetryExecutor

__all__ = [
    "ErrorClassifier",
    "Outcome",
    "RetryExecutor",
]
