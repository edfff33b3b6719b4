"""Tests for secapi/resilience/retry.py."""

from datetime import datetime, timezone

import httpx
import pytest

from secapi.core.errors import NetworkError, NotFoundError, RateLimitError, ServerError
from secapi.observability.hooks import Hooks
from secapi.observability.metrics import MetricsCollector
from secapi.rate_limit.backoff import ExponentialBackoff, NoBackoff
from secapi.resilience.classifier import Outcome
from secapi.resilience.retry import RetryExecutor

from .fixtures.fakes import FakeClock


def _ok() -> Outcome:
    return Outcome.success(httpx.Response(200, request=httpx.Request("GET", "https://x.test/")))


def _script(*outcomes: Outcome):
    """send_once that replays outcomes and records attempt numbers."""
    attempts: list[int] = []
    queue = list(outcomes)

    def send_once(attempt: int) -> Outcome:
        attempts.append(attempt)
        return queue.pop(0)

    return send_once, attempts


def _executor(clock: FakeClock, max_attempts: int = 3, **kwargs) -> RetryExecutor:
    backoff = ExponentialBackoff(initial_delay=1.0, factor=2, max_delay_val=60.0, max_attempts_val=max_attempts)
    return RetryExecutor(backoff=backoff, clock=clock, sleep=clock.sleep, **kwargs)


class TestExponentialBackoff:
    """Tests for ExponentialBackoff delays."""

    def test_doubles(self):
        backoff = ExponentialBackoff(initial_delay=1.0, factor=2, max_delay_val=60.0)
        assert [backoff.next_delay(i) for i in range(5)] == [1, 2, 4, 8, 16]

    def test_capped(self):
        backoff = ExponentialBackoff(initial_delay=1.0, factor=2, max_delay_val=5.0)
        assert backoff.next_delay(10) == 5.0

    def test_jitter_stays_under_cap(self):
        backoff = ExponentialBackoff(initial_delay=4.0, factor=2, max_delay_val=5.0, jitter=3.0)
        for _ in range(20):
            assert 4.0 <= backoff.next_delay(0) <= 5.0

    def test_should_retry(self):
        backoff = ExponentialBackoff(max_attempts_val=2)
        assert backoff.should_retry(0)
        assert backoff.should_retry(1)
        assert not backoff.should_retry(2)


class TestExecute:
    """Tests for RetryExecutor.execute()."""

    def test_success_first_try(self):
        clock = FakeClock()
        send_once, attempts = _script(_ok())
        response = _executor(clock).execute(send_once, "r1")
        assert response.status_code == 200
        assert attempts == [0]
        assert clock.sleeps == []

    def test_transient_then_success(self):
        """Transient failures are retried with exponential delays."""
        clock = FakeClock()
        send_once, attempts = _script(
            Outcome.failure(ServerError("down", status=503)),
            Outcome.failure(NetworkError("reset")),
            _ok(),
        )
        response = _executor(clock).execute(send_once, "r1")
        assert response.status_code == 200
        assert attempts == [0, 1, 2]
        assert clock.sleeps == [1.0, 2.0]

    def test_permanent_raised_immediately(self):
        """Permanent errors are never retried."""
        clock = FakeClock()
        send_once, attempts = _script(Outcome.failure(NotFoundError("gone")))
        with pytest.raises(NotFoundError):
            _executor(clock).execute(send_once, "r1")
        assert attempts == [0]
        assert clock.sleeps == []

    def test_exhausted_raises_last_error(self):
        """After max_attempts retries the last transient error escapes."""
        clock = FakeClock()
        metrics = MetricsCollector()
        errors = [ServerError(f"down {i}", status=500) for i in range(3)]
        send_once, attempts = _script(*(Outcome.failure(e) for e in errors))

        with pytest.raises(ServerError) as exc_info:
            _executor(clock, max_attempts=2, metrics=metrics).execute(send_once, "r1")

        assert exc_info.value is errors[-1]
        assert attempts == [0, 1, 2]
        assert metrics.current.retries == 2
        assert metrics.current.retries_exhausted == 1

    def test_no_retries_configured(self):
        clock = FakeClock()
        send_once, attempts = _script(Outcome.failure(ServerError("down")))
        executor = RetryExecutor(backoff=NoBackoff(max_attempts_val=0), clock=clock, sleep=clock.sleep)
        with pytest.raises(ServerError):
            executor.execute(send_once, "r1")
        assert attempts == [0]

    def test_deadline_stops_retry(self):
        """A retry that would land past the deadline is not scheduled."""
        clock = FakeClock()
        send_once, attempts = _script(
            Outcome.failure(ServerError("down")),
            Outcome.failure(ServerError("down")),
            _ok(),
        )
        with pytest.raises(ServerError):
            _executor(clock).execute(send_once, "r1", deadline=clock.now + 2.5)
        assert attempts == [0, 1]
        assert clock.sleeps == [1.0]

    def test_on_retry_hook(self):
        """on_retry gets the 1-based attempt, delay and error."""
        clock = FakeClock()
        calls = []
        error = ServerError("down")
        send_once, _ = _script(Outcome.failure(error), _ok())

        _executor(clock, hooks=Hooks(on_retry=calls.append)).execute(send_once, "r1")

        assert calls == [
            {"request_id": "r1", "attempt": 1, "max_attempts": 3, "error": error, "delay": 1.0}
        ]


class TestRateLimitDelay:
    """Waits derived from 429 responses."""

    def test_retry_after_wins_when_longer(self):
        clock = FakeClock()
        executor = _executor(clock)
        assert executor.delay_for(RateLimitError(retry_after=30), 0) == 30

    def test_backoff_wins_when_longer(self):
        clock = FakeClock()
        executor = _executor(clock)
        assert executor.delay_for(RateLimitError(retry_after=1), 3) == 8

    def test_retry_after_capped(self):
        clock = FakeClock()
        executor = _executor(clock)
        assert executor.delay_for(RateLimitError(retry_after=3600), 0) == 60

    def test_reset_time_used_without_retry_after(self):
        clock = FakeClock()
        executor = _executor(clock)
        reset = datetime.fromtimestamp(clock.now + 20, tz=timezone.utc)
        assert executor.delay_for(RateLimitError(reset_at=reset), 0) == 20

    def test_reset_time_floor(self):
        """A reset a fraction of a second away still waits at least one second."""
        clock = FakeClock()
        executor = _executor(clock)
        reset = datetime.fromtimestamp(clock.now + 0.2, tz=timezone.utc)
        assert executor.delay_for(RateLimitError(reset_at=reset), 0) == 1.0

    def test_rate_limit_hook(self):
        """Retrying a 429 emits on_rate_limit."""
        clock = FakeClock()
        calls = []
        send_once, _ = _script(Outcome.failure(RateLimitError(retry_after=5)), _ok())

        _executor(clock, hooks=Hooks(on_rate_limit=calls.append)).execute(send_once, "r1")

        assert calls[0]["retry_after"] == 5
        assert calls[0]["attempt"] == 1
        assert calls[0]["request_id"] == "r1"
        assert clock.sleeps == [5]
