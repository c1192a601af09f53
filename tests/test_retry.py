"""
Tests for the store retry policy.

Sleep is injected so no test waits on the clock.
"""

import pytest

from quote_engine.errors import InvalidInputError, TransientStoreError
from quote_engine.retry import RetryPolicy, call_with_retry


class FlakyCall:
    """Fails with the given error a fixed number of times, then succeeds."""

    def __init__(self, failures, error=TransientStoreError("connection reset")):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value


@pytest.fixture
def sleeps():
    return []


class TestRetryPolicy:

    def test_delays_double_up_to_max(self):
        policy = RetryPolicy(max_attempts=5, initial_delay=0.5, max_delay=1.5)

        assert policy.delay_for(1) == 0.5
        assert policy.delay_for(2) == 1.0
        assert policy.delay_for(3) == 1.5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("QUOTE_ENGINE_RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("QUOTE_ENGINE_RETRY_INITIAL_DELAY", "0.1")
        policy = RetryPolicy.from_env()

        assert policy.max_attempts == 5
        assert policy.initial_delay == 0.1
        assert policy.max_delay == 2.0


class TestCallWithRetry:

    def test_succeeds_after_transient_failures(self, sleeps):
        call = FlakyCall(failures=2)
        result = call_with_retry(call, RetryPolicy(), "ok", sleep=sleeps.append)

        assert result == "ok"
        assert call.calls == 3
        assert sleeps == [0.2, 0.4]

    def test_gives_up_after_max_attempts(self, sleeps):
        call = FlakyCall(failures=5)

        with pytest.raises(TransientStoreError):
            call_with_retry(call, RetryPolicy(max_attempts=3), "ok", sleep=sleeps.append)

        assert call.calls == 3
        assert len(sleeps) == 2

    def test_connection_errors_are_retried(self, sleeps):
        call = FlakyCall(failures=1, error=ConnectionError("refused"))
        assert call_with_retry(call, RetryPolicy(), "ok", sleep=sleeps.append) == "ok"

    def test_business_errors_are_not_retried(self, sleeps):
        call = FlakyCall(failures=1, error=InvalidInputError("bad quantity"))

        with pytest.raises(InvalidInputError):
            call_with_retry(call, RetryPolicy(), "ok", sleep=sleeps.append)

        assert call.calls == 1
        assert sleeps == []
