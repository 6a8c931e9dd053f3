"""
Tests for retry logic.
"""

import pytest
from unittest.mock import patch

from jobtracker.retry import RetryError, exponential_backoff


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("jobtracker.retry.time.sleep") as sleep:
        yield sleep


class TestExponentialBackoff:
    """Test exponential backoff decorator."""

    def test_success_on_first_try(self, no_sleep):
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.1)
        def succeeds():
            call_count[0] += 1
            return "success"

        assert succeeds() == "success"
        assert call_count[0] == 1
        no_sleep.assert_not_called()

    def test_retry_then_succeed(self):
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        def fails_twice():
            call_count[0] += 1
            if call_count[0] < 3:
                raise ConnectionError("Temporary failure")
            return "success"

        assert fails_twice() == "success"
        assert call_count[0] == 3

    def test_all_retries_exhausted(self):
        call_count = [0]

        @exponential_backoff(max_retries=2, base_delay=0.01)
        def always_fails():
            call_count[0] += 1
            raise ValueError("Always fails")

        with pytest.raises(RetryError) as exc_info:
            always_fails()

        assert call_count[0] == 3  # initial + 2 retries
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_only_catches_specified_exceptions(self):
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01, exceptions=(ConnectionError,))
        def raises_value_error():
            call_count[0] += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            raises_value_error()

        assert call_count[0] == 1

    def test_exponential_delay(self, no_sleep):
        @exponential_backoff(max_retries=3, base_delay=1.0, exponential_base=2.0)
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            always_fails()

        delays = [c.args[0] for c in no_sleep.call_args_list]
        assert delays == [1.0, 2.0, 4.0]

    def test_max_delay_cap(self, no_sleep):
        @exponential_backoff(max_retries=3, base_delay=10.0, max_delay=15.0)
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            always_fails()

        delays = [c.args[0] for c in no_sleep.call_args_list]
        assert delays == [10.0, 15.0, 15.0]

    def test_on_retry_callback(self):
        calls = []

        @exponential_backoff(
            max_retries=2,
            base_delay=0.5,
            on_retry=lambda attempt, exc, delay: calls.append((attempt, str(exc), delay)),
        )
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            always_fails()

        assert calls == [(1, "down", 0.5), (2, "down", 1.0)]

    def test_preserves_function_metadata(self):
        @exponential_backoff()
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."
