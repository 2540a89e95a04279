"""Tests for bounded retry with backoff."""

import unittest
from unittest.mock import AsyncMock, MagicMock

import pytest

from likedmirror.core.backoff import BackoffExecutor, RetryPolicy, backoff_delay
from tests.conftest import RecordingSleep


class TestBackoffDelay(unittest.TestCase):
    """Test suite for delay computation."""

    def test_exponential_doubles_per_attempt(self):
        assert [backoff_delay(n, 2.0) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_fixed_mode_returns_initial_delay(self):
        assert [backoff_delay(n, 2.0, exponential=False) for n in (1, 2, 3)] == [2.0, 2.0, 2.0]

    def test_attempt_is_one_indexed(self):
        with pytest.raises(ValueError):
            backoff_delay(0, 1.0)


class TestRetryPolicy(unittest.TestCase):
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.initial_delay == 2.0
        assert policy.use_exponential_backoff is True

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            RetryPolicy(initial_delay=-1)


class TestBackoffExecutor(unittest.IsolatedAsyncioTestCase):
    """Test suite for BackoffExecutor.run."""

    async def test_success_on_first_try(self):
        """No retries and no waiting when the first attempt succeeds."""
        sleep = RecordingSleep()
        func = AsyncMock(return_value="page")

        result = await BackoffExecutor(sleep=sleep).run(func)

        assert result == "page"
        assert func.call_count == 1
        assert sleep.delays == []

    async def test_observer_called_between_attempts(self):
        """Fail, fail, succeed: observer sees attempts 1 and 2, delays 2s then 4s."""
        sleep = RecordingSleep()
        observer = MagicMock()
        errors = [ConnectionError("reset"), TimeoutError("slow")]
        func = AsyncMock(side_effect=[*errors, "page"])
        policy = RetryPolicy(max_retries=3, initial_delay=2.0, on_retry=observer)

        result = await BackoffExecutor(sleep=sleep).run(func, policy)

        assert result == "page"
        assert func.call_count == 3
        assert sleep.delays == [2.0, 4.0]
        assert [c.args for c in observer.call_args_list] == [(1, errors[0]), (2, errors[1])]

    async def test_last_error_propagates_after_all_attempts(self):
        """Three failures: the third error is raised, the observer ran twice."""
        sleep = RecordingSleep()
        observer = MagicMock()
        func = AsyncMock(
            side_effect=[ValueError("first"), ValueError("second"), ValueError("third")]
        )
        policy = RetryPolicy(max_retries=3, initial_delay=2.0, on_retry=observer)

        with pytest.raises(ValueError, match="third"):
            await BackoffExecutor(sleep=sleep).run(func, policy)

        assert func.call_count == 3
        assert observer.call_count == 2
        assert sleep.delays == [2.0, 4.0]

    async def test_fixed_backoff(self):
        sleep = RecordingSleep()
        func = AsyncMock(side_effect=[OSError("a"), OSError("b"), "ok"])
        policy = RetryPolicy(max_retries=3, initial_delay=1.5, use_exponential_backoff=False)

        await BackoffExecutor(sleep=sleep).run(func, policy)

        assert sleep.delays == [1.5, 1.5]

    async def test_single_attempt_never_sleeps(self):
        sleep = RecordingSleep()
        func = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await BackoffExecutor(sleep=sleep).run(func, RetryPolicy(max_retries=1))

        assert sleep.delays == []

    async def test_retry_if_rejects_permanent_error(self):
        """An error the predicate rejects is raised at once, with no wait."""
        sleep = RecordingSleep()
        observer = MagicMock()
        func = AsyncMock(side_effect=PermissionError("401 Unauthorized"))
        policy = RetryPolicy(
            max_retries=3,
            on_retry=observer,
            retry_if=lambda exc: isinstance(exc, ConnectionError),
        )

        with pytest.raises(PermissionError):
            await BackoffExecutor(sleep=sleep).run(func, policy)

        assert func.call_count == 1
        assert observer.call_count == 0
        assert sleep.delays == []

    async def test_retry_if_accepts_transient_error(self):
        sleep = RecordingSleep()
        func = AsyncMock(side_effect=[ConnectionError("reset"), "page"])
        policy = RetryPolicy(retry_if=lambda exc: isinstance(exc, ConnectionError))

        result = await BackoffExecutor(sleep=sleep).run(func, policy)

        assert result == "page"
        assert sleep.delays == [2.0]

    async def test_failing_observer_does_not_stop_retries(self):
        """An exception raised by the observer is logged, not propagated."""
        sleep = RecordingSleep()
        observer = MagicMock(side_effect=RuntimeError("observer broke"))
        func = AsyncMock(side_effect=[ConnectionError("reset"), "page"])
        policy = RetryPolicy(max_retries=3, initial_delay=0.5, on_retry=observer)

        result = await BackoffExecutor(sleep=sleep).run(func, policy)

        assert result == "page"
        assert observer.call_count == 1


if __name__ == "__main__":
    unittest.main()
