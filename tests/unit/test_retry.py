"""Unit tests for pitchparty.retry."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from pitchparty.errors import ErrorCode, PitchPartyError
from pitchparty.retry import _backoff_delay, _jittered_delay, retry_with_backoff


class Flaky:
    """Operation that fails ``failures`` times, then returns ``result``."""

    def __init__(self, failures: int, result: str = "ok", error: Exception | None = None) -> None:
        self.failures = failures
        self.result = result
        self.error = error or RuntimeError("transient")
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return self.result


# ---------------------------------------------------------------------------
# Delay computation
# ---------------------------------------------------------------------------


class TestDelays:
    def test_exponential_growth(self) -> None:
        assert [_backoff_delay(1.0, n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 8.0]

    def test_base_delay_scales(self) -> None:
        assert _backoff_delay(0.5, 3) == 2.0

    def test_jitter_adds_at_most_ten_percent(self) -> None:
        for _ in range(200):
            delay = _jittered_delay(10.0)
            assert 10.0 <= delay <= 11.0


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


class TestTermination:
    async def test_always_failing_makes_r_plus_one_attempts(self) -> None:
        operation = Flaky(failures=100)

        with pytest.raises(PitchPartyError) as exc_info:
            await retry_with_backoff(operation, max_retries=3, base_delay=0.001)

        assert operation.attempts == 4
        assert exc_info.value.code == ErrorCode.RETRIES_EXHAUSTED
        assert exc_info.value.recoverable is True
        assert exc_info.value.__cause__ is operation.error

    async def test_success_on_second_attempt(self) -> None:
        operation = Flaky(failures=1, result="done")

        result = await retry_with_backoff(operation, max_retries=3, base_delay=0.001)

        assert result == "done"
        assert operation.attempts == 2

    async def test_first_attempt_success_does_not_wait(self) -> None:
        operation = Flaky(failures=0)
        mock_wait = AsyncMock(return_value=True)

        with patch("pitchparty.retry._wait", mock_wait):
            result = await retry_with_backoff(operation, max_retries=3, base_delay=1.0)

        assert result == "ok"
        mock_wait.assert_not_awaited()

    async def test_zero_retries_means_single_attempt(self) -> None:
        operation = Flaky(failures=1)

        with pytest.raises(PitchPartyError):
            await retry_with_backoff(operation, max_retries=0, base_delay=0.001)

        assert operation.attempts == 1

    async def test_waits_follow_backoff_schedule(self) -> None:
        operation = Flaky(failures=100)
        mock_wait = AsyncMock(return_value=True)

        with (
            patch("pitchparty.retry._wait", mock_wait),
            patch("pitchparty.retry._jittered_delay", side_effect=lambda delay: delay),
            pytest.raises(PitchPartyError),
        ):
            await retry_with_backoff(operation, max_retries=3, base_delay=1.0)

        delays = [call.args[0] for call in mock_wait.await_args_list]
        assert delays == [1.0, 2.0, 4.0]

    async def test_recoverable_error_is_retried(self) -> None:
        error = PitchPartyError(
            code=ErrorCode.UPSTREAM_REQUEST_FAILED,
            message="HTTP 503",
            suggestion="",
            recoverable=True,
        )
        operation = Flaky(failures=2, error=error)

        result = await retry_with_backoff(operation, max_retries=3, base_delay=0.001)

        assert result == "ok"
        assert operation.attempts == 3

    async def test_non_recoverable_error_is_not_retried(self) -> None:
        error = PitchPartyError(
            code=ErrorCode.UNPARSEABLE_RESPONSE,
            message="bad format",
            suggestion="",
            recoverable=False,
        )
        operation = Flaky(failures=100, error=error)

        with pytest.raises(PitchPartyError) as exc_info:
            await retry_with_backoff(operation, max_retries=3, base_delay=0.001)

        assert exc_info.value is error
        assert operation.attempts == 1


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    async def test_cancel_token_during_wait_aborts_promptly(self) -> None:
        operation = Flaky(failures=100)
        cancel = asyncio.Event()

        async def fire() -> None:
            await asyncio.sleep(0.01)
            cancel.set()

        firing = asyncio.create_task(fire())
        with pytest.raises(PitchPartyError) as exc_info:
            await asyncio.wait_for(
                retry_with_backoff(operation, max_retries=3, base_delay=30.0, cancel=cancel),
                timeout=2.0,
            )
        await firing

        assert exc_info.value.code == ErrorCode.CANCELLED
        assert operation.attempts == 1

    async def test_cancel_token_already_set_skips_retries(self) -> None:
        operation = Flaky(failures=100)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(PitchPartyError) as exc_info:
            await retry_with_backoff(operation, max_retries=3, base_delay=30.0, cancel=cancel)

        assert exc_info.value.code == ErrorCode.CANCELLED
        assert operation.attempts == 1

    async def test_unset_token_does_not_interfere(self) -> None:
        operation = Flaky(failures=2)
        cancel = asyncio.Event()

        result = await retry_with_backoff(
            operation, max_retries=3, base_delay=0.001, cancel=cancel
        )

        assert result == "ok"
        assert operation.attempts == 3

    async def test_task_cancellation_propagates(self) -> None:
        operation = Flaky(failures=100)
        task = asyncio.create_task(
            retry_with_backoff(operation, max_retries=3, base_delay=30.0)
        )
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert operation.attempts == 1
