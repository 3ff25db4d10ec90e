"""Bounded exponential backoff for remote provider calls.

Every remote call (text generation, image generation, GIF search) goes
through ``retry_with_backoff``. Delay before retry ``n`` (1-based) is
``base_delay * 2 ** (n - 1)`` plus up to 10% jitter.

Two ways to abort a pending wait:
- an ``asyncio.Event`` cancel token (the preloader's stop signal): the
  retrier raises ``PitchPartyError(CANCELLED)`` instead of the last error;
- task cancellation: ``asyncio.CancelledError`` propagates as usual.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, TypeVar

import structlog

from pitchparty.errors import ErrorCode, PitchPartyError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = structlog.get_logger()

T = TypeVar("T")

JITTER_FRACTION = 0.1


def _backoff_delay(base_delay: float, attempt: int) -> float:
    """Un-jittered delay before retry ``attempt`` (1-based)."""
    return base_delay * (2 ** (attempt - 1))


def _jittered_delay(delay: float) -> float:
    return delay + random.uniform(0, delay * JITTER_FRACTION)


def _cancelled_error(operation_name: str) -> PitchPartyError:
    return PitchPartyError(
        code=ErrorCode.CANCELLED,
        message=f"{operation_name} cancelled while waiting to retry",
        suggestion="The caller is shutting down; no further attempts were made.",
        recoverable=False,
    )


async def _wait(delay: float, cancel: asyncio.Event | None) -> bool:
    """Sleep for ``delay`` seconds. Returns False if ``cancel`` fired first."""
    if cancel is None:
        await asyncio.sleep(delay)
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return True
    return False


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    base_delay: float,
    cancel: asyncio.Event | None = None,
    operation_name: str = "operation",
) -> T:
    """Run ``operation`` with up to ``max_retries`` retries.

    Returns the first successful result. Non-recoverable ``PitchPartyError``s
    are re-raised immediately without consuming retry budget. After the last
    attempt fails, raises ``PitchPartyError(RETRIES_EXHAUSTED)`` chained to
    the last error.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        if attempt > 0:
            if cancel is not None and cancel.is_set():
                raise _cancelled_error(operation_name) from last_error

            delay = _jittered_delay(_backoff_delay(base_delay, attempt))
            log.info(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt,
                max_retries=max_retries,
                delay_seconds=round(delay, 3),
            )
            if not await _wait(delay, cancel):
                raise _cancelled_error(operation_name) from last_error

        try:
            result = await operation()
        except PitchPartyError as exc:
            if not exc.recoverable:
                raise
            last_error = exc
        except Exception as exc:
            last_error = exc
        else:
            if attempt > 0:
                log.info("retry_succeeded", operation=operation_name, attempt=attempt)
            return result

        log.warning(
            "operation_attempt_failed",
            operation=operation_name,
            attempt=attempt + 1,
            error=str(last_error),
        )

    raise PitchPartyError(
        code=ErrorCode.RETRIES_EXHAUSTED,
        message=(
            f"{operation_name} failed after {max_retries + 1} attempts, "
            f"last error: {last_error}"
        ),
        suggestion="The provider may be rate limiting or unavailable. Try again later.",
        recoverable=True,
    ) from last_error
