"""Retry helper for flaky third-party reads."""

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Operation failed (attempt {retry_state.attempt_number}): {error}. "
        f"Retrying in {wait_time:.1f}s"
    )


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call ``operation`` until it succeeds or attempts run out.

    The wait grows linearly: ``delay * attempt`` seconds after each failed
    attempt (1s, 2s, ... with the default delay). The last failure is
    re-raised unchanged.

    Args:
        operation: Zero-argument coroutine function
        max_attempts: Total number of calls, at least 1
        delay: Base delay in seconds
        retry_on: Exception types that trigger another attempt
        sleep: Coroutine used to wait between attempts

    Returns:
        The first successful result

    Example:
        resolution = await retry_async(lambda: resolver.resolve(name))
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=delay, increment=delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
