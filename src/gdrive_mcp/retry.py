"""Retry policy wrapped around every outbound Google API call.

Built on tenacity: client errors (4xx except 429) stop immediately, anything
else is retried with a linearly growing delay.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from gdrive_mcp.errors import get_status_code

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000


def is_retryable(error: BaseException) -> bool:
    """Return False for client errors (4xx) other than 429."""
    if not isinstance(error, Exception):
        return False
    code = get_status_code(error)
    if code is not None and 400 <= code < 500 and code != 429:
        return False
    return True


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _retry_logger(max_retries: int) -> Callable[[RetryCallState], None]:
    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Attempt %d/%d failed (status=%s): %s",
            retry_state.attempt_number,
            max_retries,
            get_status_code(error) if error is not None else None,
            error,
        )

    return log_retry


async def execute(
    call: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
) -> T:
    """Run ``call`` with linear backoff retries.

    Client errors (4xx except 429) are raised immediately. Any other failure
    is retried; the delay before attempt ``k`` (0-indexed) is
    ``base_delay_ms * k``. Once ``max_retries`` attempts have failed the last
    error is raised unchanged.

    Args:
        call: Zero-argument coroutine function performing the remote call.
        max_retries: Total number of attempts.
        base_delay_ms: Backoff step in milliseconds.

    Returns:
        Whatever ``call`` returns on its first successful attempt.

    Raises:
        ValueError: If ``max_retries`` is less than 1.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    step = base_delay_ms / 1000
    retrying = AsyncRetrying(
        sleep=_sleep,
        stop=stop_after_attempt(max_retries),
        # tenacity counts the failed attempt from 1, so start at one step
        wait=wait_incrementing(start=step, increment=step),
        retry=retry_if_exception(is_retryable),
        before_sleep=_retry_logger(max_retries),
        reraise=True,
    )
    return await retrying(call)
