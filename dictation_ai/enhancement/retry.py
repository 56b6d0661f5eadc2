"""Retry with exponential backoff for transient provider failures."""

import asyncio
import errno
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import tenacity

from dictation_ai.errors import EnhancementError, NetworkError
from dictation_ai.logging.audit import get_audit_logger

T = TypeVar("T")

# OS-level connectivity failures worth another attempt
TRANSIENT_ERRNOS = frozenset({
    errno.ENETUNREACH,
    errno.ENETDOWN,
    errno.ENETRESET,
    errno.ECONNRESET,
    errno.ECONNABORTED,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.EHOSTUNREACH,
})


def is_transient(exc: BaseException) -> bool:
    """Network errors, 5xx, 429 and connectivity errnos are retryable."""
    if isinstance(exc, EnhancementError):
        return exc.retryable
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, OSError):
        return exc.errno in TRANSIENT_ERRNOS
    return False


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """Run `fn` up to `max_attempts` times.

    Waits `initial_delay`, then double that, between attempts. Only
    transient failures are retried; anything else propagates at once.
    Backoff sleeps are ordinary awaits, so cancelling the calling task
    stops the loop. Raw transport errors that exhaust the budget are
    surfaced as NetworkError.
    """
    logger = get_audit_logger()
    retrying = tenacity.AsyncRetrying(
        reraise=True,
        stop=tenacity.stop_after_attempt(max_attempts),
        wait=tenacity.wait_exponential(multiplier=initial_delay, exp_base=2),
        retry=tenacity.retry_if_exception(is_transient),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        sleep=sleep or asyncio.sleep,
    )
    try:
        return await retrying(fn)
    except (httpx.TransportError, OSError) as e:
        if is_transient(e):
            logger.error(
                "Request failed after retries with network error",
                extra={"audit_data": {"attempts": max_attempts, "error": str(e)}},
            )
            raise NetworkError(str(e)) from e
        raise
