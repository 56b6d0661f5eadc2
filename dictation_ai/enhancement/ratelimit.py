"""Minimum-interval rate limiting for outbound enhancement calls.

One conceptual slot: each call waits until at least `min_interval`
seconds have passed since the previous call was let through. The
limiter is an owned object rather than module state so every service
(and every test) gets its own clock.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass


@dataclass
class RateLimitResult:
    waited_seconds: float
    interval: float


class MinIntervalRateLimiter:

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_request_time(self) -> float | None:
        return self._last_request

    async def acquire(self) -> RateLimitResult:
        """Suspend until the interval since the last call has elapsed."""
        async with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    await self._sleep(waited)
            self._last_request = self._clock()
        return RateLimitResult(waited_seconds=round(waited, 3), interval=self.min_interval)

    def reset(self) -> None:
        """Forget the last request time. Useful for testing."""
        self._last_request = None
