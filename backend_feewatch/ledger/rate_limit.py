"""
Rate limiting and retry backoff for per-item RPC calls.

RateLimiter spaces successive calls (minimum interval, plus an optional longer
pause every K-th call). BackoffPolicy decides how long to wait between retry
attempts of one item. Both take an injectable sleep so tests run instantly.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Fixed-interval scheduler: min interval between acquires."""

    def __init__(
        self,
        rate_per_sec: float,
        *,
        pause_every: int = 0,
        pause_sec: float = 0.0,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self._pause_every = max(0, pause_every)
        self._pause_sec = max(0.0, pause_sec)
        self._sleep = sleep
        self._clock = clock
        self._last_acquire: float | None = None
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def acquired(self) -> int:
        """Number of acquires so far."""
        return self._count

    async def acquire(self) -> None:
        async with self._lock:
            wait = 0.0
            if self._last_acquire is not None:
                elapsed = self._clock() - self._last_acquire
                if elapsed < self._interval:
                    wait = self._interval - elapsed
            if self._pause_every and self._count and self._count % self._pause_every == 0:
                wait = max(wait, self._pause_sec)
            if wait > 0:
                await self._sleep(wait)
            self._count += 1
            self._last_acquire = self._clock()


def unlimited() -> RateLimiter:
    """A limiter that never waits (tests, local fixtures)."""
    return RateLimiter(0.0)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff with a cap.

    max_attempts counts every call including the first; delay before retry n
    (1-based) is min(initial_delay_sec * multiplier ** (n - 1), max_delay_sec).
    """

    max_attempts: int = 3
    initial_delay_sec: float = 0.5
    multiplier: float = 2.0
    max_delay_sec: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_sec < 0 or self.max_delay_sec < 0:
            raise ValueError("backoff delays must be non-negative")

    def delay_for(self, retry_number: int) -> float:
        return min(self.initial_delay_sec * (self.multiplier ** (retry_number - 1)), self.max_delay_sec)

    def delays(self) -> list[float]:
        """Waits between attempts; length is max_attempts - 1."""
        return [self.delay_for(n) for n in range(1, self.max_attempts)]
