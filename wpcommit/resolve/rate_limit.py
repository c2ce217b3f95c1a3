"""Global single-slot rate limiter for outbound lookups."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]

DEFAULT_MIN_INTERVAL_SECONDS = 0.1


class RateLimiter:
    """Enforce a minimum spacing between granted acquisitions.

    One instance is shared by every resolver kind. Waiters queue on an
    ``asyncio.Lock`` so grants are handed out in arrival order.
    """

    _min_interval: float
    _clock: Clock
    _sleep: Sleeper
    _last_granted_at: float | None
    _lock: asyncio.Lock

    def __init__(
        self,
        *,
        min_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Create limiter with injectable clock and sleep for tests."""
        self._min_interval = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_granted_at = None
        self._lock = asyncio.Lock()

    @property
    def min_interval_seconds(self) -> float:
        """Return the configured minimum spacing."""
        return self._min_interval

    def try_acquire(self) -> float:
        """Grant now and return 0.0, or return the delay before a retry."""
        now = self._clock()
        if self._last_granted_at is not None:
            elapsed = now - self._last_granted_at
            if elapsed < self._min_interval:
                return self._min_interval - elapsed
        self._last_granted_at = now
        return 0.0

    async def acquire(self) -> None:
        """Wait until a slot is granted."""
        async with self._lock:
            while (delay := self.try_acquire()) > 0:
                await self._sleep(delay)
