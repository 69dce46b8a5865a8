from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Leaky-bucket pacer shared by every language model call.

    Each `acquire()` reserves the next free slot, spaced `1 / calls_per_second`
    apart, and sleeps until that slot. A rate of 0 disables pacing.
    """

    def __init__(
        self,
        calls_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    async def acquire(self) -> float:
        """Wait for the next slot; returns the number of seconds waited."""
        if not self.enabled:
            return 0.0

        async with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
            wait = slot - now

        if wait > 0:
            await self._sleep(wait)
        return wait
