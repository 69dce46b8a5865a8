from __future__ import annotations

import pytest

from querylens.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_rate_limiter_spaces_calls():
    clock = FakeClock()
    limiter = RateLimiter(4.0, clock=clock, sleep=clock.sleep)

    waits = [await limiter.acquire() for _ in range(3)]

    assert waits == [0.0, 0.25, 0.25]
    assert clock.sleeps == [0.25, 0.25]


@pytest.mark.asyncio
async def test_rate_limiter_does_not_wait_after_idle_period():
    clock = FakeClock()
    limiter = RateLimiter(2.0, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now += 5.0

    assert await limiter.acquire() == 0.0
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_rate_limiter_disabled_at_zero():
    clock = FakeClock()
    limiter = RateLimiter(0, clock=clock, sleep=clock.sleep)

    assert not limiter.enabled
    for _ in range(5):
        assert await limiter.acquire() == 0.0
    assert clock.sleeps == []
