"""Testes do token bucket e do governador de envio."""

from __future__ import annotations

import asyncio

import pytest

from app.services.rate_governor import OutboundRateGovernor, TokenBucket
from tests.fakes.fake_clock import FakeClock

EPSILON = 1e-9


def _governor(clock: FakeClock, **kwargs: float) -> OutboundRateGovernor:
    return OutboundRateGovernor(clock=clock, sleep=clock.sleep, **kwargs)


def _max_in_any_window(times: list[float], window: float = 1.0) -> int:
    ordered = sorted(times)
    best = 0
    start = 0
    for end, moment in enumerate(ordered):
        while moment - ordered[start] >= window - EPSILON:
            start += 1
        best = max(best, end - start + 1)
    return best


class TestTokenBucket:
    def test_rate_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            TokenBucket(0)

    def test_try_acquire_refills_fractionally(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(2.0, clock=clock)

        assert bucket.try_acquire() is True
        assert bucket.try_acquire() is False
        clock.advance(0.25)
        assert bucket.try_acquire() is False
        clock.advance(0.25)
        assert bucket.try_acquire() is True

    @pytest.mark.asyncio
    async def test_acquire_waits_for_refill(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(1.0, clock=clock, sleep=clock.sleep)

        await bucket.acquire()
        await bucket.acquire()

        assert clock.now == pytest.approx(1.0)

    def test_float_residue_counts_as_full_token(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(30.0, clock=clock)

        assert bucket.try_acquire() is True
        clock.advance(1 / 30 - 1e-15)
        assert bucket.try_acquire() is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start", [0.0, 1_700_000_000.0])
    async def test_concurrent_acquires_always_complete(self, start: float) -> None:
        clock = FakeClock(start)
        bucket = TokenBucket(30.0, clock=clock, sleep=clock.sleep)

        await asyncio.wait_for(asyncio.gather(*(bucket.acquire() for _ in range(40))), timeout=3)

        assert clock.now - start >= 39 / 30 - 1e-3


class TestOutboundRateGovernor:
    @pytest.mark.asyncio
    async def test_per_observer_limit_one_per_second(self) -> None:
        clock = FakeClock()
        governor = _governor(clock)
        grants: list[float] = []

        for _ in range(5):
            await governor.acquire("42")
            grants.append(clock.now)

        gaps = [later - earlier for earlier, later in zip(grants, grants[1:])]
        assert all(gap >= 1.0 - EPSILON for gap in gaps)

    @pytest.mark.asyncio
    async def test_global_window_never_exceeds_rate(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, global_rate=30.0)
        grants: list[float] = []

        async def send(observer_id: str) -> None:
            await governor.acquire(observer_id)
            grants.append(clock.now)

        await asyncio.gather(*(send(str(index)) for index in range(120)))

        assert len(grants) == 120
        assert _max_in_any_window(grants) <= 30

    @pytest.mark.asyncio
    async def test_sequential_global_spacing(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, global_rate=30.0)
        grants: list[float] = []

        for index in range(90):
            await governor.acquire(str(index))
            grants.append(clock.now)

        for index in range(len(grants) - 30):
            assert grants[index + 30] - grants[index] >= 1.0 - EPSILON

    @pytest.mark.asyncio
    async def test_priority_bypasses_observer_tier(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, global_rate=1000.0)

        await governor.acquire("42")
        started = clock.now
        await governor.acquire("42", priority=True)
        assert clock.now - started < 0.01

        await governor.acquire("42")
        assert clock.now - started >= 1.0 - EPSILON

    @pytest.mark.asyncio
    async def test_priority_still_consumes_global(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, global_rate=1.0)

        await governor.acquire("a", priority=True)
        await governor.acquire("b", priority=True)

        assert clock.now >= 1.0 - EPSILON

    @pytest.mark.asyncio
    async def test_tracks_one_bucket_per_observer(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, global_rate=1000.0)
        for observer_id in ("1", "2", "2"):
            await governor.acquire(observer_id)
        assert governor.tracked_observers() == 2
