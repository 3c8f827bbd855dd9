"""
Tests for the async rate limiter.
"""

import asyncio

import pytest

from shared.utils.rate_limiter import RateLimiter


class InFlightCounter:
    def __init__(self, duration: float):
        self.duration = duration
        self.current = 0
        self.max_seen = 0
        self.completed = 0

    async def task(self):
        self.current += 1
        self.max_seen = max(self.max_seen, self.current)
        await asyncio.sleep(self.duration)
        self.current -= 1
        self.completed += 1
        return self.completed


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_single_slot_runs_one_at_a_time(self):
        limiter = RateLimiter(interval_ms=0, max_concurrent=1)
        counter = InFlightCounter(0.05)

        await asyncio.gather(*(limiter.execute(counter.task) for _ in range(5)))

        assert counter.max_seen == 1
        assert counter.completed == 5

    @pytest.mark.asyncio
    async def test_three_slots_bound_in_flight(self):
        limiter = RateLimiter(interval_ms=0, max_concurrent=3)
        counter = InFlightCounter(0.02)

        await asyncio.gather(*(limiter.execute(counter.task) for _ in range(9)))

        assert counter.max_seen <= 3
        assert counter.completed == 9

    @pytest.mark.asyncio
    async def test_admissions_are_spaced(self):
        limiter = RateLimiter(interval_ms=50, max_concurrent=3)
        starts = []

        async def task():
            starts.append(asyncio.get_running_loop().time())

        await asyncio.gather(*(limiter.execute(task) for _ in range(3)))

        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(gap >= 0.045 for gap in gaps)


class TestResultsAndErrors:

    @pytest.mark.asyncio
    async def test_returns_task_result(self):
        limiter = RateLimiter(interval_ms=0)

        async def task():
            return "ok"

        assert await limiter.execute(task) == "ok"

    @pytest.mark.asyncio
    async def test_failure_only_affects_its_caller(self):
        limiter = RateLimiter(interval_ms=0, max_concurrent=2)

        async def boom():
            raise RuntimeError("upstream down")

        async def fine():
            return 1

        results = await asyncio.gather(
            limiter.execute(boom),
            limiter.execute(fine),
            limiter.execute(fine),
            return_exceptions=True,
        )

        assert isinstance(results[0], RuntimeError)
        assert results[1:] == [1, 1]
        assert limiter.size() == 0
        assert limiter.pending() == 0

    def test_rejects_invalid_configuration(self):
        with pytest.raises(ValueError):
            RateLimiter(max_concurrent=0)
        with pytest.raises(ValueError):
            RateLimiter(interval_ms=-1)


class TestWaitForEmpty:

    @pytest.mark.asyncio
    async def test_waits_for_all_enqueued_tasks(self):
        limiter = RateLimiter(interval_ms=0, max_concurrent=2)
        counter = InFlightCounter(0.02)

        tasks = [asyncio.create_task(limiter.execute(counter.task)) for _ in range(6)]
        await asyncio.sleep(0)
        assert limiter.size() + limiter.pending() > 0

        await limiter.wait_for_empty()

        assert counter.completed == 6
        assert limiter.size() == 0
        assert limiter.pending() == 0
        await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_returns_immediately_when_idle(self):
        limiter = RateLimiter()
        await asyncio.wait_for(limiter.wait_for_empty(), timeout=0.1)
