import asyncio

import pytest

from routerisk.cache import TTLCache


class Counter:
    def __init__(self, delay=0.0):
        self.calls = 0
        self.delay = delay

    async def __call__(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.calls


@pytest.mark.asyncio
class TestTTLCache:
    async def test_reuses_value_within_ttl(self, clock):
        cache = TTLCache(60, clock=clock)
        compute = Counter()

        assert await cache.get_or_compute("k", compute) == 1
        clock.advance(59.9)
        assert await cache.get_or_compute("k", compute) == 1
        assert compute.calls == 1

    async def test_recomputes_at_expiry(self, clock):
        cache = TTLCache(60, clock=clock)
        compute = Counter()

        await cache.get_or_compute("k", compute)
        clock.advance(60)
        assert await cache.get_or_compute("k", compute) == 2

    async def test_keys_are_independent(self, clock):
        cache = TTLCache(60, clock=clock)
        await cache.get_or_compute(("user", 1), Counter())
        await cache.get_or_compute(("user", 2), Counter())
        assert len(cache) == 2

    async def test_zero_ttl_never_reuses(self, clock):
        cache = TTLCache(0, clock=clock)
        compute = Counter()
        await cache.get_or_compute("k", compute)
        await cache.get_or_compute("k", compute)
        assert compute.calls == 2

    async def test_failures_are_not_cached(self, clock):
        cache = TTLCache(60, clock=clock)

        async def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_compute("k", fail)
        assert len(cache) == 0
        assert await cache.get_or_compute("k", Counter()) == 1

    async def test_concurrent_callers_share_one_computation(self, clock):
        cache = TTLCache(60, clock=clock)
        compute = Counter(delay=0.05)

        results = await asyncio.gather(*(cache.get_or_compute("k", compute) for _ in range(5)))

        assert results == [1] * 5
        assert compute.calls == 1
