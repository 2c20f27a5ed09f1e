"""
Natours Backend: Rate Limiter Tests
=====================================

What we test:
    ✅ Exactly max_requests admitted per window, the next one rejected
    ✅ Window resets once the window duration has elapsed
    ✅ Concurrent hits from one IP are all counted (no lost updates)
    ✅ Identities are counted independently
    ✅ Redis store: INCR, EXPIRE on first hit, TTL afterwards
    ✅ Guard attaches X-RateLimit-* headers and skips /health
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from natours.exceptions import RateLimitExceededError
from natours.middleware.context import RequestContext
from natours.middleware.rate_limit import (
    FixedWindowRateLimiter,
    InMemoryRateLimitStore,
    RateLimitGuard,
    RateLimitWindow,
    RedisRateLimitStore,
)


def make_limiter(clock, max_requests=3, window_seconds=3600):
    return FixedWindowRateLimiter(
        InMemoryRateLimitStore(),
        max_requests=max_requests,
        window_seconds=window_seconds,
        clock=clock,
    )


class TestFixedWindowRateLimiter:

    @pytest.mark.asyncio
    async def test_admits_up_to_limit_then_rejects(self, clock):
        limiter = make_limiter(clock)
        for expected in (1, 2, 3):
            window = await limiter.hit("1.2.3.4")
            assert window.count == expected

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.hit("1.2.3.4")
        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Too many requests from this IP, try after 1 hour"
        assert exc_info.value.retry_after == 3600

    @pytest.mark.asyncio
    async def test_retry_after_counts_down(self, clock):
        limiter = make_limiter(clock, max_requests=1)
        await limiter.hit("ip")
        clock.advance(1000)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.hit("ip")
        assert exc_info.value.retry_after == 2600

    @pytest.mark.asyncio
    async def test_window_resets_after_duration(self, clock):
        limiter = make_limiter(clock, max_requests=2)
        await limiter.hit("ip")
        await limiter.hit("ip")
        with pytest.raises(RateLimitExceededError):
            await limiter.hit("ip")

        clock.advance(3599)
        with pytest.raises(RateLimitExceededError):
            await limiter.hit("ip")

        clock.advance(1)
        window = await limiter.hit("ip")
        assert window.count == 1

    @pytest.mark.asyncio
    async def test_rejected_hits_do_not_grow_the_counter(self, clock):
        limiter = make_limiter(clock, max_requests=2)
        for _ in range(2):
            await limiter.hit("ip")
        for _ in range(50):
            with pytest.raises(RateLimitExceededError):
                await limiter.hit("ip")
        assert limiter.store.get("ip").count == 3

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, clock):
        limiter = make_limiter(clock, max_requests=1)
        await limiter.hit("10.0.0.1")
        await limiter.hit("10.0.0.2")
        with pytest.raises(RateLimitExceededError):
            await limiter.hit("10.0.0.1")

    @pytest.mark.asyncio
    async def test_concurrent_hits_are_all_counted(self, clock):
        limiter = make_limiter(clock, max_requests=100)
        results = await asyncio.gather(
            *(limiter.hit("ip") for _ in range(150)), return_exceptions=True
        )
        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, RateLimitExceededError)]
        assert len(admitted) == 100
        assert len(rejected) == 50
        assert sorted(window.count for window in admitted) == list(range(1, 101))

    def test_headers_describe_remaining_budget(self, clock):
        limiter = make_limiter(clock, max_requests=100)
        window = RateLimitWindow(count=40, started_at=clock.now)
        headers = limiter.headers(window)
        assert headers["X-RateLimit-Limit"] == "100"
        assert headers["X-RateLimit-Remaining"] == "60"
        assert headers["X-RateLimit-Reset"] == str(int(clock.now) + 3600)


class TestInMemoryStorePurge:

    @pytest.mark.asyncio
    async def test_expired_windows_are_purged(self):
        store = InMemoryRateLimitStore(purge_every=2)
        await store.increment("old", now=0, window_seconds=10, cap=5)
        await store.increment("new", now=20, window_seconds=10, cap=5)
        assert store.get("old") is None
        assert store.get("new").count == 1
        assert len(store) == 1


class TestRedisRateLimitStore:

    @pytest.mark.asyncio
    async def test_first_hit_sets_expiry(self):
        client = AsyncMock()
        client.incr.return_value = 1
        store = RedisRateLimitStore(client)

        window = await store.increment("1.2.3.4", now=1000.0, window_seconds=3600, cap=101)

        client.incr.assert_awaited_once_with("natours:ratelimit:1.2.3.4")
        client.expire.assert_awaited_once_with("natours:ratelimit:1.2.3.4", 3600)
        assert window.count == 1
        assert window.started_at == 1000.0

    @pytest.mark.asyncio
    async def test_later_hit_derives_window_start_from_ttl(self):
        client = AsyncMock()
        client.incr.return_value = 7
        client.ttl.return_value = 600
        store = RedisRateLimitStore(client)

        window = await store.increment("ip", now=5000.0, window_seconds=3600, cap=101)

        client.expire.assert_not_awaited()
        assert window.count == 7
        assert window.resets_at(3600) == 5600.0

    @pytest.mark.asyncio
    async def test_limiter_rejects_with_redis_counts(self, clock):
        client = AsyncMock()
        client.incr.return_value = 101
        client.ttl.return_value = 120
        limiter = FixedWindowRateLimiter(RedisRateLimitStore(client), clock=clock)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.hit("ip")
        assert exc_info.value.retry_after == 120


class TestRateLimitGuard:

    @pytest.mark.asyncio
    async def test_guard_sets_headers(self, clock):
        guard = RateLimitGuard(make_limiter(clock))
        ctx = RequestContext(client_ip="ip", method="GET", path="/api/v1/tours")
        await guard(ctx)
        assert ctx.response_headers["X-RateLimit-Remaining"] == "2"

    @pytest.mark.asyncio
    async def test_health_is_not_counted(self, clock):
        limiter = make_limiter(clock, max_requests=1)
        guard = RateLimitGuard(limiter)
        for _ in range(5):
            await guard(RequestContext(client_ip="ip", method="GET", path="/health"))
        assert limiter.store.get("ip") is None
