"""
Natours Backend: Rate Limiting Guard
======================================

What:  Per-IP fixed-window rate limiter (100 requests per hour by default).
How:   FixedWindowRateLimiter asks an injectable RateLimitStore to increment
       the caller's window atomically, then compares the result with the
       configured maximum. RateLimitGuard plugs the limiter into the pipeline.
Who:   Third guard in the pipeline (after security headers and access log).
When:  Before the body is read, so rejected requests never reach parsing,
       sanitization or the routers.

Algorithm: Fixed Window Counter
    1. Each identity has a window {count, started_at}
    2. No window, or now >= started_at + window → reset to {1, now}, admit
    3. Otherwise count + 1; if count > max → reject with 429
    4. The counter is capped at max + 1 so rejected requests do not keep
       growing state

Stores:
    InMemoryRateLimitStore: single process, per-key asyncio.Lock around the
                            read-modify-write
    RedisRateLimitStore:    shared by every worker, atomic INCR + EXPIRE
"""

import asyncio
import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import redis.asyncio as aioredis

from natours.exceptions import RateLimitExceededError
from natours.middleware.context import RequestContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitWindow:
    """Counter state for one identity."""

    count: int
    started_at: float

    def resets_at(self, window_seconds: int) -> float:
        return self.started_at + window_seconds


class RateLimitStore(Protocol):
    """Owner of the window table. ``increment`` must be atomic per key."""

    async def increment(
        self, key: str, now: float, window_seconds: int, cap: int
    ) -> RateLimitWindow:
        ...


class InMemoryRateLimitStore:
    """
    Window table held in process memory.

    Every increment for a key runs under that key's asyncio.Lock, so two
    interleaved requests from the same IP can never read the same count and
    both write count + 1.

    Expired windows are purged every ``purge_every`` increments to bound
    memory growth from one-off client addresses.
    """

    def __init__(self, purge_every: int = 1000):
        self._windows: Dict[str, RateLimitWindow] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._purge_every = purge_every
        self._increments = 0

    async def increment(
        self, key: str, now: float, window_seconds: int, cap: int
    ) -> RateLimitWindow:
        async with self._locks[key]:
            current = self._windows.get(key)
            if current is None or now >= current.resets_at(window_seconds):
                updated = RateLimitWindow(count=1, started_at=now)
            else:
                updated = RateLimitWindow(
                    count=min(current.count + 1, cap),
                    started_at=current.started_at,
                )
            self._windows[key] = updated

        self._increments += 1
        if self._increments % self._purge_every == 0:
            self._purge_expired(now, window_seconds)
        return updated

    def get(self, key: str) -> Optional[RateLimitWindow]:
        return self._windows.get(key)

    def __len__(self) -> int:
        return len(self._windows)

    def _purge_expired(self, now: float, window_seconds: int) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now >= window.resets_at(window_seconds) and not self._locks[key].locked()
        ]
        for key in expired:
            del self._windows[key]
            self._locks.pop(key, None)

        if expired:
            logger.debug("Purged %d expired rate limit windows", len(expired))


class RedisRateLimitStore:
    """
    Window table held in Redis, shared across workers and instances.

    INCR is atomic on the server; the key gets its TTL on the first hit of a
    window, so the key's expiry is the window reset. The count cap is not
    applied here: a rejected request still increments the key, which expires
    with the window anyway.
    """

    def __init__(self, client: "aioredis.Redis", prefix: str = "natours:ratelimit:"):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisRateLimitStore":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client, **kwargs)

    async def increment(
        self, key: str, now: float, window_seconds: int, cap: int
    ) -> RateLimitWindow:
        redis_key = f"{self._prefix}{key}"
        count = int(await self._client.incr(redis_key))
        if count == 1:
            await self._client.expire(redis_key, window_seconds)
            return RateLimitWindow(count=1, started_at=now)

        ttl = int(await self._client.ttl(redis_key))
        if ttl < 0:
            # Key lost its expiry (crash between INCR and EXPIRE): restart the window.
            await self._client.expire(redis_key, window_seconds)
            ttl = window_seconds
        return RateLimitWindow(count=count, started_at=now - (window_seconds - ttl))

    async def close(self) -> None:
        await self._client.aclose()


class FixedWindowRateLimiter:
    """
    Admits at most ``max_requests`` per identity within ``window_seconds``.

    Configuration (from settings):
        rate_limit_requests: Max requests per window (default: 100)
        rate_limit_window:   Window duration in seconds (default: 3600)

    ``clock`` is injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 100,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    async def hit(self, key: str) -> RateLimitWindow:
        """
        Count one request for ``key``.

        Returns:
            The window after the increment (request admitted)

        Raises:
            RateLimitExceededError: count exceeds max_requests in this window
        """
        now = self._clock()
        window = await self.store.increment(
            key, now, self.window_seconds, self.max_requests + 1
        )

        if window.count > self.max_requests:
            retry_after = max(1, math.ceil(window.resets_at(self.window_seconds) - now))
            logger.warning(
                "Rate limit exceeded for IP %s: more than %d requests in %ds window",
                key,
                self.max_requests,
                self.window_seconds,
            )
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"client_ip": key, "limit": self.max_requests},
            )
        return window

    def headers(self, window: RateLimitWindow) -> Dict[str, str]:
        """X-RateLimit-* headers describing an admitted window."""
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(0, self.max_requests - window.count)),
            "X-RateLimit-Reset": str(math.ceil(window.resets_at(self.window_seconds))),
        }


class RateLimitGuard:
    """
    Pipeline guard counting every request against the caller's IP.

    Excluded paths:
        - /health: probes must never be throttled
    """

    EXCLUDED_PATHS = {"/health"}

    def __init__(self, limiter: FixedWindowRateLimiter):
        self.limiter = limiter

    async def __call__(self, ctx: RequestContext) -> None:
        if ctx.path in self.EXCLUDED_PATHS:
            return
        window = await self.limiter.hit(ctx.client_ip)
        ctx.response_headers.update(self.limiter.headers(window))


def build_rate_limiter(settings, clock: Callable[[], float] = time.time) -> FixedWindowRateLimiter:
    """Create the limiter and its store from settings (Redis when configured)."""
    if settings.rate_limit_redis_url:
        store: RateLimitStore = RedisRateLimitStore.from_url(settings.rate_limit_redis_url)
        logger.info("Rate limiter using Redis store")
    else:
        store = InMemoryRateLimitStore()
    return FixedWindowRateLimiter(
        store,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
        clock=clock,
    )
