"""
Fixed-window attempt limiting, keyed by caller-supplied strings
(e.g. ``booking:jane@example.com``).

Limiters are explicit components with a ``start`` / ``close`` lifecycle owned
by the application lifespan. Use the Redis limiter when more than one API
process serves traffic; the in-memory one only sees its own process.
"""
import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional
import logging

import redis.asyncio as redis

from salon_scheduler.config.redis import RedisKeys, get_redis
from salon_scheduler.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    limited: bool
    remaining: int
    retry_after_seconds: int = 0


class RateLimiter(ABC):

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def hit(self, key: str, max_attempts: int, window_seconds: int) -> RateLimitResult:
        """Record one attempt for ``key`` and report whether it is over the limit"""


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiter):
    """Single-process limiter; expired windows are swept by a background task"""

    def __init__(self, sweep_interval_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_forever())

    async def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        self._windows.clear()

    async def hit(self, key: str, max_attempts: int, window_seconds: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + window_seconds)
                return RateLimitResult(limited=False, remaining=max_attempts - 1)

            window.count += 1
            if window.count > max_attempts:
                return RateLimitResult(
                    limited=True,
                    remaining=0,
                    retry_after_seconds=max(1, math.ceil(window.reset_at - now)),
                )
            return RateLimitResult(limited=False, remaining=max_attempts - window.count)

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed"""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = self.sweep()
            if removed:
                logger.debug(f"Rate limiter swept {removed} expired window(s)")


class RedisRateLimiter(RateLimiter):
    """Shared fixed window: INCR the key, set its TTL on the first attempt"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    async def start(self) -> None:
        if self._client is None:
            self._client = await get_redis()
        await self._client.ping()
        logger.info("✅ Redis rate limiter connected")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def hit(self, key: str, max_attempts: int, window_seconds: int) -> RateLimitResult:
        redis_key = RedisKeys.RATE_LIMIT.format(key=key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds, nx=True)
            pipe.ttl(redis_key)
            count, _, ttl = await pipe.execute()

        if count > max_attempts:
            return RateLimitResult(limited=True, remaining=0, retry_after_seconds=max(1, int(ttl)))
        return RateLimitResult(limited=False, remaining=max_attempts - count)


def build_rate_limiter(settings: Settings) -> RateLimiter:
    backend = settings.RATE_LIMIT_BACKEND.lower()
    if backend == "redis":
        return RedisRateLimiter()
    if backend == "memory":
        return InMemoryRateLimiter(sweep_interval_seconds=settings.RATE_LIMIT_SWEEP_SECONDS)
    raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {settings.RATE_LIMIT_BACKEND}")
