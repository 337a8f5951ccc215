"""Rate limiter adapters."""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.core.domain.clock import Clock, utc_now
from src.core.infrastructure.redis import RedisClient, RedisKeys
from src.modules.magic_auth.domain.ports import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed-window limiter shared by every process talking to the same Redis.

    The window is a timer key created with SET NX EX; its TTL is the time left.
    The counter is incremented and, when new, given its TTL in one
    transaction, so concurrent hits are never lost or overwritten.
    """

    def __init__(self, redis: RedisClient):
        self.redis = redis

    async def hit(self, key: str, decay_seconds: int) -> int:
        counter_key = RedisKeys.rate_limit_counter(key)
        timer_key = RedisKeys.rate_limit_timer(key)

        await self.redis.set(timer_key, "1", ex=decay_seconds, nx=True)
        return await self.redis.incr_window(counter_key, decay_seconds)

    async def attempts(self, key: str) -> int:
        value = await self.redis.get(RedisKeys.rate_limit_counter(key))
        return int(value) if value else 0

    async def available_in(self, key: str) -> int:
        ttl = await self.redis.ttl(RedisKeys.rate_limit_timer(key))
        return max(0, ttl)

    async def clear(self, key: str) -> None:
        await self.redis.delete(
            RedisKeys.rate_limit_counter(key), RedisKeys.rate_limit_timer(key)
        )


@dataclass
class _Window:
    count: int
    reset_at: datetime


class InMemoryRateLimiter(RateLimiter):
    """Single-process limiter for local development and tests."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    def _current(self, key: str) -> _Window | None:
        window = self._windows.get(key)
        if window is not None and window.reset_at <= self.clock():
            del self._windows[key]
            return None
        return window

    async def hit(self, key: str, decay_seconds: int) -> int:
        async with self._lock:
            window = self._current(key)
            if window is None:
                window = _Window(
                    count=0, reset_at=self.clock() + timedelta(seconds=decay_seconds)
                )
                self._windows[key] = window
            window.count += 1
            return window.count

    async def attempts(self, key: str) -> int:
        async with self._lock:
            window = self._current(key)
            return window.count if window else 0

    async def available_in(self, key: str) -> int:
        async with self._lock:
            window = self._current(key)
            if window is None:
                return 0
            return max(0, math.ceil((window.reset_at - self.clock()).total_seconds()))

    async def clear(self, key: str) -> None:
        async with self._lock:
            self._windows.pop(key, None)
