"""Redis 连接封装。

限流窗口（计数器 + 计时器）保存在这里，多个进程共享同一份计数。
只暴露限流需要的少量命令，其余操作请直接使用 `client`。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from loguru import logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

from src.core.config import settings
from src.core.infrastructure.health import HealthStatus, RedisHealthResult


class RedisClient:
    """Lazily connected Redis client with string responses."""

    def __init__(self, url: str | None = None):
        self._url = url or settings.REDIS_URL
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        # 首次访问时才建立连接池，导入模块不触发网络
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=2.0,
                retry_on_timeout=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.debug("Redis connection pool closed")

    async def health_check(self) -> RedisHealthResult:
        """PING the server and report its version."""
        try:
            if not await self.client.ping():
                return RedisHealthResult(status=HealthStatus.ERROR, connected=False)
            info = await self.client.info("server")
        except aioredis.RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return RedisHealthResult(
                status=HealthStatus.ERROR,
                connected=False,
                error=str(e),
            )
        return RedisHealthResult(
            status=HealthStatus.OK,
            connected=True,
            version=info.get("redis_version", "unknown"),
        )

    # ---- 限流窗口用到的命令 ----

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(
        self, key: str, value: str, ex: int | None = None, nx: bool = False
    ) -> bool:
        """SET with optional expiry (seconds); `nx` only writes a missing key."""
        return bool(await self.client.set(key, value, ex=ex, nx=nx))

    async def incr_window(self, key: str, seconds: int) -> int:
        """INCR and give the key a TTL only if it has none, in one MULTI/EXEC.

        EXPIRE NX needs Redis 7.0 or newer.
        """
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, seconds, nx=True)
            hits, _ = await pipe.execute()
        return int(hits)

    async def ttl(self, key: str) -> int:
        """Seconds to live; -2 when the key is missing, -1 without expiry."""
        return await self.client.ttl(key)

    async def delete(self, *keys: str) -> int:
        return await self.client.delete(*keys)


redis_client = RedisClient()


def get_redis_client() -> RedisClient:
    return redis_client
