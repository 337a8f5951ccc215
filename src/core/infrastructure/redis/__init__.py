"""Redis 访问入口：共享客户端与 key 命名。"""

from src.core.infrastructure.redis.client import (
    RedisClient,
    get_redis_client,
    redis_client,
)
from src.core.infrastructure.redis.keys import RedisKeys

__all__ = ["RedisClient", "RedisKeys", "get_redis_client", "redis_client"]
