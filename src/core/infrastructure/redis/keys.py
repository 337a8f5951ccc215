"""Redis Key 命名规范。

Redis 用于：
- Rate Limit: Magic link 发送频率计数器与窗口计时器
"""


class RedisKeys:
    """Redis Key 命名空间管理。"""

    # 速率限制
    # ratelimit:{key}
    # ratelimit:{key}:timer
    RATE_LIMIT_PREFIX = "ratelimit"

    @classmethod
    def rate_limit_counter(cls, key: str) -> str:
        """生成速率限制计数器 key。

        Args:
            key: 限流维度（如 magic-link:alice@example.com）

        Returns:
            格式化的 Redis key
        """
        return f"{cls.RATE_LIMIT_PREFIX}:{key}"

    @classmethod
    def rate_limit_timer(cls, key: str) -> str:
        """生成速率限制窗口计时器 key，其 TTL 即窗口剩余秒数。"""
        return f"{cls.RATE_LIMIT_PREFIX}:{key}:timer"
