"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    if settings.ENVIRONMENT == "local":
        # 本地开发使用人类可读格式
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/magic_auth_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


def mask_identifier(identifier: str | None) -> str | None:
    """遮蔽邮箱/手机号，避免在日志中输出完整联系方式。

    >>> mask_identifier("alice@example.com")
    'a***@example.com'
    >>> mask_identifier("+15551234567")
    '+155****4567'
    """
    if not identifier:
        return identifier
    if "@" in identifier:
        local, _, domain = identifier.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(identifier) <= 4:
        return "*" * len(identifier)
    return f"{identifier[:4]}****{identifier[-4:]}"


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。联系方式字段在这里统一遮蔽。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.magic_link_sent(identifier="a@b.com", guard="web", channels=["mail"])
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def magic_link_sent(
        cls,
        identifier: str,
        guard: str,
        channels: list[str],
        **extra: Any,
    ) -> None:
        """记录 Magic link 发送成功事件。"""
        cls._log.info(
            "magic_link_sent",
            event_type="magic_link",
            identifier=mask_identifier(identifier),
            guard=guard,
            channels=channels,
            **extra,
        )

    @classmethod
    def magic_link_delivery_failed(
        cls,
        identifier: str,
        guard: str,
        error: str,
        **extra: Any,
    ) -> None:
        """记录 Magic link 投递失败事件。"""
        cls._log.warning(
            "magic_link_delivery_failed",
            event_type="magic_link",
            identifier=mask_identifier(identifier),
            guard=guard,
            error=error,
            **extra,
        )

    @classmethod
    def magic_link_rate_limited(
        cls,
        identifier: str,
        guard: str,
        retry_after_seconds: int,
    ) -> None:
        cls._log.warning(
            "magic_link_rate_limited",
            event_type="throttle",
            identifier=mask_identifier(identifier),
            guard=guard,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def magic_link_verified(
        cls,
        identifier: str,
        guard: str,
        user_id: str | None,
        **extra: Any,
    ) -> None:
        """记录 Magic link 验证成功（已登录）事件。"""
        cls._log.info(
            "magic_link_verified",
            event_type="auth",
            identifier=mask_identifier(identifier),
            guard=guard,
            user_id=user_id,
            **extra,
        )

    @classmethod
    def magic_link_verification_failed(
        cls,
        guard: str,
        reason: str,
        identifier: str | None = None,
    ) -> None:
        cls._log.info(
            "magic_link_verification_failed",
            event_type="auth",
            identifier=mask_identifier(identifier),
            guard=guard,
            reason=reason,
        )

    @classmethod
    def magic_link_verification_error(
        cls,
        identifier: str,
        guard: str,
        error: str,
    ) -> None:
        cls._log.error(
            "magic_link_verification_error",
            event_type="auth",
            identifier=mask_identifier(identifier),
            guard=guard,
            error=error,
        )

    @classmethod
    def magic_links_cleaned(cls, deleted: int) -> None:
        cls._log.info("magic_links_cleaned", event_type="maintenance", deleted=deleted)
