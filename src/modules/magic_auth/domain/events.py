"""Magic link lifecycle events."""

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from src.core.domain.events import DomainEvent


class MagicAuthEvent(DomainEvent):
    """Base class for every magic link lifecycle event.

    Subscribing to this class receives all of them.
    """

    name: ClassVar[str] = "magic-auth"

    guard: str = Field(..., description="guard 名称")
    identifier: str | None = Field(default=None, description="邮箱或手机号")


class MagicLinkGenerating(MagicAuthEvent):
    """Raised right before the link is handed to the delivery channels."""

    name: ClassVar[str] = "magic-auth.link.generating"

    magic_link_id: str = Field(..., description="Magic link ID")
    channels: list[str] = Field(default_factory=list, description="投递通道")


class MagicLinkSent(MagicAuthEvent):
    name: ClassVar[str] = "magic-auth.link.sent"

    magic_link_id: str = Field(..., description="Magic link ID")
    channels: list[str] = Field(default_factory=list, description="投递通道")
    expires_at: datetime = Field(..., description="过期时间")


class MagicLinkFailed(MagicAuthEvent):
    name: ClassVar[str] = "magic-auth.link.failed"

    magic_link_id: str = Field(..., description="Magic link ID")
    error: str = Field(..., description="失败原因")


class MagicLinkVerificationStarted(MagicAuthEvent):
    name: ClassVar[str] = "magic-auth.verification.started"

    magic_link_id: str = Field(..., description="Magic link ID")


class MagicLinkVerificationCompleted(MagicAuthEvent):
    name: ClassVar[str] = "magic-auth.verification.completed"

    magic_link_id: str = Field(..., description="Magic link ID")
    user_id: str = Field(..., description="用户ID")
    redirect_to: str = Field(..., description="登录后跳转地址")


class MagicLinkVerificationFailed(MagicAuthEvent):
    """Expected negative outcome: bad signature, unknown, used or expired link."""

    name: ClassVar[str] = "magic-auth.verification.failed"

    reason: str = Field(..., description="失败原因")


class MagicLinkVerificationError(MagicAuthEvent):
    """Unexpected failure inside the redemption transaction."""

    name: ClassVar[str] = "magic-auth.verification.error"

    magic_link_id: str | None = Field(default=None, description="Magic link ID")
    error: str = Field(..., description="错误信息")
