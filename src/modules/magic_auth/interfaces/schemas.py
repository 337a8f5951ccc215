"""Magic auth API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.magic_auth.domain.identifiers import NotificationChannel


class SendMagicLinkRequest(BaseModel):
    """Request a magic link for an email address or phone number."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"identifier": "user@example.com", "guard": "web"}
        }
    )

    identifier: str = Field(..., min_length=1, max_length=255, description="邮箱或手机号")
    guard: str = Field(default="web", description="guard 名称")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="新账号的附加属性（如 name）"
    )
    channels: list[NotificationChannel] | None = Field(
        default=None, description="指定投递通道"
    )


class MagicLinkSentResponse(BaseModel):
    """Magic link response."""

    ok: bool = True
    message: str = "If the contact is valid, a login link is on its way."
