"""Magic auth commands."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.modules.magic_auth.domain.identifiers import NotificationChannel


class SendMagicLinkCommand(BaseModel):
    """Command to issue and deliver a magic link."""

    identifier: str = Field(..., min_length=1, description="邮箱或手机号")
    guard: str = Field(default="web", description="guard 名称")
    attributes: dict[str, Any] = Field(default_factory=dict, description="账号附加属性")
    channels: list[NotificationChannel] | None = Field(
        default=None, description="指定投递通道，为空时按联系方式类型选择"
    )

    @field_validator("identifier")
    @classmethod
    def _strip_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identifier must not be blank")
        return value


class VerifyMagicLinkCommand(BaseModel):
    """Command to redeem a magic link."""

    token: str = Field(..., description="Magic link secret")
    guard: str = Field(default="web", description="guard 名称")
    signature: str | None = Field(
        default=None, description="URL 签名；HTTP 入口总是携带"
    )
