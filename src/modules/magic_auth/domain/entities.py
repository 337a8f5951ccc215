"""Magic link domain entities."""

import secrets
from datetime import datetime
from typing import Any, Self

from pydantic import Field, model_validator

from src.core.domain.base_entity import BaseEntity
from src.modules.magic_auth.domain.identifiers import EmailIdentifier, PhoneIdentifier

# 48 random bytes -> 64 url-safe characters (384 bits)
SECRET_BYTES = 48


def generate_secret() -> str:
    return secrets.token_urlsafe(SECRET_BYTES)


class MagicLink(BaseEntity):
    """Single-use, time-limited login credential."""

    email: str | None = Field(default=None, description="目标邮箱")
    phone: str | None = Field(default=None, description="目标手机号")
    token: str = Field(..., min_length=1, description="Magic link secret")
    guard: str = Field(..., description="所属 guard")
    is_used: bool = Field(default=False, description="是否已使用")
    used_at: datetime | None = Field(default=None, description="使用时间")
    attributes: dict[str, Any] = Field(default_factory=dict, description="附加属性")
    expires_at: datetime = Field(..., description="过期时间")

    @model_validator(mode="after")
    def _exactly_one_identifier(self) -> Self:
        if bool(self.email) == bool(self.phone):
            raise ValueError("MagicLink requires exactly one of email or phone")
        return self

    @classmethod
    def issue(
        cls,
        recipient: EmailIdentifier | PhoneIdentifier,
        guard: str,
        attributes: dict[str, Any],
        expires_at: datetime,
        now: datetime,
    ) -> "MagicLink":
        """Create a fresh, redeemable link with a new random secret."""
        return cls(
            **{recipient.column: recipient.value},
            token=generate_secret(),
            guard=guard,
            attributes=dict(attributes),
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )

    @property
    def identifier(self) -> str:
        return self.email or self.phone or ""

