"""User domain entities."""

from datetime import datetime
from typing import Any, Self

from pydantic import Field, model_validator

from src.core.domain.base_entity import BaseEntity


class User(BaseEntity):
    """Account resolved by a magic link identifier."""

    provider: str = Field(default="users", description="账号存储分区（guard 的 provider）")
    email: str | None = Field(default=None, description="邮箱")
    phone: str | None = Field(default=None, description="手机号")
    name: str = Field(..., description="显示名称")
    password_hash: str | None = Field(default=None, description="密码哈希（bcrypt）")
    email_verified_at: datetime | None = Field(default=None, description="邮箱验证时间")
    attributes: dict[str, Any] = Field(default_factory=dict, description="附加属性")
    last_login_at: datetime | None = Field(default=None, description="最后登录时间")

    @model_validator(mode="after")
    def _require_contact(self) -> Self:
        if not self.email and not self.phone:
            raise ValueError("User requires an email or a phone number")
        return self

    def has_password(self) -> bool:
        return bool(self.password_hash)

    def set_password_hash(self, password_hash: str, now: datetime | None = None) -> None:
        self.password_hash = password_hash
        self._update_timestamp(now)

    def record_login(self, now: datetime) -> None:
        """Update last login timestamp."""
        self.last_login_at = now
        self._update_timestamp(now)
