"""Guard configuration.

A guard is a named authentication context: it selects the account provider,
the link lifetime and where the user lands after signing in.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.magic_auth.domain.exceptions import UnknownGuardError


class GuardConfig(BaseModel):
    """Static per-guard policy loaded at startup."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., description="guard 名称")
    provider: str = Field(default="users", description="账号存储分区")
    link_expiration: int | None = Field(
        default=None, gt=0, description="链接有效期覆盖（分钟）"
    )
    redirect_on_success: str = Field(default="/", description="登录成功后的跳转地址")


class GuardRegistry:
    """Read-only lookup of configured guards."""

    def __init__(
        self, guards: Mapping[str, GuardConfig], default_expiration_minutes: int
    ) -> None:
        self._guards = dict(guards)
        self.default_expiration_minutes = default_expiration_minutes

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Mapping[str, Any]],
        default_expiration_minutes: int,
    ) -> "GuardRegistry":
        guards = {
            name: GuardConfig(name=name, **dict(options)) for name, options in raw.items()
        }
        return cls(guards, default_expiration_minutes)

    def __contains__(self, name: object) -> bool:
        return name in self._guards

    @property
    def names(self) -> list[str]:
        return sorted(self._guards)

    def get(self, name: str) -> GuardConfig:
        try:
            return self._guards[name]
        except KeyError:
            raise UnknownGuardError(name) from None

    def expiration_minutes(self, guard: GuardConfig) -> int:
        return guard.link_expiration or self.default_expiration_minutes

    def expires_at(self, guard: GuardConfig, now: datetime) -> datetime:
        return now + timedelta(minutes=self.expiration_minutes(guard))
