"""User database models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import Field

from src.core.infrastructure.database.base_model import BaseModel


class UserModel(BaseModel, table=True):
    """User database model."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("provider", "email", name="uq_users_provider_email"),
        UniqueConstraint("provider", "phone", name="uq_users_provider_phone"),
    )

    provider: str = Field(default="users", nullable=False, index=True)
    email: str | None = Field(default=None, nullable=True)
    phone: str | None = Field(default=None, nullable=True)
    name: str = Field(nullable=False)
    password_hash: str | None = Field(default=None, nullable=True)
    email_verified_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        nullable=True,
    )
    attributes: dict = Field(default_factory=dict, sa_type=JSON, nullable=False)
    last_login_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        nullable=True,
    )
