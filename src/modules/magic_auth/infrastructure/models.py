"""Magic link database models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index
from sqlmodel import Field

from src.core.infrastructure.database.base_model import BaseModel


class MagicLinkModel(BaseModel, table=True):
    """Magic link database model."""

    __tablename__ = "magic_links"
    __table_args__ = (
        Index("ix_magic_links_email_guard", "email", "guard"),
        Index("ix_magic_links_phone_guard", "phone", "guard"),
        Index("ix_magic_links_token_used", "token", "used"),
        Index("ix_magic_links_expires_at", "expires_at"),
    )

    email: str | None = Field(default=None, nullable=True)
    phone: str | None = Field(default=None, nullable=True)
    token: str = Field(nullable=False, unique=True, max_length=255)
    guard: str = Field(default="web", nullable=False)
    used: bool = Field(default=False, nullable=False)
    used_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        nullable=True,
    )
    attributes: dict = Field(default_factory=dict, sa_type=JSON, nullable=False)
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
