"""Typed outcomes of issuance and verification."""

from dataclasses import dataclass
from datetime import datetime

from src.modules.magic_auth.domain.identifiers import NotificationChannel
from src.modules.users.domain.entities import User


@dataclass(frozen=True)
class IssuedLink:
    magic_link_id: str
    url: str
    expires_at: datetime
    channels: tuple[NotificationChannel, ...]


@dataclass(frozen=True)
class RateLimited:
    retry_after_seconds: int


IssueOutcome = IssuedLink | RateLimited


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a redemption attempt. Invalid links are not errors."""

    success: bool
    redirect_to: str | None = None
    user: User | None = None
    access_token: str | None = None

    @classmethod
    def invalid(cls) -> "VerificationResult":
        return cls(success=False)
