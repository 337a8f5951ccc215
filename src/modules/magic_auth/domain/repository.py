"""Magic link repository interface."""

from abc import abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field

from src.core.domain.repository import BaseRepository
from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.domain.identifiers import EmailIdentifier, PhoneIdentifier


class MagicLinkStats(BaseModel):
    """Aggregate link counts."""

    total: int = Field(default=0, description="总数")
    used: int = Field(default=0, description="已使用")
    expired: int = Field(default=0, description="已过期")
    active: int = Field(default=0, description="可兑换（未使用且未过期）")


class MagicLinkRepository(BaseRepository[MagicLink]):
    """Magic link repository interface."""

    @abstractmethod
    async def find_redeemable(
        self, token: str, guard: str, now: datetime
    ) -> MagicLink | None:
        """Get the link for (token, guard) if it is unused and unexpired."""
        pass

    @abstractmethod
    async def lock_recipient(
        self, recipient: EmailIdentifier | PhoneIdentifier, guard: str
    ) -> None:
        """Serialize issuance for (recipient, guard) until the transaction ends.

        Must be the first statement of the issuing unit of work so that
        invalidate-then-insert runs one transaction at a time per pair.
        """
        pass

    @abstractmethod
    async def invalidate_redeemable(
        self,
        recipient: EmailIdentifier | PhoneIdentifier,
        guard: str | None,
        now: datetime,
    ) -> int:
        """Mark every redeemable link of the recipient as used. Returns the count."""
        pass

    @abstractmethod
    async def mark_used_if_redeemable(self, link_id: str, now: datetime) -> bool:
        """Compare-and-set `used` from false to true.

        Returns True only for the single caller that performed the transition.
        """
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete links with expires_at < now regardless of `used`."""
        pass

    @abstractmethod
    async def stats(
        self,
        now: datetime,
        recipient: EmailIdentifier | PhoneIdentifier | None = None,
        guard: str | None = None,
    ) -> MagicLinkStats:
        pass
