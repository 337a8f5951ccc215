"""Magic auth module ports."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Self

from src.modules.magic_auth.domain.guards import GuardConfig
from src.modules.magic_auth.domain.identifiers import (
    EmailIdentifier,
    NotificationChannel,
    PhoneIdentifier,
)
from src.modules.magic_auth.domain.repository import MagicLinkRepository
from src.modules.users.domain.entities import User
from src.modules.users.domain.repository import UserRepository


class RateLimiter(ABC):
    """Fixed-window attempt counter keyed by an arbitrary string.

    The window opens on the first hit and lasts `decay_seconds`; once it
    elapses the count starts again from zero.
    """

    @abstractmethod
    async def hit(self, key: str, decay_seconds: int) -> int:
        """Record one attempt and return the count inside the current window."""
        pass

    @abstractmethod
    async def attempts(self, key: str) -> int:
        pass

    @abstractmethod
    async def available_in(self, key: str) -> int:
        """Seconds until the current window resets (0 when there is none)."""
        pass

    @abstractmethod
    async def clear(self, key: str) -> None:
        pass

    async def too_many_attempts(self, key: str, max_attempts: int) -> bool:
        return await self.attempts(key) >= max_attempts

    async def remaining(self, key: str, max_attempts: int) -> int:
        return max(0, max_attempts - await self.attempts(key))


@dataclass(frozen=True)
class LinkMessage:
    """Everything a channel needs to deliver one magic link."""

    recipient: EmailIdentifier | PhoneIdentifier
    guard: str
    url: str
    expires_at: datetime
    expires_minutes: int
    app_name: str


class NotificationSender(ABC):
    """One delivery channel (mail, sms, whatsapp)."""

    channel: NotificationChannel

    @abstractmethod
    async def send(self, message: LinkMessage) -> None:
        """Deliver the message or raise NotificationDeliveryError."""
        pass


class LinkSigner(ABC):
    """Builds and checks tamper-evident verification URLs."""

    @abstractmethod
    def build_url(self, token: str, guard: str, expires_at: datetime) -> str:
        pass

    @abstractmethod
    def verify(self, token: str, guard: str, signature: str) -> None:
        """Raise InvalidSignatureError unless the signature covers (token, guard) and is unexpired."""
        pass


class SessionAuthenticator(ABC):
    """Establishes the login for a resolved user under a guard."""

    @abstractmethod
    async def login(self, user: User, guard: GuardConfig, now: datetime) -> str:
        """Return the session credential (access token) for the user."""
        pass


class MagicAuthUnitOfWork(ABC):
    """Transaction boundary shared by the magic link and user repositories.

    Leaving the context commits; leaving it with an exception rolls back.
    """

    magic_links: MagicLinkRepository
    users: UserRepository

    async def __aenter__(self) -> Self:
        await self._begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self._close()

    @abstractmethod
    async def _begin(self) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def _close(self) -> None:
        pass


UnitOfWorkFactory = Callable[[], MagicAuthUnitOfWork]
