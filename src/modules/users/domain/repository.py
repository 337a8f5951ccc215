"""User repository interface."""

from abc import abstractmethod

from src.core.domain.repository import BaseRepository
from src.modules.users.domain.entities import User


class UserRepository(BaseRepository[User]):
    """User repository interface."""

    @abstractmethod
    async def get_by_email(self, provider: str, email: str) -> User | None:
        """Get user by email within a provider."""
        pass

    @abstractmethod
    async def get_by_phone(self, provider: str, phone: str) -> User | None:
        """Get user by phone number within a provider."""
        pass

    @abstractmethod
    async def get_or_create(self, candidate: User) -> tuple[User, bool]:
        """Return the user matching the candidate's contact, creating it if absent.

        The boolean is True when a new row was inserted. Implementations must be
        idempotent on (provider, contact) under concurrent calls.
        """
        pass
