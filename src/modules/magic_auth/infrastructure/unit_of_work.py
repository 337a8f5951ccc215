"""SQLAlchemy unit of work for the magic auth flows."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.modules.magic_auth.domain.ports import MagicAuthUnitOfWork
from src.modules.magic_auth.infrastructure.mappers import MagicLinkMapper
from src.modules.magic_auth.infrastructure.repositories import (
    PostgreSQLMagicLinkRepository,
)
from src.modules.users.infrastructure.mappers import UserMapper
from src.modules.users.infrastructure.repositories import PostgreSQLUserRepository


class SQLAlchemyMagicAuthUnitOfWork(MagicAuthUnitOfWork):
    """One session, one transaction; both repositories share it."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._session

    async def _begin(self) -> None:
        self._session = self._session_factory()
        self.magic_links = PostgreSQLMagicLinkRepository(self._session, MagicLinkMapper())
        self.users = PostgreSQLUserRepository(self._session, UserMapper())

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
