"""User repository implementations."""

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.modules.users.domain.entities import User
from src.modules.users.domain.repository import UserRepository
from src.modules.users.infrastructure.mappers import UserMapper
from src.modules.users.infrastructure.models import UserModel


class PostgreSQLUserRepository(UserRepository):
    """PostgreSQL user repository implementation."""

    def __init__(self, session: AsyncSession, mapper: UserMapper):
        self.session = session
        self.mapper = mapper
        self.logger = logger

    async def get_by_id(self, user_id: str) -> User | None:
        model = await self.session.get(UserModel, user_id)
        return self.mapper.to_domain(model) if model else None

    async def get_by_email(self, provider: str, email: str) -> User | None:
        statement = select(UserModel).where(
            UserModel.provider == provider,
            UserModel.email == email,
        )
        result = await self.session.execute(statement)
        model = result.scalar_one_or_none()
        return self.mapper.to_domain(model) if model else None

    async def get_by_phone(self, provider: str, phone: str) -> User | None:
        statement = select(UserModel).where(
            UserModel.provider == provider,
            UserModel.phone == phone,
        )
        result = await self.session.execute(statement)
        model = result.scalar_one_or_none()
        return self.mapper.to_domain(model) if model else None

    async def _get_by_contact(self, user: User) -> User | None:
        if user.email:
            return await self.get_by_email(user.provider, user.email)
        if user.phone:
            return await self.get_by_phone(user.provider, user.phone)
        return None

    async def get_or_create(self, candidate: User) -> tuple[User, bool]:
        existing = await self._get_by_contact(candidate)
        if existing:
            return existing, False

        model = self.mapper.to_model(candidate)
        try:
            async with self.session.begin_nested():
                self.session.add(model)
                await self.session.flush()
        except IntegrityError:
            # 并发创建：另一个事务已插入相同联系方式，回到查询结果
            existing = await self._get_by_contact(candidate)
            if existing is None:
                raise
            self.logger.info(f"User created concurrently, reusing id={existing.id}")
            return existing, False

        return self.mapper.to_domain(model), True

    async def create(self, user: User) -> User:
        model = self.mapper.to_model(user)
        self.session.add(model)
        await self.session.flush()
        return self.mapper.to_domain(model)

    async def update(self, user: User) -> User:
        existing = await self.session.get(UserModel, user.id)
        if not existing:
            raise ValueError(f"User with id {user.id} not found")

        existing.name = user.name
        existing.email = user.email
        existing.phone = user.phone
        existing.password_hash = user.password_hash
        existing.email_verified_at = user.email_verified_at
        existing.attributes = dict(user.attributes)
        existing.last_login_at = user.last_login_at
        existing.updated_at = user.updated_at

        self.session.add(existing)
        await self.session.flush()
        return self.mapper.to_domain(existing)
