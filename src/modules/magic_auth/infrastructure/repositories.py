"""Magic link repository implementations."""

from datetime import datetime

from loguru import logger
from sqlalchemy import Select, case, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.domain.identifiers import EmailIdentifier, PhoneIdentifier
from src.modules.magic_auth.domain.repository import MagicLinkRepository, MagicLinkStats
from src.modules.magic_auth.infrastructure.mappers import MagicLinkMapper
from src.modules.magic_auth.infrastructure.models import MagicLinkModel


def _recipient_clause(recipient: EmailIdentifier | PhoneIdentifier):
    if isinstance(recipient, EmailIdentifier):
        return col(MagicLinkModel.email) == recipient.value
    return col(MagicLinkModel.phone) == recipient.value


def recipient_lock_statement(
    recipient: EmailIdentifier | PhoneIdentifier, guard: str
) -> Select:
    """Transaction-scoped advisory lock keyed on (recipient, guard)."""
    key = f"magic-link:{recipient.value}:{guard}"
    return select(func.pg_advisory_xact_lock(func.hashtext(key)))


class PostgreSQLMagicLinkRepository(MagicLinkRepository):
    """PostgreSQL magic link repository implementation.

    State transitions are single conditional UPDATE statements so that two
    concurrent transactions can never both flip the same row.
    """

    def __init__(self, session: AsyncSession, mapper: MagicLinkMapper):
        self.session = session
        self.mapper = mapper
        self.logger = logger

    async def get_by_id(self, magic_link_id: str) -> MagicLink | None:
        model = await self.session.get(MagicLinkModel, magic_link_id)
        return self.mapper.to_domain(model) if model else None

    async def find_redeemable(
        self, token: str, guard: str, now: datetime
    ) -> MagicLink | None:
        statement = select(MagicLinkModel).where(
            MagicLinkModel.token == token,
            MagicLinkModel.guard == guard,
            col(MagicLinkModel.used).is_(False),
            col(MagicLinkModel.expires_at) > now,
        )
        result = await self.session.execute(statement)
        model = result.scalar_one_or_none()
        return self.mapper.to_domain(model) if model else None

    async def lock_recipient(
        self, recipient: EmailIdentifier | PhoneIdentifier, guard: str
    ) -> None:
        # 锁随事务提交或回滚释放；sqlite 写事务本身串行
        if self.session.get_bind().dialect.name != "postgresql":
            return
        await self.session.execute(recipient_lock_statement(recipient, guard))

    async def invalidate_redeemable(
        self,
        recipient: EmailIdentifier | PhoneIdentifier,
        guard: str | None,
        now: datetime,
    ) -> int:
        statement = (
            update(MagicLinkModel)
            .where(
                _recipient_clause(recipient),
                col(MagicLinkModel.used).is_(False),
                col(MagicLinkModel.expires_at) > now,
            )
            .values(used=True, used_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if guard is not None:
            statement = statement.where(col(MagicLinkModel.guard) == guard)
        result = await self.session.execute(statement)
        return result.rowcount or 0

    async def mark_used_if_redeemable(self, link_id: str, now: datetime) -> bool:
        statement = (
            update(MagicLinkModel)
            .where(
                col(MagicLinkModel.id) == link_id,
                col(MagicLinkModel.used).is_(False),
                col(MagicLinkModel.expires_at) > now,
            )
            .values(used=True, used_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1

    async def delete_expired(self, now: datetime) -> int:
        statement = (
            delete(MagicLinkModel)
            .where(col(MagicLinkModel.expires_at) < now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        deleted = result.rowcount or 0
        if deleted:
            self.logger.info(f"Deleted {deleted} expired magic link(s)")
        return deleted

    async def stats(
        self,
        now: datetime,
        recipient: EmailIdentifier | PhoneIdentifier | None = None,
        guard: str | None = None,
    ) -> MagicLinkStats:
        used = col(MagicLinkModel.used)
        expires_at = col(MagicLinkModel.expires_at)
        statement = select(
            func.count(col(MagicLinkModel.id)),
            func.coalesce(func.sum(case((used.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((expires_at < now, 1), else_=0)), 0),
            func.coalesce(
                func.sum(case(((used.is_(False)) & (expires_at > now), 1), else_=0)),
                0,
            ),
        )
        if recipient is not None:
            statement = statement.where(_recipient_clause(recipient))
        if guard is not None:
            statement = statement.where(col(MagicLinkModel.guard) == guard)

        result = await self.session.execute(statement)
        total, used_count, expired, active = result.one()
        return MagicLinkStats(
            total=int(total),
            used=int(used_count),
            expired=int(expired),
            active=int(active),
        )

    async def create(self, magic_link: MagicLink) -> MagicLink:
        model = self.mapper.to_model(magic_link)
        self.session.add(model)
        await self.session.flush()
        return self.mapper.to_domain(model)

    async def update(self, magic_link: MagicLink) -> MagicLink:
        existing = await self.session.get(MagicLinkModel, magic_link.id)
        if not existing:
            raise ValueError(f"MagicLink with id {magic_link.id} not found")

        existing.used = magic_link.is_used
        existing.used_at = magic_link.used_at
        existing.attributes = dict(magic_link.attributes)
        existing.updated_at = magic_link.updated_at

        self.session.add(existing)
        await self.session.flush()
        return self.mapper.to_domain(existing)
