"""Tests for the SQLAlchemy repositories and unit of work on sqlite."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.domain.identifiers import EmailIdentifier, PhoneIdentifier
from src.modules.magic_auth.infrastructure.models import MagicLinkModel  # noqa: F401
from src.modules.magic_auth.infrastructure.repositories import recipient_lock_statement
from src.modules.magic_auth.infrastructure.unit_of_work import (
    SQLAlchemyMagicAuthUnitOfWork,
)
from src.modules.users.domain.entities import User
from src.modules.users.infrastructure.models import UserModel  # noqa: F401

pytestmark = pytest.mark.anyio

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
ALICE = EmailIdentifier(value="alice@example.com")
BOB = PhoneIdentifier(value="+15551234567")


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'magic.db'}")

    # pysqlite 默认的事务处理与 SAVEPOINT 不兼容，改为显式 BEGIN；
    # IMMEDIATE 让并发写事务排队等待，而不是在升级锁时报错
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def uow(session_factory):
    return lambda: SQLAlchemyMagicAuthUnitOfWork(session_factory)


def new_link(recipient=ALICE, guard="web", minutes=15, now=NOW) -> MagicLink:
    return MagicLink.issue(recipient, guard, {"name": "x"}, now + timedelta(minutes=minutes), now)


async def save(uow, *links: MagicLink) -> None:
    async with uow() as tx:
        for link in links:
            await tx.magic_links.create(link)


async def test_create_and_find_redeemable(uow) -> None:
    link = new_link()
    await save(uow, link)

    async with uow() as tx:
        found = await tx.magic_links.find_redeemable(link.token, "web", NOW)
        wrong_guard = await tx.magic_links.find_redeemable(link.token, "admin", NOW)
        expired = await tx.magic_links.find_redeemable(
            link.token, "web", NOW + timedelta(minutes=15)
        )

    assert found is not None
    assert found.id == link.id
    assert found.email == "alice@example.com"
    assert found.attributes == {"name": "x"}
    assert found.expires_at == link.expires_at
    assert wrong_guard is None
    assert expired is None


async def test_mark_used_is_compare_and_set(uow) -> None:
    link = new_link()
    await save(uow, link)

    async with uow() as tx:
        first = await tx.magic_links.mark_used_if_redeemable(link.id, NOW)
    async with uow() as tx:
        second = await tx.magic_links.mark_used_if_redeemable(link.id, NOW)
        stored = await tx.magic_links.get_by_id(link.id)

    assert first is True
    assert second is False
    assert stored.is_used
    assert stored.used_at == NOW


async def test_invalidate_redeemable_scopes_by_recipient_and_guard(uow) -> None:
    web, admin, other = new_link(), new_link(guard="admin"), new_link(BOB)
    await save(uow, web, admin, other)

    async with uow() as tx:
        assert await tx.magic_links.invalidate_redeemable(ALICE, "web", NOW) == 1
    async with uow() as tx:
        assert await tx.magic_links.invalidate_redeemable(ALICE, None, NOW) == 1
        assert (await tx.magic_links.get_by_id(other.id)).is_used is False


async def test_delete_expired_and_stats(uow) -> None:
    expired = new_link(minutes=1, now=NOW - timedelta(hours=1))
    used = new_link(BOB)
    active = new_link(guard="admin")
    await save(uow, expired, used, active)
    async with uow() as tx:
        await tx.magic_links.mark_used_if_redeemable(used.id, NOW)

    async with uow() as tx:
        stats = await tx.magic_links.stats(NOW)
        alice = await tx.magic_links.stats(NOW, recipient=ALICE)
        admin = await tx.magic_links.stats(NOW, guard="admin")

    assert (stats.total, stats.used, stats.expired, stats.active) == (3, 1, 1, 1)
    assert (alice.total, alice.expired, alice.active) == (2, 1, 1)
    assert (admin.total, admin.active) == (1, 1)

    async with uow() as tx:
        assert await tx.magic_links.delete_expired(NOW) == 1
    async with uow() as tx:
        assert (await tx.magic_links.stats(NOW)).total == 2


async def test_exception_rolls_back_unit_of_work(uow) -> None:
    link = new_link()

    with pytest.raises(RuntimeError):
        async with uow() as tx:
            await tx.magic_links.create(link)
            raise RuntimeError("boom")

    async with uow() as tx:
        assert await tx.magic_links.get_by_id(link.id) is None


async def test_user_get_or_create_is_idempotent(uow) -> None:
    candidate = User(email="alice@example.com", name="Alice", created_at=NOW, updated_at=NOW)

    async with uow() as tx:
        created, was_created = await tx.users.get_or_create(candidate)
    async with uow() as tx:
        again, created_again = await tx.users.get_or_create(
            User(email="alice@example.com", name="Other")
        )
        other_provider, _ = await tx.users.get_or_create(
            User(provider="admins", email="alice@example.com", name="Admin")
        )

    assert was_created is True
    assert created_again is False
    assert again.id == created.id
    assert again.name == "Alice"
    assert other_provider.id != created.id


async def test_user_update_persists_login(uow) -> None:
    async with uow() as tx:
        user, _ = await tx.users.get_or_create(User(phone="+15551234567", name="Bob"))

    user.record_login(NOW)
    user.set_password_hash("hash", NOW)
    async with uow() as tx:
        await tx.users.update(user)
    async with uow() as tx:
        stored = await tx.users.get_by_phone("users", "+15551234567")

    assert stored.last_login_at == NOW
    assert stored.password_hash == "hash"
    assert stored.updated_at == NOW


async def test_concurrent_redemption_has_one_winner(uow) -> None:
    link = new_link()
    await save(uow, link)

    async def redeem() -> bool:
        async with uow() as tx:
            return await tx.magic_links.mark_used_if_redeemable(link.id, NOW)

    results = await asyncio.gather(*(redeem() for _ in range(4)))

    assert sorted(results) == [False, False, False, True]


async def test_concurrent_issue_transactions_leave_one_active_link(uow) -> None:
    async def issue() -> MagicLink:
        async with uow() as tx:
            await tx.magic_links.lock_recipient(ALICE, "web")
            await tx.magic_links.invalidate_redeemable(ALICE, "web", NOW)
            return await tx.magic_links.create(new_link())

    await asyncio.gather(*(issue() for _ in range(4)))

    async with uow() as tx:
        stats = await tx.magic_links.stats(NOW, recipient=ALICE, guard="web")
    assert (stats.total, stats.active) == (4, 1)


async def test_recipient_lock_is_a_transaction_advisory_lock() -> None:
    statement = recipient_lock_statement(ALICE, "web")

    sql = str(statement.compile(dialect=postgresql.dialect()))
    params = statement.compile().params

    assert "pg_advisory_xact_lock(hashtext(" in sql
    assert list(params.values()) == ["magic-link:alice@example.com:web"]
