"""Async engine and session factory."""

from loguru import logger
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings
from src.core.infrastructure.health import DatabaseHealthResult, HealthStatus

# 由 alembic 0001 迁移创建
REQUIRED_TABLES = ("users", "magic_links")

async_engine = create_async_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    echo=settings.ENVIRONMENT == "local" and settings.LOG_LEVEL == "DEBUG",
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

# 一个 unit of work 对应一个 session；提交后实体仍可读取
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Check connectivity and warn when migrations have not been applied."""
    try:
        async with async_engine.connect() as conn:
            existing = await conn.run_sync(
                lambda sync_conn: set(inspect(sync_conn).get_table_names())
            )
    except SQLAlchemyError as e:
        logger.error(f"Failed to connect to database: {e}")
        raise

    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        logger.warning(
            f"Missing tables {missing}, run `alembic upgrade head` before serving"
        )
    else:
        logger.info("Database connection established successfully")


async def close_db() -> None:
    await async_engine.dispose()


async def check_db_health() -> DatabaseHealthResult:
    try:
        async with async_engine.connect() as conn:
            version = (await conn.execute(text("SELECT version()"))).scalar()
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        return DatabaseHealthResult(
            status=HealthStatus.ERROR,
            connected=False,
            error=str(e),
        )
    return DatabaseHealthResult(
        status=HealthStatus.OK,
        connected=True,
        version=version.split(",")[0] if version else "unknown",
    )
