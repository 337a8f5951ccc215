"""Magic Link Auth - 一次性登录链接服务入口。"""

from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.database.session import (
    check_db_health,
    close_db,
    init_db,
)
from src.core.infrastructure.health import HealthStatus, RedisHealthResult
from src.core.infrastructure.logging import setup_logging
from src.core.infrastructure.redis import redis_client
from src.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from src.core.interfaces.http.routers import api_router
from src.modules.magic_auth.application import dependencies as magic_auth_app_deps
from src.modules.magic_auth.infrastructure import dependencies as magic_auth_infra_deps


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting magic link auth service...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(
        f"Guards: {sorted(settings.MAGIC_AUTH_GUARDS)}, "
        f"channels: {settings.MAGIC_AUTH_CHANNELS_AVAILABLE}, "
        f"rate limit backend: {settings.MAGIC_AUTH_RATE_LIMIT_BACKEND}"
    )

    await init_db()
    # guard 定义有误时在启动阶段就失败
    magic_auth_infra_deps.get_magic_auth_service()

    yield

    logger.info("Shutting down magic link auth service...")
    await redis_client.close()
    await close_db()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "一次性、限时的 Magic Link 登录\n\n"
        "- 通过邮件、短信或 WhatsApp 发送签名链接\n"
        "- 链接只能兑换一次，兑换后自动创建或登录账号"
    ),
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[magic_auth_app_deps.get_magic_auth_service] = (
    magic_auth_infra_deps.get_magic_auth_service
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_HOST.rstrip("/")],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint.

    - healthy: 数据库正常，限流后端可用
    - degraded: 数据库正常，Redis 限流后端不可用（发送链接会失败）
    - unhealthy: 数据库异常
    """
    db_health = await check_db_health()
    if settings.MAGIC_AUTH_RATE_LIMIT_BACKEND == "redis":
        redis_health = await redis_client.health_check()
    else:
        redis_health = RedisHealthResult(status=HealthStatus.SKIPPED, connected=False)

    if db_health.status != HealthStatus.OK:
        overall_status = "unhealthy"
    elif redis_health.status == HealthStatus.ERROR:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
        "rate_limit_backend": settings.MAGIC_AUTH_RATE_LIMIT_BACKEND,
        "components": {
            "database": db_health.to_dict(),
            "redis": redis_health.to_dict(),
        },
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
