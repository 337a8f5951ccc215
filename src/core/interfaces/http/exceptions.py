"""HTTP exception handlers.

将领域异常转换为统一的错误响应体：{"error": {"code", "message", "details"?}}。
各模块的异常类通过 http_status_code、error_code、headers、details 自定义响应。
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from src.core.domain.exceptions import DomainException
from src.core.interfaces.http.response import ErrorResponse


async def domain_exception_handler(
    _request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions.

    这样各模块可以定义自己的异常类而不需要修改 core 层代码。
    """
    if exc.http_status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{exc.error_code}: {exc!r} (cause: {exc.__cause__!r})")

    body = ErrorResponse.create(
        code=exc.error_code,
        message=exc.message,
        details=exc.details,
    )
    return JSONResponse(
        status_code=exc.http_status_code,
        content=body.model_dump(),
        headers=exc.headers,
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    body = ErrorResponse.create(
        code="INTERNAL_ERROR",
        message="An internal error occurred",
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )
