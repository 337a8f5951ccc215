"""Magic auth API routes."""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from src.core.config import settings
from src.core.interfaces.http.response import ApiResponse
from src.modules.magic_auth.application.commands import SendMagicLinkCommand
from src.modules.magic_auth.application.dependencies import get_magic_auth_service
from src.modules.magic_auth.application.service import MagicAuthService
from src.modules.magic_auth.domain.exceptions import InvalidMagicLinkError
from src.modules.magic_auth.interfaces.schemas import (
    MagicLinkSentResponse,
    SendMagicLinkRequest,
)

router = APIRouter(tags=["magic-auth"])


def _absolute(target: str) -> str:
    if target.startswith("/"):
        return f"{settings.FRONTEND_HOST.rstrip('/')}{target}"
    return target


def _login_redirect(target: str, access_token: str | None) -> RedirectResponse:
    response = RedirectResponse(_absolute(target), status_code=status.HTTP_303_SEE_OTHER)
    if access_token:
        response.set_cookie(
            key=settings.ACCESS_TOKEN_COOKIE_NAME,
            value=access_token,
            max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            httponly=True,
            secure=settings.ACCESS_TOKEN_COOKIE_SECURE,
            samesite="lax",
        )
    return response


@router.post(
    "/magic-link",
    response_model=ApiResponse[MagicLinkSentResponse],
    status_code=status.HTTP_200_OK,
    summary="发送 Magic Link",
    description="向邮箱或手机号发送一次性登录链接",
)
async def send_magic_link(
    request: SendMagicLinkRequest,
    service: MagicAuthService = Depends(get_magic_auth_service),
) -> ApiResponse[MagicLinkSentResponse]:
    """Issue and deliver a magic link."""
    command = SendMagicLinkCommand(
        identifier=request.identifier,
        guard=request.guard,
        attributes=request.attributes,
        channels=request.channels,
    )
    await service.issue(command)

    response = MagicLinkSentResponse()
    return ApiResponse.success(data=response, message=response.message)


@router.get(
    settings.MAGIC_AUTH_VERIFY_PATH,
    status_code=status.HTTP_303_SEE_OTHER,
    response_class=RedirectResponse,
    summary="验证 Magic Link",
    description="校验签名链接，登录成功后重定向到 guard 配置的页面",
)
async def verify_magic_link(
    token: str = Query(..., description="Magic link token"),
    guard: str = Query(default="web", description="guard 名称"),
    signature: str = Query(..., description="URL 签名"),
    service: MagicAuthService = Depends(get_magic_auth_service),
) -> RedirectResponse:
    """Redeem a magic link and sign the user in."""
    result = await service.verify(token, guard, signature)

    if result.success and result.redirect_to:
        return _login_redirect(result.redirect_to, result.access_token)

    if settings.MAGIC_AUTH_FAILURE_REDIRECT:
        target = f"{settings.MAGIC_AUTH_FAILURE_REDIRECT}?{urlencode({'error': 'invalid_link'})}"
        return RedirectResponse(_absolute(target), status_code=status.HTTP_303_SEE_OTHER)
    raise InvalidMagicLinkError()
