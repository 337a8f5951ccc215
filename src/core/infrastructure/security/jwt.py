"""JWT token handling."""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, status
from loguru import logger
from pydantic import BaseModel, Field

from src.core.config import settings


class TokenPayload(BaseModel):
    """JWT Token Payload 结构。"""

    sub: str = Field(..., description="Subject (用户ID)")
    exp: int = Field(..., description="过期时间戳", gt=0)
    token_type: str | None = Field(None, description="Token 类型 (如 'access')")
    guard: str | None = Field(None, description="登录所属 guard")


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
    extra_claims: dict | None = None,
    now: datetime | None = None,
) -> str:
    """Create a JWT access token."""
    issued_at = now or datetime.now(UTC)
    expire = issued_at + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode = {"exp": expire, "iat": issued_at, "sub": str(subject), "type": "access"}
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token.

    Raises:
        HTTPException: Token 过期或无效
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return TokenPayload(
            sub=payload.get("sub", ""),
            exp=payload.get("exp", 0),
            token_type=payload.get("type"),
            guard=payload.get("guard"),
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


class JWTTokenService:
    """Token service implementation using JWT."""

    def create_access_token(
        self,
        subject: str,
        extra_claims: dict | None = None,
        now: datetime | None = None,
    ) -> str:
        return create_access_token(subject=subject, extra_claims=extra_claims, now=now)


def get_token_service() -> JWTTokenService:
    """Get token service instance."""
    return JWTTokenService()
