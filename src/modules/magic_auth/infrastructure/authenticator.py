"""Session login for verified magic links."""

from datetime import datetime

from src.core.domain.ports.token import TokenService
from src.modules.magic_auth.domain.guards import GuardConfig
from src.modules.magic_auth.domain.ports import SessionAuthenticator
from src.modules.users.domain.entities import User


class JWTSessionAuthenticator(SessionAuthenticator):
    """Issues a JWT access token scoped to the guard."""

    def __init__(self, token_service: TokenService):
        self.token_service = token_service

    async def login(self, user: User, guard: GuardConfig, now: datetime) -> str:
        return self.token_service.create_access_token(
            subject=user.id,
            extra_claims={"guard": guard.name, "provider": guard.provider},
            now=now,
        )
