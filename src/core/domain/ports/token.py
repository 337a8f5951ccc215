"""Token service port."""

from datetime import datetime
from typing import Protocol


class TokenService(Protocol):
    def create_access_token(
        self,
        subject: str,
        extra_claims: dict[str, object] | None = None,
        now: datetime | None = None,
    ) -> str: ...
