"""Magic auth module application dependencies.

Defines dependency providers for interfaces layer without importing infrastructure.
"""

from typing import NoReturn

from src.modules.magic_auth.application.service import MagicAuthService


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_magic_auth_service() -> MagicAuthService:
    _missing_dependency("MagicAuthService")
