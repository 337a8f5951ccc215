"""User entity-model mappers."""

from src.core.domain.clock import ensure_utc
from src.core.infrastructure.database.mapper import BaseMapper
from src.modules.users.domain.entities import User
from src.modules.users.infrastructure.models import UserModel


class UserMapper(BaseMapper[User, UserModel]):
    """User entity-model mapper."""

    def to_domain(self, model: UserModel) -> User:
        return User(
            id=model.id,
            provider=model.provider,
            email=model.email,
            phone=model.phone,
            name=model.name,
            password_hash=model.password_hash,
            email_verified_at=(
                ensure_utc(model.email_verified_at) if model.email_verified_at else None
            ),
            attributes=dict(model.attributes or {}),
            last_login_at=ensure_utc(model.last_login_at) if model.last_login_at else None,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    def to_model(self, entity: User) -> UserModel:
        return UserModel(
            id=entity.id,
            provider=entity.provider,
            email=entity.email,
            phone=entity.phone,
            name=entity.name,
            password_hash=entity.password_hash,
            email_verified_at=entity.email_verified_at,
            attributes=dict(entity.attributes),
            last_login_at=entity.last_login_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
