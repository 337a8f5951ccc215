"""Magic link entity-model mappers."""

from src.core.domain.clock import ensure_utc
from src.core.infrastructure.database.mapper import BaseMapper
from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.infrastructure.models import MagicLinkModel


class MagicLinkMapper(BaseMapper[MagicLink, MagicLinkModel]):
    """Magic link entity-model mapper."""

    def to_domain(self, model: MagicLinkModel) -> MagicLink:
        return MagicLink(
            id=model.id,
            email=model.email,
            phone=model.phone,
            token=model.token,
            guard=model.guard,
            is_used=model.used,
            used_at=ensure_utc(model.used_at) if model.used_at else None,
            attributes=dict(model.attributes or {}),
            expires_at=ensure_utc(model.expires_at),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    def to_model(self, entity: MagicLink) -> MagicLinkModel:
        return MagicLinkModel(
            id=entity.id,
            email=entity.email,
            phone=entity.phone,
            token=entity.token,
            guard=entity.guard,
            used=entity.is_used,
            used_at=entity.used_at,
            attributes=dict(entity.attributes),
            expires_at=entity.expires_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
