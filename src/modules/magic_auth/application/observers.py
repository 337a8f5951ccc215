"""Magic auth event handlers."""

from src.core.domain.events import DomainEvent, DomainEventHandler, EventBusProtocol
from src.core.infrastructure.logging import BusinessEvents
from src.modules.magic_auth.domain.events import (
    MagicAuthEvent,
    MagicLinkFailed,
    MagicLinkSent,
    MagicLinkVerificationCompleted,
    MagicLinkVerificationError,
    MagicLinkVerificationFailed,
)


class MagicAuthEventLogger(DomainEventHandler):
    """Writes the lifecycle events that matter to the business log."""

    async def handle(self, event: DomainEvent) -> None:
        match event:
            case MagicLinkSent():
                BusinessEvents.magic_link_sent(
                    identifier=event.identifier or "",
                    guard=event.guard,
                    channels=event.channels,
                    magic_link_id=event.magic_link_id,
                )
            case MagicLinkFailed():
                BusinessEvents.magic_link_delivery_failed(
                    identifier=event.identifier or "",
                    guard=event.guard,
                    error=event.error,
                    magic_link_id=event.magic_link_id,
                )
            case MagicLinkVerificationCompleted():
                BusinessEvents.magic_link_verified(
                    identifier=event.identifier or "",
                    guard=event.guard,
                    user_id=event.user_id,
                    magic_link_id=event.magic_link_id,
                )
            case MagicLinkVerificationFailed():
                BusinessEvents.magic_link_verification_failed(
                    guard=event.guard,
                    reason=event.reason,
                    identifier=event.identifier,
                )
            case MagicLinkVerificationError():
                BusinessEvents.magic_link_verification_error(
                    identifier=event.identifier or "",
                    guard=event.guard,
                    error=event.error,
                )
            case _:
                pass


def register_event_logger(event_bus: EventBusProtocol) -> MagicAuthEventLogger:
    handler = MagicAuthEventLogger()
    event_bus.subscribe(MagicAuthEvent, handler)
    return handler
