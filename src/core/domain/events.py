"""Domain events infrastructure.

事件总线通过构造函数注入到使用方，不提供进程级全局实例。
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel, ABC):
    """Base class for all domain events."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    event_version: int = Field(default=1)

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        """Return the event type name."""
        return self.__class__.__name__


class DomainEventHandler(ABC):
    """Base class for domain event handlers."""

    @abstractmethod
    async def handle(self, event: DomainEvent) -> None:
        """Handle the domain event."""
        pass


class EventBusProtocol(Protocol):
    """Protocol for event bus implementations."""

    def subscribe(
        self, event_type: type[DomainEvent], handler: DomainEventHandler
    ) -> None: ...

    async def publish(self, event: DomainEvent) -> None: ...


class EventBus:
    """In-process observer registry for domain events.

    Handlers are matched on the exact event class or any of its base classes,
    so subscribing to a shared base receives every subclass.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[DomainEventHandler]] = {}

    def subscribe(
        self, event_type: type[DomainEvent], handler: DomainEventHandler
    ) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            f"Subscribed handler {handler.__class__.__name__} to {event_type.__name__}"
        )

    def _handlers_for(self, event: DomainEvent) -> list[DomainEventHandler]:
        matched: list[DomainEventHandler] = []
        for event_type in type(event).__mro__:
            matched.extend(self._handlers.get(event_type, []))
        return matched

    async def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers_for(event)

        logger.debug(f"Publishing event {event.event_type} to {len(handlers)} handlers")

        for handler in handlers:
            try:
                await handler.handle(event)
            except Exception as e:
                logger.error(
                    f"Error handling event {event.event_type} "
                    f"by {handler.__class__.__name__}: {e}"
                )
