"""Base mapper for entity-model conversion."""

from abc import ABC, abstractmethod
from typing import TypeVar

E = TypeVar("E")  # Entity type
M = TypeVar("M")  # Model type


class BaseMapper[E, M](ABC):
    """Converts between domain entities and database models."""

    @abstractmethod
    def to_domain(self, model: M) -> E:
        pass

    @abstractmethod
    def to_model(self, entity: E) -> M:
        pass
