from __future__ import annotations

from abc import ABC, abstractmethod

from assessment_engine.models import AttemptResult, Item


class ItemStore(ABC):
    @abstractmethod
    def load_item(self, item_id: str) -> Item | None:
        ...

    @abstractmethod
    def save_item(self, item: Item) -> str:
        """Persist *item* and return its id."""
        ...


class AttemptSink(ABC):
    @abstractmethod
    def record_attempt(self, result: AttemptResult) -> None:
        ...

    def name(self) -> str:
        return type(self).__name__
