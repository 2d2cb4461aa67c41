"""Signal module ports.

The ingestion engine only talks to these two collaborators:
- SignalTransformer: raw heterogeneous JSON -> Signals, Signals -> Stories
- SignalStore: holds the resulting Signal and Story collections
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol

from stories.modules.signals.domain.entities import Signal, SignalType, Story


class WebSearchTarget(Protocol):
    """What a web search needs to know about a source."""

    @property
    def name(self) -> str: ...

    @property
    def url(self) -> str | None: ...

    @property
    def target_signal_type(self) -> SignalType: ...


class SignalTransformer(ABC):
    """Port for the AI transformer."""

    @abstractmethod
    async def transform(
        self,
        source_name: str,
        raw: Any,
        target_type: SignalType | None = None,
    ) -> list[Signal]:
        """Normalize raw JSON data into signals."""

    @abstractmethod
    async def cluster(self, signals: list[Signal]) -> list[Story]:
        """Group signals into stories."""

    @abstractmethod
    async def search(self, target: WebSearchTarget) -> list[Signal]:
        """Search the web for signals about a target."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the transformer can currently be called."""


class SignalStore(ABC):
    """Port for the signal/story store."""

    @abstractmethod
    async def add_signals(self, signals: list[Signal]) -> list[Signal]:
        """Prepend new signals and return the full collection."""

    @abstractmethod
    async def list_signals(
        self, page: int = 1, page_size: int = 50
    ) -> tuple[list[Signal], int]:
        pass

    @abstractmethod
    async def all_signals(self) -> list[Signal]:
        pass

    @abstractmethod
    async def delete_signal(self, signal_id: str) -> bool:
        pass

    @abstractmethod
    async def replace_stories(self, stories: list[Story]) -> None:
        pass

    @abstractmethod
    async def list_stories(self) -> list[Story]:
        pass
