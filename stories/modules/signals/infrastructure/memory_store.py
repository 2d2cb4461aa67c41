"""In-memory signal store."""

from loguru import logger

from stories.modules.signals.domain.entities import Signal, Story
from stories.modules.signals.domain.ports import SignalStore


class InMemorySignalStore(SignalStore):
    """进程内信号存储。

    新信号插入到列表头部（最新在前），故事集合整体替换。
    """

    def __init__(self) -> None:
        self._signals: list[Signal] = []
        self._stories: list[Story] = []

    async def add_signals(self, signals: list[Signal]) -> list[Signal]:
        self._signals = [*signals, *self._signals]
        logger.debug(f"Stored {len(signals)} signals, total={len(self._signals)}")
        return list(self._signals)

    async def list_signals(
        self, page: int = 1, page_size: int = 50
    ) -> tuple[list[Signal], int]:
        start = (page - 1) * page_size
        return self._signals[start : start + page_size], len(self._signals)

    async def all_signals(self) -> list[Signal]:
        return list(self._signals)

    async def delete_signal(self, signal_id: str) -> bool:
        before = len(self._signals)
        self._signals = [s for s in self._signals if s.id != signal_id]
        return len(self._signals) < before

    async def replace_stories(self, stories: list[Story]) -> None:
        self._stories = list(stories)

    async def list_stories(self) -> list[Story]:
        return list(self._stories)
