"""Signal pipeline: transform raw data, store signals, re-cluster stories."""

from typing import Any

from loguru import logger

from stories.modules.signals.domain.entities import Signal, SignalType
from stories.modules.signals.domain.ports import (
    SignalStore,
    SignalTransformer,
    WebSearchTarget,
)


class SignalPipeline:
    """Hand-off from the ingestion engine to the transformer and the store."""

    def __init__(self, transformer: SignalTransformer, store: SignalStore):
        self.transformer = transformer
        self.store = store
        self.logger = logger

    async def transform(
        self,
        source_name: str,
        raw: Any,
        target_type: SignalType | None = None,
    ) -> list[Signal]:
        return await self.transformer.transform(source_name, raw, target_type)

    async def search(self, target: WebSearchTarget) -> list[Signal]:
        return await self.transformer.search(target)

    async def publish(self, signals: list[Signal]) -> None:
        """Prepend new signals and rebuild stories from the whole collection."""
        if not signals:
            return
        all_signals = await self.store.add_signals(signals)
        stories = await self.transformer.cluster(all_signals)
        await self.store.replace_stories(stories)
        self.logger.info(
            f"Published {len(signals)} signals, re-clustered into {len(stories)} stories"
        )
