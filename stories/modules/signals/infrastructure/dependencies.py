"""Signals module infrastructure dependencies.

信号存储与转换器是进程级单例。
"""

from functools import lru_cache

from stories.modules.signals.infrastructure.memory_store import InMemorySignalStore
from stories.modules.signals.infrastructure.openai_transformer import (
    OpenAISignalTransformer,
)


@lru_cache
def get_signal_store() -> InMemorySignalStore:
    return InMemorySignalStore()


@lru_cache
def get_signal_transformer() -> OpenAISignalTransformer:
    return OpenAISignalTransformer()


def reset_signal_singletons() -> None:
    get_signal_store.cache_clear()
    get_signal_transformer.cache_clear()
