"""Signals module application dependencies."""

from typing import NoReturn

from stories.modules.signals.domain.ports import SignalStore, SignalTransformer


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_signal_store() -> SignalStore:
    _missing_dependency("SignalStore")


async def get_signal_transformer() -> SignalTransformer:
    _missing_dependency("SignalTransformer")
