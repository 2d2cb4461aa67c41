"""Domain events and the in-process event bus."""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import UTC, datetime
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel, ABC):
    """Immutable fact raised by an aggregate."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class DomainEventHandler(ABC):
    @abstractmethod
    async def handle(self, event: DomainEvent) -> None: ...


class EventBus:
    """按事件类型分发。处理器失败只记日志，不影响发布方和其他处理器。"""

    def __init__(self) -> None:
        self._handlers: defaultdict[type[DomainEvent], list[DomainEventHandler]] = (
            defaultdict(list)
        )

    def subscribe(
        self, event_type: type[DomainEvent], handler: DomainEventHandler
    ) -> None:
        self._handlers[event_type].append(handler)
        logger.debug(f"{type(handler).__name__} subscribed to {event_type.__name__}")

    async def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), ()):
            try:
                await handler.handle(event)
            except Exception as e:
                logger.error(
                    f"Handler {type(handler).__name__} failed on "
                    f"{event.event_type}: {e}"
                )

    def handler_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear_handlers(self) -> None:
        self._handlers.clear()


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_global_event_bus() -> None:
    global _event_bus
    _event_bus = None
