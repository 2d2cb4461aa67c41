"""Source domain event handlers."""

from loguru import logger

from stories.core.domain.events import DomainEvent, DomainEventHandler, EventBus
from stories.core.infrastructure.logging import BusinessEvents
from stories.modules.sources.domain.events import (
    SourceCreatedEvent,
    SourceDeletedEvent,
    SourceStatusChangedEvent,
)


class SourceStatusChangedHandler(DomainEventHandler):
    """Surface status transitions as business events."""

    async def handle(self, event: DomainEvent) -> None:
        if not isinstance(event, SourceStatusChangedEvent):
            return
        BusinessEvents.source_status_changed(
            source_id=event.source_id,
            previous=event.previous,
            current=event.current,
        )


class SourceLifecycleHandler(DomainEventHandler):
    async def handle(self, event: DomainEvent) -> None:
        if isinstance(event, SourceCreatedEvent):
            logger.info(f"Source created: {event.name} ({event.kind})")
        elif isinstance(event, SourceDeletedEvent):
            logger.info(
                f"Source deleted: {event.name}, {event.logs_discarded} log entries discarded"
            )


def register_source_event_handlers(event_bus: EventBus) -> None:
    event_bus.subscribe(SourceStatusChangedEvent, SourceStatusChangedHandler())
    lifecycle = SourceLifecycleHandler()
    event_bus.subscribe(SourceCreatedEvent, lifecycle)
    event_bus.subscribe(SourceDeletedEvent, lifecycle)
