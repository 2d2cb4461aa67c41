"""In-memory repository base that flushes aggregate events after each write."""

from stories.core.domain.aggregate_root import AggregateRoot
from stories.core.domain.events import EventBus


class EventAwareRepository[T: AggregateRoot]:
    def __init__(self, event_publisher: EventBus):
        self._event_publisher = event_publisher

    async def _publish_events_from_entity(self, entity: T) -> None:
        for event in entity.pop_domain_events():
            await self._event_publisher.publish(event)
