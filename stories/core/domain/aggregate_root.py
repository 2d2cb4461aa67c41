"""Aggregate root: an entity that buffers domain events until it is saved."""

from typing import TYPE_CHECKING

from pydantic import PrivateAttr

from stories.core.domain.base_entity import BaseEntity

if TYPE_CHECKING:
    from stories.core.domain.events import DomainEvent


class AggregateRoot(BaseEntity):
    _pending_events: list["DomainEvent"] = PrivateAttr(default_factory=list)

    def add_domain_event(self, event: "DomainEvent") -> None:
        self._pending_events.append(event)

    def get_domain_events(self) -> list["DomainEvent"]:
        """未发布事件的副本。"""
        return list(self._pending_events)

    def clear_domain_events(self) -> None:
        self._pending_events.clear()

    def pop_domain_events(self) -> list["DomainEvent"]:
        """取出并清空未发布事件。"""
        events, self._pending_events = self._pending_events, []
        return events
