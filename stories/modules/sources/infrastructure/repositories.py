"""Source repository implementations."""

from loguru import logger

from stories.core.domain.events import EventBus
from stories.core.domain.exceptions import EntityNotFoundError
from stories.core.infrastructure.memory.event_aware_repository import EventAwareRepository
from stories.modules.sources.domain.entities import Source, SourceKind, SourceStatus
from stories.modules.sources.domain.repository import SourceRepository


class InMemorySourceRepository(EventAwareRepository[Source], SourceRepository):
    """In-process source registry.

    Stored records are private copies; every write is a whole-record
    replacement keyed by source id.
    """

    def __init__(self, event_publisher: EventBus):
        super().__init__(event_publisher)
        self._sources: dict[str, Source] = {}
        self.logger = logger

    async def get_by_id(self, source_id: str) -> Source | None:
        source = self._sources.get(source_id)
        return self._copy(source) if source else None

    async def get_by_name(self, name: str) -> Source | None:
        for source in self._sources.values():
            if source.name == name:
                return self._copy(source)
        return None

    async def exists_by_name(self, name: str, exclude_id: str | None = None) -> bool:
        return any(
            source.name == name and source.id != exclude_id
            for source in self._sources.values()
        )

    async def create(self, source: Source) -> Source:
        self._sources[source.id] = self._copy(source)
        await self._publish_events_from_entity(source)
        return source

    async def update(self, source: Source) -> Source:
        if source.id not in self._sources:
            raise EntityNotFoundError("Source", source.id)
        self._sources[source.id] = self._copy(source)
        await self._publish_events_from_entity(source)
        return source

    async def delete(self, source: Source | str) -> bool:
        source_id = source.id if isinstance(source, Source) else source
        removed = self._sources.pop(source_id, None)
        if removed is None:
            return False
        if isinstance(source, Source):
            await self._publish_events_from_entity(source)
        return True

    async def list_all(self, page: int = 1, page_size: int = 20) -> tuple[list[Source], int]:
        return await self.list_by(page=page, page_size=page_size)

    async def list_by(
        self,
        kind: SourceKind | None = None,
        status: SourceStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Source], int]:
        matched = [
            s
            for s in self._sources.values()
            if (kind is None or s.kind == kind) and (status is None or s.status == status)
        ]
        start = (page - 1) * page_size
        return [self._copy(s) for s in matched[start : start + page_size]], len(matched)

    async def list_snapshot(self) -> list[Source]:
        return [self._copy(s) for s in self._sources.values()]

    @staticmethod
    def _copy(source: Source) -> Source:
        copied = source.model_copy(deep=True)
        copied.clear_domain_events()
        return copied
