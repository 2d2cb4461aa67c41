"""Source repository interface."""

from abc import abstractmethod

from stories.core.domain.repository import BaseRepository
from stories.modules.sources.domain.entities import Source, SourceKind, SourceStatus


class SourceRepository(BaseRepository[Source]):
    """Source repository interface."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Source | None:
        """Get source by name."""
        pass

    @abstractmethod
    async def exists_by_name(self, name: str, exclude_id: str | None = None) -> bool:
        """Check if source with name exists."""
        pass

    @abstractmethod
    async def list_by(
        self,
        kind: SourceKind | None = None,
        status: SourceStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Source], int]:
        """List sources filtered by kind and status."""
        pass

    @abstractmethod
    async def list_snapshot(self) -> list[Source]:
        """All sources in insertion order, for one scheduler tick."""
        pass
