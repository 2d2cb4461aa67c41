"""Fetcher domain interfaces and result types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from stories.modules.sources.domain.entities import PollingConfig


class FetchErrorKind(StrEnum):
    """抓取失败类型。"""

    NETWORK = "network"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"
    INVALID_PAYLOAD = "invalid_payload"


@dataclass
class FetchResult:
    """抓取结果封装：Ok(records) 或 Err(kind, detail)。"""

    records: list[Any] = field(default_factory=list)
    pages: int = 0
    error_kind: FetchErrorKind | None = None
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def is_success(self) -> bool:
        return self.error_kind is None

    @property
    def items_count(self) -> int:
        return len(self.records)

    @classmethod
    def ok(
        cls,
        records: list[Any],
        pages: int = 1,
        duration_ms: int = 0,
    ) -> "FetchResult":
        return cls(records=records, pages=pages, duration_ms=duration_ms)

    @classmethod
    def err(
        cls,
        kind: FetchErrorKind,
        error_message: str,
        pages: int = 0,
        duration_ms: int = 0,
    ) -> "FetchResult":
        return cls(
            error_kind=kind,
            error_message=error_message,
            pages=pages,
            duration_ms=duration_ms,
        )


@dataclass
class ProbeResult:
    """Test-connection result with the first page for preview."""

    success: bool
    message: str
    status_code: int | None = None
    data: Any = None


class PollingFetcher(ABC):
    """轮询抓取器基类。"""

    @abstractmethod
    async def fetch(self, now: datetime) -> FetchResult:
        """Run the bounded pagination loop; never raises."""

    @abstractmethod
    async def probe(self, now: datetime) -> ProbeResult:
        """Request the first page only."""


class FetcherFactory(Protocol):
    def create(self, config: "PollingConfig") -> PollingFetcher: ...
