"""Source API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from stories.core.config import settings
from stories.modules.signals.domain.entities import SignalType
from stories.modules.sources.domain.entities import (
    AuthType,
    HttpMethod,
    PaginationStrategy,
    PollingConfig,
    RunLogEntry,
    RunStatus,
    RunTrigger,
    Schedule,
    Source,
    SourceKind,
    SourceMode,
    SourceStatus,
)
from stories.modules.sources.domain.templates import SourceTemplate


class CreateSourceRequest(BaseModel):
    """Create source request."""

    kind: SourceKind = Field(default=SourceKind.INTEGRATION, description="源类别")
    name: str = Field(..., min_length=1, max_length=100, description="源名称")
    source_type: str = Field(default="External API", max_length=100, description="类型标签")
    target_signal_type: SignalType | None = Field(default=None, description="目标信号类型")
    mode: SourceMode = Field(default=SourceMode.POLLING, description="摄取模式")
    schedule: Schedule = Field(default_factory=Schedule, description="调度配置")
    polling: PollingConfig | None = Field(default=None, description="轮询配置")
    url: str | None = Field(default=None, description="Web 源监控URL")

    model_config = {
        "json_schema_extra": {
            "example": {
                "kind": "integration",
                "name": "Freshdesk Tickets",
                "source_type": "Freshdesk",
                "target_signal_type": "Internal",
                "schedule": {"frequency": "Daily", "time_of_day": "09:00"},
                "polling": {
                    "url": "https://acme.freshdesk.com/api/v2/search/tickets?query=\"created_at:'{{yesterday}}'\"",
                    "auth": {"type": "Basic", "credential": "API_KEY"},
                    "pagination": "PageParam",
                    "template": "Freshdesk",
                },
            }
        }
    }


class UpdateSourceRequest(BaseModel):
    """Update source request."""

    name: str | None = Field(None, min_length=1, max_length=100, description="源名称")
    source_type: str | None = Field(None, max_length=100)
    target_signal_type: SignalType | None = None
    schedule: Schedule | None = None
    mode: SourceMode | None = None
    polling: PollingConfig | None = None
    url: str | None = Field(None, min_length=1)


class AuthResponse(BaseModel):
    type: AuthType
    credential_set: bool = Field(..., description="是否已配置凭据（不回显明文）")


class PollingConfigResponse(BaseModel):
    url: str
    method: HttpMethod
    headers: dict[str, str]
    body: str | None
    auth: AuthResponse
    pagination: PaginationStrategy
    template: SourceTemplate


class RunLogResponse(BaseModel):
    """Run log entry as shown to operators."""

    id: str
    timestamp: str = Field(..., description="如 'September 24, 2026 10:00:14 AM'")
    started_at: datetime
    status: RunStatus
    items_count: int
    message: str
    response_snippet: str
    trigger: RunTrigger

    @classmethod
    def from_entry(cls, entry: RunLogEntry) -> "RunLogResponse":
        return cls(
            id=entry.id,
            timestamp=entry.timestamp,
            started_at=entry.started_at,
            status=entry.status,
            items_count=entry.items_count,
            message=entry.message,
            response_snippet=entry.response_snippet,
            trigger=entry.trigger,
        )


class SourceResponse(BaseModel):
    """Source response."""

    id: str = Field(..., description="源ID")
    name: str = Field(..., description="源名称")
    kind: SourceKind
    source_type: str
    target_signal_type: SignalType
    mode: SourceMode
    schedule: Schedule
    status: SourceStatus
    last_run: datetime | None = Field(None, description="最近运行开始时间，空表示 Never")
    polling: PollingConfigResponse | None = None
    url: str | None = None
    webhook_url: str | None = None
    log_count: int = 0
    last_log: RunLogResponse | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, source: Source) -> "SourceResponse":
        polling = None
        if source.polling is not None:
            polling = PollingConfigResponse(
                url=source.polling.url,
                method=source.polling.method,
                headers=source.polling.headers,
                body=source.polling.body,
                auth=AuthResponse(
                    type=source.polling.auth.type,
                    credential_set=bool(source.polling.auth.credential),
                ),
                pagination=source.polling.pagination,
                template=source.polling.template,
            )
        webhook_url = None
        if source.mode == SourceMode.WEBHOOK:
            webhook_url = f"{settings.WEBHOOK_BASE_URL.rstrip('/')}/{source.id}"
        return cls(
            id=source.id,
            name=source.name,
            kind=source.kind,
            source_type=source.source_type,
            target_signal_type=source.target_signal_type,
            mode=source.mode,
            schedule=source.schedule,
            status=source.status,
            last_run=source.last_run,
            polling=polling,
            url=source.url,
            webhook_url=webhook_url,
            log_count=len(source.logs),
            last_log=RunLogResponse.from_entry(source.logs[-1]) if source.logs else None,
            created_at=source.created_at,
            updated_at=source.updated_at,
        )


class RunResultResponse(BaseModel):
    """Result of a run (manual or webhook)."""

    status: RunStatus
    message: str
    items_count: int
    signals_created: int = 0
    fallback_used: bool = False
    source: SourceResponse | None = None


class TestResultResponse(BaseModel):
    success: bool
    message: str
    data: Any = None
    log: RunLogResponse | None = None


class TestConnectionRequest(BaseModel):
    config: PollingConfig


class ProbeResponse(BaseModel):
    success: bool
    message: str
    status_code: int | None = None
    data: Any = None
