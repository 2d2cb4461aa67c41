"""Source domain events."""

from pydantic import Field

from stories.core.domain.events import DomainEvent


class SourceCreatedEvent(DomainEvent):
    """Event raised when a source is created."""

    source_id: str = Field(..., description="源ID")
    name: str = Field(..., description="源名称")
    kind: str = Field(..., description="源类别")


class SourceDeletedEvent(DomainEvent):
    """Event raised when a source is deleted (its logs go with it)."""

    source_id: str = Field(..., description="源ID")
    name: str = Field(..., description="源名称")
    logs_discarded: int = Field(default=0, description="被丢弃的日志条数")


class SourceConfigUpdatedEvent(DomainEvent):
    """Event raised when source config is updated."""

    source_id: str = Field(..., description="源ID")
    name: str = Field(..., description="源名称")


class SourceRunRecordedEvent(DomainEvent):
    """Event raised when a run log entry is appended."""

    source_id: str = Field(..., description="源ID")
    run_id: str = Field(..., description="运行日志ID")
    status: str = Field(..., description="运行结果")
    trigger: str = Field(..., description="触发方式")
    items_count: int = Field(default=0, description="条目数")
    message: str = Field(default="", description="运行消息")


class SourceStatusChangedEvent(DomainEvent):
    """Event raised when a source's status transitions."""

    source_id: str = Field(..., description="源ID")
    previous: str = Field(..., description="原状态")
    current: str = Field(..., description="新状态")
