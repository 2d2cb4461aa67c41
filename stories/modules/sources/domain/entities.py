"""Source domain entities."""

import json
from datetime import date, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from stories.core.domain.aggregate_root import AggregateRoot
from stories.modules.signals.domain.entities import SignalType, format_standard_datetime
from stories.modules.sources.domain.exceptions import InvalidSourceConfigError
from stories.modules.sources.domain.templates import SourceTemplate, render_variables

SNIPPET_MAX_CHARS = 200


class SourceKind(StrEnum):
    """Source variant."""

    INTEGRATION = "integration"
    WEB = "web"


class SourceMode(StrEnum):
    POLLING = "Polling"
    WEBHOOK = "Webhook"


class SourceStatus(StrEnum):
    """源状态：只有 Active 参与调度。"""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ERROR = "Error"


class Frequency(StrEnum):
    HOURLY = "Hourly"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class DayOfWeek(StrEnum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"


class AuthType(StrEnum):
    NONE = "None"
    BASIC = "Basic"
    BEARER = "Bearer"


class PaginationStrategy(StrEnum):
    NONE = "None"
    PAGE_PARAM = "PageParam"


class RunStatus(StrEnum):
    SUCCESS = "Success"
    ERROR = "Error"


class RunTrigger(StrEnum):
    SCHEDULE = "schedule"
    MANUAL = "manual"
    WEBHOOK = "webhook"
    TEST = "test"


class Schedule(BaseModel):
    """Schedule value object.

    Formats are validated here; fields a frequency needs but that are
    missing are allowed and simply make the schedule never due.
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency = Field(default=Frequency.DAILY, description="频率")
    time_of_day: str | None = Field(default="09:00", description="HH:MM，24 小时制")
    day_of_week: DayOfWeek | None = Field(default=None, description="每周几")
    day_of_month: int | None = Field(default=None, ge=1, le=31, description="每月几号")

    @field_validator("time_of_day")
    @classmethod
    def _check_time_of_day(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        parts = v.split(":")
        if (
            len(parts) != 2
            or not all(p.isdigit() and len(p) == 2 for p in parts)
            or int(parts[0]) > 23
            or int(parts[1]) > 59
        ):
            raise ValueError(f"time_of_day must be HH:MM (24h), got '{v}'")
        return v


class AuthConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AuthType = AuthType.NONE
    credential: str | None = Field(default=None, description="API key 或 token")

    @model_validator(mode="after")
    def _require_credential(self) -> "AuthConfig":
        if self.type != AuthType.NONE and not self.credential:
            raise ValueError(f"{self.type} auth requires a credential")
        return self


class PollingConfig(BaseModel):
    """Typed request configuration of a polling integration."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="接口URL，可包含 {{today}} 等变量")
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = Field(default=None, description="请求体模板，仅 POST 发送")
    auth: AuthConfig = Field(default_factory=AuthConfig)
    pagination: PaginationStrategy = PaginationStrategy.NONE
    template: SourceTemplate = SourceTemplate.CUSTOM

    @field_validator("headers", mode="before")
    @classmethod
    def _parse_headers(cls, v: Any) -> Any:
        # 兼容旧的 JSON 字符串形式
        if v is None:
            return {}
        if isinstance(v, str):
            if not v.strip():
                return {}
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"headers must be a JSON object: {e.msg}") from e
        if not isinstance(v, dict):
            raise ValueError("headers must be a JSON object")
        return {str(k): str(val) for k, val in v.items()}

    @field_validator("body")
    @classmethod
    def _check_body(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            json.loads(render_variables(v, date.today()))
        except json.JSONDecodeError as e:
            raise ValueError(f"body must be valid JSON: {e.msg}") from e
        return v


class RunLogEntry(BaseModel):
    """Run log entry - 每次执行（调度/手动/webhook/测试）的不可变记录。"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    started_at: datetime = Field(..., description="运行开始时间")
    status: RunStatus
    items_count: int = Field(default=0, ge=0)
    message: str = ""
    response_snippet: str = Field(default="", max_length=SNIPPET_MAX_CHARS)
    trigger: RunTrigger = RunTrigger.MANUAL

    @field_validator("response_snippet", mode="before")
    @classmethod
    def _truncate_snippet(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v[:SNIPPET_MAX_CHARS]
        return v

    @computed_field
    @property
    def timestamp(self) -> str:
        return format_standard_datetime(self.started_at)

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS


class Source(AggregateRoot):
    """Source aggregate root - 轮询集成或 Web 搜索源。"""

    name: str = Field(..., min_length=1, description="源名称")
    kind: SourceKind = Field(..., description="源类别")
    source_type: str = Field(default="External API", description="展示用类型标签")
    target_signal_type: SignalType = Field(default=SignalType.EXTERNAL)
    mode: SourceMode = Field(default=SourceMode.POLLING)
    schedule: Schedule = Field(default_factory=Schedule)
    status: SourceStatus = Field(default=SourceStatus.ACTIVE)
    last_run: datetime | None = Field(default=None, description="最近一次运行开始时间")
    logs: list[RunLogEntry] = Field(default_factory=list)
    polling: PollingConfig | None = Field(default=None, description="轮询配置")
    url: str | None = Field(default=None, description="Web 源监控的站点或主题")

    @model_validator(mode="after")
    def _check_variant(self) -> "Source":
        problem = self.variant_problem(self.kind, self.mode, self.polling, self.url)
        if problem:
            raise ValueError(problem)
        return self

    @staticmethod
    def variant_problem(
        kind: SourceKind,
        mode: SourceMode,
        polling: PollingConfig | None,
        url: str | None,
    ) -> str | None:
        """Return why a kind/mode/config combination is invalid, if it is."""
        if kind == SourceKind.WEB:
            if mode != SourceMode.POLLING:
                return "web sources are always polled"
            if not url:
                return "web sources require a url"
        elif mode == SourceMode.POLLING and polling is None:
            return "polling integrations require a polling config"
        return None

    @property
    def is_schedulable(self) -> bool:
        return self.status == SourceStatus.ACTIVE and self.mode == SourceMode.POLLING

    def begin_run(self, now: datetime) -> datetime:
        """Stamp last_run at run start, before the outcome is known."""
        self.last_run = now
        self.touch()
        return now

    def record_run(self, entry: RunLogEntry) -> None:
        """Append a run log entry and apply the status state machine.

        Active/Error -> Active on success, -> Error on failure.
        Inactive stays Inactive whatever the outcome.
        """
        self.last_run = entry.started_at
        self.logs = [*self.logs, entry]

        previous = self.status
        if previous != SourceStatus.INACTIVE:
            self.status = SourceStatus.ACTIVE if entry.is_success else SourceStatus.ERROR
        self.touch()

        self._emit_run_recorded(entry)
        if self.status != previous:
            self._emit_status_changed(previous)

    def record_test(self, entry: RunLogEntry) -> None:
        """Append a test run entry; status and last_run are left alone."""
        self.logs = [*self.logs, entry]
        self.touch()
        self._emit_run_recorded(entry)

    def activate(self) -> None:
        """Manual reactivation from Inactive or Error."""
        if self.status == SourceStatus.ACTIVE:
            return
        previous = self.status
        self.status = SourceStatus.ACTIVE
        self.touch()
        self._emit_status_changed(previous)

    def deactivate(self) -> None:
        if self.status == SourceStatus.INACTIVE:
            return
        previous = self.status
        self.status = SourceStatus.INACTIVE
        self.touch()
        self._emit_status_changed(previous)

    def update_name(self, name: str) -> None:
        if name == self.name:
            return
        self.name = name
        self.touch()

    def update_schedule(self, schedule: Schedule) -> None:
        self.schedule = schedule
        self.touch()

    def update_target_signal_type(self, target_signal_type: SignalType) -> None:
        self.target_signal_type = target_signal_type
        self.touch()

    def update_connection(
        self,
        mode: SourceMode | None = None,
        polling: PollingConfig | None = None,
        url: str | None = None,
        source_type: str | None = None,
    ) -> None:
        """Update how the source is reached; validated as a whole first."""
        new_mode = mode or self.mode
        new_polling = polling or self.polling
        new_url = url if url is not None else self.url
        problem = self.variant_problem(self.kind, new_mode, new_polling, new_url)
        if problem:
            raise InvalidSourceConfigError(problem)

        # 先设置配置再切换模式，避免中间状态校验失败
        if polling is not None:
            self.polling = polling
        if url is not None:
            self.url = url
        if mode is not None:
            self.mode = mode
        if source_type is not None:
            self.source_type = source_type
        self.touch()

        from stories.modules.sources.domain.events import SourceConfigUpdatedEvent

        self.add_domain_event(SourceConfigUpdatedEvent(source_id=self.id, name=self.name))

    def _emit_run_recorded(self, entry: RunLogEntry) -> None:
        from stories.modules.sources.domain.events import SourceRunRecordedEvent

        self.add_domain_event(
            SourceRunRecordedEvent(
                source_id=self.id,
                run_id=entry.id,
                status=entry.status.value,
                trigger=entry.trigger.value,
                items_count=entry.items_count,
                message=entry.message,
            )
        )

    def _emit_status_changed(self, previous: SourceStatus) -> None:
        from stories.modules.sources.domain.events import SourceStatusChangedEvent

        self.add_domain_event(
            SourceStatusChangedEvent(
                source_id=self.id,
                previous=previous.value,
                current=self.status.value,
            )
        )
