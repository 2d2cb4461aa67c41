"""健康检查类型定义。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"
    DEGRADED = "degraded"


class SchedulerHealthResult(BaseModel):
    """调度器健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    running: bool = Field(..., description="调度循环是否在运行")
    enabled: bool = Field(..., description="调度是否启用")
    in_flight: int = Field(0, description="进行中的运行数", ge=0)
    sources: int = Field(0, description="已注册的源数量", ge=0)
    last_tick_at: datetime | None = Field(None, description="最近一次 tick 时间")

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=False)
