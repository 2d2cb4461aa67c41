"""Signal domain entities."""

from datetime import date, datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field


class SignalType(StrEnum):
    """Signal origin category."""

    INTERNAL = "Internal"
    EXTERNAL = "External"
    MARKET = "Market"


class Sentiment(StrEnum):
    PAIN_POINT = "Pain Point"
    WIN = "Win"
    THREAT = "Threat"
    NEUTRAL = "Neutral"


class Urgency(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def format_standard_date(value: date | datetime) -> str:
    """Format as 'September 24, 2026'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


class Signal(BaseModel):
    """Signal - 标准化后的单条反馈/内容。"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="信号ID")
    source: str = Field(..., description="来源名称")
    content: str = Field(..., description="内容")
    type: SignalType = Field(..., description="信号类型")
    date: str = Field(..., description="日期，如 'September 24, 2026'")
    author: str | None = Field(default=None, description="作者")
    url: str | None = Field(default=None, description="原文URL")


class Story(BaseModel):
    """Story - AI 聚类生成的叙事，由多条 Signal 组成。"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="故事ID")
    narrative: str = Field(..., description="标题")
    summary: str = Field(..., description="摘要")
    sentiment: Sentiment = Field(..., description="情感")
    urgency: Urgency = Field(..., description="紧急程度")
    product_area: str = Field(..., description="产品领域")
    user_persona: str = Field(..., description="用户画像")
    source_ids: list[str] = Field(default_factory=list, description="组成该故事的信号ID")
    reasoning: str | None = Field(default=None, description="聚类理由")

    @computed_field
    @property
    def signal_strength(self) -> int:
        return len(self.source_ids)


def format_standard_datetime(value: datetime) -> str:
    """Format as 'September 24, 2026 10:00:14 AM'."""
    hour = value.hour % 12 or 12
    return (
        f"{format_standard_date(value)} "
        f"{hour}:{value.minute:02d}:{value.second:02d} {'AM' if value.hour < 12 else 'PM'}"
    )
