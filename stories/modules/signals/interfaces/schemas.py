"""Signal API schemas."""

from pydantic import BaseModel, Field

from stories.modules.signals.domain.entities import Sentiment, SignalType, Story, Urgency


class SignalResponse(BaseModel):
    id: str
    source: str
    content: str
    type: SignalType
    date: str
    author: str | None = None
    url: str | None = None


class StoryResponse(BaseModel):
    id: str
    narrative: str
    summary: str
    sentiment: Sentiment
    urgency: Urgency
    product_area: str
    user_persona: str
    source_ids: list[str] = Field(default_factory=list)
    signal_strength: int
    reasoning: str | None = None

    @classmethod
    def from_entity(cls, story: Story) -> "StoryResponse":
        return cls(**story.model_dump())
