"""Source application commands."""

from pydantic import BaseModel

from stories.modules.signals.domain.entities import SignalType
from stories.modules.sources.domain.entities import PollingConfig, Schedule, SourceMode


class CreateIntegrationCommand(BaseModel):
    """Create a polling or webhook integration."""

    name: str
    source_type: str = "External API"
    target_signal_type: SignalType = SignalType.EXTERNAL
    mode: SourceMode = SourceMode.POLLING
    schedule: Schedule = Schedule()
    polling: PollingConfig | None = None


class CreateWebSourceCommand(BaseModel):
    """Create a web/search source."""

    name: str
    url: str
    target_signal_type: SignalType = SignalType.MARKET
    schedule: Schedule = Schedule()


class UpdateSourceCommand(BaseModel):
    """Update an existing source."""

    source_id: str
    name: str | None = None
    source_type: str | None = None
    target_signal_type: SignalType | None = None
    schedule: Schedule | None = None
    mode: SourceMode | None = None
    polling: PollingConfig | None = None
    url: str | None = None


class DeleteSourceCommand(BaseModel):
    source_id: str


class ActivateSourceCommand(BaseModel):
    source_id: str


class DeactivateSourceCommand(BaseModel):
    source_id: str


class RunSourceCommand(BaseModel):
    """Run a source now."""

    source_id: str


class TestSourceCommand(BaseModel):
    source_id: str


class TestConnectionCommand(BaseModel):
    """Probe an unsaved polling config."""

    config: PollingConfig


class ReceiveWebhookCommand(BaseModel):
    source_id: str
    payload: str | bytes
