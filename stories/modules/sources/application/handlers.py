"""Source command handlers."""

from loguru import logger

from stories.modules.sources.application.commands import (
    ActivateSourceCommand,
    CreateIntegrationCommand,
    CreateWebSourceCommand,
    DeactivateSourceCommand,
    DeleteSourceCommand,
    ReceiveWebhookCommand,
    RunSourceCommand,
    TestConnectionCommand,
    TestSourceCommand,
    UpdateSourceCommand,
)
from stories.modules.sources.application.run_service import (
    IngestRunService,
    SourceTestResult,
)
from stories.modules.sources.application.scheduler import SchedulerService
from stories.modules.sources.application.webhook import WebhookIngestor
from stories.modules.sources.domain.entities import Source, SourceKind, SourceMode
from stories.modules.sources.domain.events import (
    SourceCreatedEvent,
    SourceDeletedEvent,
)
from stories.modules.sources.domain.exceptions import (
    InvalidSourceConfigError,
    SourceAlreadyExistsError,
    SourceModeMismatchError,
    SourceNotFoundError,
)
from stories.modules.sources.domain.fetcher import ProbeResult
from stories.modules.sources.domain.outcome import RunOutcome
from stories.modules.sources.domain.repository import SourceRepository


class CreateIntegrationHandler:
    """Handle integration creation."""

    def __init__(self, source_repository: SourceRepository, scheduler: SchedulerService):
        self.source_repository = source_repository
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: CreateIntegrationCommand) -> Source:
        if await self.source_repository.exists_by_name(command.name):
            raise SourceAlreadyExistsError(command.name)

        problem = Source.variant_problem(
            SourceKind.INTEGRATION, command.mode, command.polling, None
        )
        if problem:
            raise InvalidSourceConfigError(problem)

        source = Source(
            name=command.name,
            kind=SourceKind.INTEGRATION,
            source_type=command.source_type,
            target_signal_type=command.target_signal_type,
            mode=command.mode,
            schedule=command.schedule,
            polling=command.polling,
        )
        source.add_domain_event(
            SourceCreatedEvent(source_id=source.id, name=source.name, kind=source.kind)
        )
        created = await self.scheduler.add_source(source)
        self.logger.info(f"Created integration: {source.name} ({source.mode})")
        return created


class CreateWebSourceHandler:
    """Handle web source creation."""

    def __init__(self, source_repository: SourceRepository, scheduler: SchedulerService):
        self.source_repository = source_repository
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: CreateWebSourceCommand) -> Source:
        if await self.source_repository.exists_by_name(command.name):
            raise SourceAlreadyExistsError(command.name)
        if not command.url.strip():
            raise InvalidSourceConfigError("web sources require a url")

        source = Source(
            name=command.name,
            kind=SourceKind.WEB,
            source_type="Web Search",
            target_signal_type=command.target_signal_type,
            mode=SourceMode.POLLING,
            schedule=command.schedule,
            url=command.url.strip(),
        )
        source.add_domain_event(
            SourceCreatedEvent(source_id=source.id, name=source.name, kind=source.kind)
        )
        created = await self.scheduler.add_source(source)
        self.logger.info(f"Created web source: {source.name}")
        return created


class UpdateSourceHandler:
    """Handle source update."""

    def __init__(self, source_repository: SourceRepository, scheduler: SchedulerService):
        self.source_repository = source_repository
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: UpdateSourceCommand) -> Source:
        source = await self.scheduler.get_source(command.source_id)

        if command.name and command.name != source.name:
            if await self.source_repository.exists_by_name(
                command.name, exclude_id=source.id
            ):
                raise SourceAlreadyExistsError(command.name)
            source.update_name(command.name)

        if command.schedule is not None:
            source.update_schedule(command.schedule)

        if command.target_signal_type is not None:
            source.update_target_signal_type(command.target_signal_type)

        if any(
            value is not None
            for value in (command.mode, command.polling, command.url, command.source_type)
        ):
            source.update_connection(
                mode=command.mode,
                polling=command.polling,
                url=command.url,
                source_type=command.source_type,
            )

        await self.scheduler.update_source(source)
        return source


class DeleteSourceHandler:
    """Handle source deletion. Logs are discarded with the source."""

    def __init__(self, scheduler: SchedulerService):
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: DeleteSourceCommand) -> bool:
        source = await self.scheduler.get_source(command.source_id)
        source.add_domain_event(
            SourceDeletedEvent(
                source_id=source.id, name=source.name, logs_discarded=len(source.logs)
            )
        )
        removed = await self.scheduler.remove_source(source)
        self.logger.info(f"Deleted source: {source.name}, discarded {len(source.logs)} logs")
        return removed


class ActivateSourceHandler:
    """Manual reactivation (Inactive or Error -> Active)."""

    def __init__(self, scheduler: SchedulerService):
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: ActivateSourceCommand) -> Source:
        source = await self.scheduler.get_source(command.source_id)
        source.activate()
        await self.scheduler.update_source(source)
        return source


class DeactivateSourceHandler:
    def __init__(self, scheduler: SchedulerService):
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: DeactivateSourceCommand) -> Source:
        source = await self.scheduler.get_source(command.source_id)
        source.deactivate()
        await self.scheduler.update_source(source)
        return source


class RunSourceHandler:
    """Run a polling source or web source immediately."""

    def __init__(self, scheduler: SchedulerService):
        self.scheduler = scheduler
        self.logger = logger

    async def handle(self, command: RunSourceCommand) -> tuple[Source, RunOutcome]:
        source = await self.scheduler.get_source(command.source_id)
        if source.mode == SourceMode.WEBHOOK:
            raise SourceModeMismatchError(
                f"Source '{source.name}' is webhook-driven and cannot be run manually"
            )
        outcome = await self.scheduler.run_now(source.id)
        if outcome is None:
            # 运行期间源被删除
            raise SourceNotFoundError(source_id=source.id)
        return await self.scheduler.get_source(source.id), outcome


class TestSourceHandler:
    def __init__(self, run_service: IngestRunService):
        self.run_service = run_service

    async def handle(self, command: TestSourceCommand) -> SourceTestResult:
        return await self.run_service.test_source(command.source_id)


class TestConnectionHandler:
    def __init__(self, run_service: IngestRunService):
        self.run_service = run_service

    async def handle(self, command: TestConnectionCommand) -> ProbeResult:
        return await self.run_service.test_config(command.config)


class ReceiveWebhookHandler:
    def __init__(self, ingestor: WebhookIngestor):
        self.ingestor = ingestor

    async def handle(self, command: ReceiveWebhookCommand) -> RunOutcome:
        return await self.ingestor.ingest(command.source_id, command.payload)
