"""Source module application dependencies."""

from typing import NoReturn

from fastapi import Depends

from stories.modules.sources.application.handlers import (
    ActivateSourceHandler,
    CreateIntegrationHandler,
    CreateWebSourceHandler,
    DeactivateSourceHandler,
    DeleteSourceHandler,
    ReceiveWebhookHandler,
    RunSourceHandler,
    TestConnectionHandler,
    TestSourceHandler,
    UpdateSourceHandler,
)
from stories.modules.sources.application.run_service import IngestRunService
from stories.modules.sources.application.scheduler import SchedulerService
from stories.modules.sources.application.webhook import WebhookIngestor
from stories.modules.sources.domain.repository import SourceRepository


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_source_repository() -> SourceRepository:
    _missing_dependency("SourceRepository")


async def get_scheduler_service() -> SchedulerService:
    _missing_dependency("SchedulerService")


async def get_run_service() -> IngestRunService:
    _missing_dependency("IngestRunService")


async def get_webhook_ingestor() -> WebhookIngestor:
    _missing_dependency("WebhookIngestor")


async def get_create_integration_handler(
    source_repository: SourceRepository = Depends(get_source_repository),
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> CreateIntegrationHandler:
    return CreateIntegrationHandler(source_repository, scheduler)


async def get_create_web_source_handler(
    source_repository: SourceRepository = Depends(get_source_repository),
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> CreateWebSourceHandler:
    return CreateWebSourceHandler(source_repository, scheduler)


async def get_update_source_handler(
    source_repository: SourceRepository = Depends(get_source_repository),
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> UpdateSourceHandler:
    return UpdateSourceHandler(source_repository, scheduler)


async def get_delete_source_handler(
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> DeleteSourceHandler:
    return DeleteSourceHandler(scheduler)


async def get_activate_source_handler(
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> ActivateSourceHandler:
    return ActivateSourceHandler(scheduler)


async def get_deactivate_source_handler(
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> DeactivateSourceHandler:
    return DeactivateSourceHandler(scheduler)


async def get_run_source_handler(
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> RunSourceHandler:
    return RunSourceHandler(scheduler)


async def get_test_source_handler(
    run_service: IngestRunService = Depends(get_run_service),
) -> TestSourceHandler:
    return TestSourceHandler(run_service)


async def get_test_connection_handler(
    run_service: IngestRunService = Depends(get_run_service),
) -> TestConnectionHandler:
    return TestConnectionHandler(run_service)


async def get_receive_webhook_handler(
    ingestor: WebhookIngestor = Depends(get_webhook_ingestor),
) -> ReceiveWebhookHandler:
    return ReceiveWebhookHandler(ingestor)
