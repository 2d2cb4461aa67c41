"""Source module infrastructure dependencies.

源注册表、记录器、调度器均为进程级单例（单进程内存状态）。
"""

from functools import lru_cache

from stories.core.domain.events import get_event_bus
from stories.modules.signals.application.pipeline import SignalPipeline
from stories.modules.signals.infrastructure.dependencies import (
    get_signal_store,
    get_signal_transformer,
)
from stories.modules.sources.application.recorder import RunLogRecorder
from stories.modules.sources.application.run_service import IngestRunService
from stories.modules.sources.application.scheduler import SchedulerLoop, SchedulerService
from stories.modules.sources.application.webhook import WebhookIngestor
from stories.modules.sources.infrastructure.fetchers.factory import HttpFetcherFactory
from stories.modules.sources.infrastructure.repositories import InMemorySourceRepository


@lru_cache
def get_source_repository() -> InMemorySourceRepository:
    return InMemorySourceRepository(get_event_bus())


@lru_cache
def get_run_log_recorder() -> RunLogRecorder:
    return RunLogRecorder(get_source_repository())


def get_signal_pipeline() -> SignalPipeline:
    return SignalPipeline(get_signal_transformer(), get_signal_store())


@lru_cache
def get_run_service() -> IngestRunService:
    return IngestRunService(
        source_repository=get_source_repository(),
        recorder=get_run_log_recorder(),
        fetcher_factory=HttpFetcherFactory(),
        pipeline=get_signal_pipeline(),
    )


@lru_cache
def get_scheduler_service() -> SchedulerService:
    return SchedulerService(get_source_repository(), get_run_service())


@lru_cache
def get_scheduler_loop() -> SchedulerLoop:
    return SchedulerLoop(get_scheduler_service())


@lru_cache
def get_webhook_ingestor() -> WebhookIngestor:
    return WebhookIngestor(
        source_repository=get_source_repository(),
        pipeline=get_signal_pipeline(),
        recorder=get_run_log_recorder(),
    )


def reset_source_singletons() -> None:
    for factory in (
        get_source_repository,
        get_run_log_recorder,
        get_run_service,
        get_scheduler_service,
        get_scheduler_loop,
        get_webhook_ingestor,
    ):
        factory.cache_clear()
