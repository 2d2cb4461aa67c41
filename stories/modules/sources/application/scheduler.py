"""调度器。

- SchedulerService: 持有源注册表，tick(now) 逐个评估源并派发运行任务
- SchedulerLoop: 进程内时钟驱动，每 SCHEDULER_TICK_SEC 秒调用一次 tick
"""

import asyncio
import time
from datetime import datetime

from loguru import logger

from stories.core.config import settings
from stories.core.infrastructure.clock import now_local
from stories.core.infrastructure.logging import BusinessEvents
from stories.modules.sources.application.run_service import IngestRunService
from stories.modules.sources.domain.entities import RunTrigger, Source
from stories.modules.sources.domain.exceptions import (
    SourceNotFoundError,
    SourceRunInProgressError,
)
from stories.modules.sources.domain.outcome import RunOutcome
from stories.modules.sources.domain.repository import SourceRepository
from stories.modules.sources.domain.schedule import (
    RunLeaseTable,
    RunRecencyGuard,
    is_due,
)


class SchedulerService:
    """Owns the source registry and decides which sources run on a tick."""

    def __init__(
        self,
        source_repository: SourceRepository,
        run_service: IngestRunService,
        recency_guard: RunRecencyGuard | None = None,
        leases: RunLeaseTable | None = None,
    ):
        self.source_repository = source_repository
        self.run_service = run_service
        self.recency_guard = recency_guard or RunRecencyGuard(
            settings.RUN_RECENCY_WINDOW_SEC
        )
        self.leases = leases or RunLeaseTable(settings.SCHEDULER_LEASE_TTL_SEC)
        self._tasks: set[asyncio.Task] = set()

    # 注册表操作

    async def add_source(self, source: Source) -> Source:
        created = await self.source_repository.create(source)
        logger.info(f"Registered source: {source.name} ({source.kind})")
        return created

    async def update_source(self, source: Source) -> Source:
        updated = await self.source_repository.update(source)
        logger.info(f"Updated source: {source.name}")
        return updated

    async def remove_source(self, source: Source | str) -> bool:
        source_id = source.id if isinstance(source, Source) else source
        removed = await self.source_repository.delete(source)
        self.leases.release(source_id)
        if removed:
            logger.info(f"Removed source: {source_id}")
        return removed

    async def get_source(self, source_id: str) -> Source:
        source = await self.source_repository.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(source_id=source_id)
        return source

    async def list_sources(self) -> list[Source]:
        return await self.source_repository.list_snapshot()

    # 调度

    async def tick(self, now: datetime) -> list[str]:
        """Evaluate every source once and spawn due runs. Never raises.

        Runs are not awaited; evaluation continues with the next source.
        """
        try:
            sources = await self.source_repository.list_snapshot()
        except Exception as e:
            logger.exception(f"Scheduler tick could not load sources: {e}")
            return []

        triggered: list[str] = []
        for source in sources:
            try:
                if not self._should_trigger(source, now):
                    continue
                if not self.leases.acquire(source.id, now):
                    logger.debug(f"Source {source.name} already running, skipped")
                    continue
                self._spawn(source.id, RunTrigger.SCHEDULE, now)
                triggered.append(source.id)
            except Exception as e:
                logger.exception(f"Scheduler failed to evaluate source {source.id}: {e}")

        if triggered:
            BusinessEvents.scheduler_tick(evaluated=len(sources), triggered=triggered)
        return triggered

    async def run_now(self, source_id: str, now: datetime | None = None) -> RunOutcome | None:
        """Manual run, awaited. Holds the lease so the scheduler cannot overlap it."""
        now = now or now_local()
        await self.get_source(source_id)
        if not self.leases.acquire(source_id, now):
            raise SourceRunInProgressError(source_id)
        try:
            return await self.run_service.run_source(source_id, RunTrigger.MANUAL, now)
        finally:
            self.leases.release(source_id)

    async def drain(self) -> None:
        """Wait for every in-flight run task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _should_trigger(self, source: Source, now: datetime) -> bool:
        if not source.is_schedulable:
            return False
        if not is_due(source.schedule, now):
            return False
        if self.recency_guard.is_recent(source.last_run, now):
            logger.debug(f"Source {source.name} ran within the recency window, skipped")
            return False
        return True

    def _spawn(self, source_id: str, trigger: RunTrigger, now: datetime) -> None:
        task = asyncio.create_task(
            self._run_and_release(source_id, trigger, now),
            name=f"source-run-{source_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_and_release(
        self, source_id: str, trigger: RunTrigger, now: datetime
    ) -> None:
        try:
            await self.run_service.run_source(source_id, trigger, now)
        except Exception as e:
            logger.exception(f"Scheduled run crashed for source {source_id}: {e}")
        finally:
            self.leases.release(source_id)


class SchedulerLoop:
    """Drive SchedulerService.tick on a fixed period aligned to the wall clock."""

    def __init__(
        self,
        scheduler: SchedulerService,
        tick_sec: int | None = None,
    ):
        self.scheduler = scheduler
        self.tick_sec = tick_sec or settings.SCHEDULER_TICK_SEC
        self._task: asyncio.Task | None = None
        self.last_tick_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="scheduler-loop")
        logger.info(f"Scheduler loop started, tick={self.tick_sec}s tz={settings.TIMEZONE}")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.scheduler.drain()
        logger.info("Scheduler loop stopped")

    async def run_once(self, now: datetime | None = None) -> list[str]:
        """One tick. Errors are logged and swallowed so the loop keeps going."""
        if not settings.SCHEDULER_ENABLED:
            return []
        now = now or now_local()
        self.last_tick_at = now
        try:
            return await self.scheduler.tick(now)
        except Exception as e:
            logger.exception(f"Scheduler tick failed: {e}")
            return []

    async def _run_forever(self) -> None:
        while True:
            await asyncio.sleep(self._seconds_to_next_tick())
            await self.run_once()

    def _seconds_to_next_tick(self) -> float:
        # 对齐到整 tick 边界，避免长期漂移错过整分钟
        return self.tick_sec - (time.time() % self.tick_sec)
