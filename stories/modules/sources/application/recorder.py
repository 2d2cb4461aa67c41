"""Run log recorder.

每次运行结束时（成功或失败）原子地：设置 last_run、追加日志、按状态机更新 status。
"""

import asyncio
from datetime import datetime

from loguru import logger

from stories.core.infrastructure.logging import BusinessEvents
from stories.modules.sources.domain.entities import RunLogEntry, RunTrigger
from stories.modules.sources.domain.outcome import RunOutcome
from stories.modules.sources.domain.repository import SourceRepository


class RunLogRecorder:
    """Single writer for run bookkeeping on source records."""

    def __init__(self, source_repository: SourceRepository):
        self.source_repository = source_repository
        self._lock = asyncio.Lock()

    async def begin_run(self, source_id: str, now: datetime) -> datetime | None:
        """Stamp last_run before the fetch starts. Returns the run start time."""
        async with self._lock:
            source = await self.source_repository.get_by_id(source_id)
            if source is None:
                logger.warning(f"Cannot start run, source {source_id} no longer exists")
                return None
            started_at = source.begin_run(now)
            await self.source_repository.update(source)
            return started_at

    async def record(
        self,
        source_id: str,
        started_at: datetime,
        trigger: RunTrigger,
        outcome: RunOutcome,
        duration_ms: int = 0,
    ) -> RunLogEntry | None:
        entry = RunLogEntry(
            started_at=started_at,
            status=outcome.status,
            items_count=outcome.items_count,
            message=outcome.message,
            response_snippet=outcome.response_snippet,
            trigger=trigger,
        )
        async with self._lock:
            source = await self.source_repository.get_by_id(source_id)
            if source is None:
                # 运行期间源被删除，日志随源一起丢弃
                logger.warning(
                    f"Dropping {trigger} run result for deleted source {source_id}: "
                    f"{outcome.message}"
                )
                return None
            if trigger == RunTrigger.TEST:
                source.record_test(entry)
            else:
                source.record_run(entry)
            await self.source_repository.update(source)

        logger.info(
            f"Recorded {trigger} run for {source.name}: {entry.status} "
            f"items={entry.items_count} status={source.status}"
        )
        if outcome.is_success:
            BusinessEvents.source_run_completed(
                source_id=source_id,
                trigger=trigger,
                items_count=outcome.items_count,
                duration_ms=duration_ms,
            )
        else:
            BusinessEvents.source_run_failed(
                source_id=source_id,
                trigger=trigger,
                error=outcome.message,
                items_count=outcome.items_count,
            )
        return entry
