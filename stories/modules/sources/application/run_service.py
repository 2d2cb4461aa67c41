"""源运行服务。

协调 抓取 -> 降级 -> 转换 -> 入库 -> 重新聚类 -> 记录日志 的流程。
所有失败都在运行边界内转换为日志结果，不会抛给调度器。
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from stories.core.infrastructure.clock import now_local
from stories.core.infrastructure.logging import BusinessEvents
from stories.modules.signals.application.pipeline import SignalPipeline
from stories.modules.sources.application.fallback import FallbackPolicy
from stories.modules.sources.application.recorder import RunLogRecorder
from stories.modules.sources.domain.entities import (
    PollingConfig,
    RunLogEntry,
    RunTrigger,
    Source,
    SourceKind,
    SourceMode,
)
from stories.modules.sources.domain.exceptions import (
    SourceModeMismatchError,
    SourceNotFoundError,
)
from stories.modules.sources.domain.fetcher import FetcherFactory, ProbeResult
from stories.modules.sources.domain.outcome import RunOutcome
from stories.modules.sources.domain.repository import SourceRepository
from stories.modules.sources.domain.templates import unwrap_records


@dataclass
class SourceTestResult:
    """测试运行结果（含预览数据）。"""

    success: bool
    message: str
    data: Any = None
    entry: RunLogEntry | None = None


class IngestRunService:
    """Run one source end to end."""

    def __init__(
        self,
        source_repository: SourceRepository,
        recorder: RunLogRecorder,
        fetcher_factory: FetcherFactory,
        pipeline: SignalPipeline,
        fallback_policy: FallbackPolicy | None = None,
    ):
        self.source_repository = source_repository
        self.recorder = recorder
        self.fetcher_factory = fetcher_factory
        self.pipeline = pipeline
        self.fallback_policy = fallback_policy or FallbackPolicy()

    async def run_source(
        self,
        source_id: str,
        trigger: RunTrigger = RunTrigger.MANUAL,
        now: datetime | None = None,
    ) -> RunOutcome | None:
        """Execute one run and record it. Never raises.

        Returns None when the source is missing or cannot be polled.
        """
        now = now or now_local()
        try:
            source = await self.source_repository.get_by_id(source_id)
            if source is None:
                logger.warning(f"Run skipped, source {source_id} not found")
                return None
            if source.mode == SourceMode.WEBHOOK:
                logger.warning(f"Run skipped, {source.name} is a webhook source")
                return None

            started_at = await self.recorder.begin_run(source.id, now)
            if started_at is None:
                return None
        except Exception as e:
            logger.exception(f"Run setup failed for source {source_id}: {e}")
            return None

        start_time = time.time()
        BusinessEvents.source_run_started(source_id=source.id, trigger=trigger)
        logger.info(f"Starting {trigger} run for source: {source.name} ({source.id})")

        try:
            if source.kind == SourceKind.WEB:
                outcome = await self._run_web(source)
            else:
                outcome = await self._run_integration(source, now)
        except Exception as e:
            logger.exception(f"Run error for {source.name}: {e}")
            outcome = RunOutcome.failure(message=f"Error: {e}")

        try:
            await self.recorder.record(
                source.id,
                started_at,
                trigger,
                outcome,
                duration_ms=int((time.time() - start_time) * 1000),
            )
        except Exception as e:
            logger.exception(f"Failed to record run for {source.name}: {e}")
        return outcome

    async def _run_integration(self, source: Source, now: datetime) -> RunOutcome:
        config = source.polling
        fetch_result = await self.fetcher_factory.create(config).fetch(now)

        if fetch_result.is_success:
            records = fetch_result.records
            message = f"Fetched {len(records)} items."
            failed = False
        else:
            records = self.fallback_policy.records_for(config.template, now)
            message = f"Fetch failed: {fetch_result.error_message}. Using mock data."
            failed = True
            BusinessEvents.fallback_used(
                source_id=source.id,
                template=config.template,
                error=fetch_result.error_message or "",
                records=len(records),
            )

        signals_created = 0
        try:
            signals = await self.pipeline.transform(
                source.name, records, source.target_signal_type
            )
            await self.pipeline.publish(signals)
            signals_created = len(signals)
        except Exception as e:
            logger.warning(f"Processing failed for {source.name}: {e}")
            message += f" Processing Failed: {e}"
            failed = True

        if failed:
            return RunOutcome.failure(
                message=message,
                items_count=len(records),
                raw=records,
                signals_created=signals_created,
                fallback_used=not fetch_result.is_success,
            )
        return RunOutcome.success(
            message=message,
            items_count=len(records),
            raw=records,
            signals_created=signals_created,
        )

    async def _run_web(self, source: Source) -> RunOutcome:
        try:
            signals = await self.pipeline.search(source)
            await self.pipeline.publish(signals)
        except Exception as e:
            logger.warning(f"Web search failed for {source.name}: {e}")
            return RunOutcome.failure(message=f"Error: {e}", raw=[])

        preview = [s.model_dump(mode="json") for s in signals[:2]]
        return RunOutcome.success(
            message=f"Web search found {len(signals)} relevant signals.",
            items_count=len(signals),
            raw=preview,
            signals_created=len(signals),
        )

    async def test_source(
        self, source_id: str, now: datetime | None = None
    ) -> SourceTestResult:
        """Dry run of a saved source.

        Appends a test log entry but leaves status and last_run untouched.
        Nothing is written to the signal store.
        """
        now = now or now_local()
        source = await self.source_repository.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(source_id=source_id)

        if source.kind == SourceKind.WEB:
            try:
                signals = await self.pipeline.search(source)
            except Exception as e:
                outcome = RunOutcome.failure(message=f"Error: {e}", raw=[])
                data = None
            else:
                data = [s.model_dump(mode="json") for s in signals]
                outcome = RunOutcome.success(
                    message=f"Web search found {len(signals)} relevant signals.",
                    items_count=len(signals),
                    raw=data[:2],
                )
        else:
            if source.polling is None:
                raise SourceModeMismatchError(
                    f"Source '{source.name}' has no polling config to test"
                )
            probe = await self.fetcher_factory.create(source.polling).probe(now)
            data = probe.data
            outcome = self._probe_outcome(source.polling, probe)

        entry = await self.recorder.record(source.id, now, RunTrigger.TEST, outcome)
        return SourceTestResult(
            success=outcome.is_success,
            message=outcome.message,
            data=data,
            entry=entry,
        )

    async def test_config(
        self, config: PollingConfig, now: datetime | None = None
    ) -> ProbeResult:
        """Probe an unsaved polling config. Nothing is logged."""
        return await self.fetcher_factory.create(config).probe(now or now_local())

    @staticmethod
    def _probe_outcome(config: PollingConfig, probe: ProbeResult) -> RunOutcome:
        if not probe.success:
            return RunOutcome.failure(message=probe.message)
        records = unwrap_records(config.template, probe.data)
        return RunOutcome.success(
            message=probe.message,
            items_count=len(records),
            raw=probe.data,
        )
