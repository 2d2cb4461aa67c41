"""Webhook ingestion.

Webhook 源不参与调度，只在外部推送（或模拟推送）时执行。
"""

import json
import time
from datetime import datetime

from loguru import logger

from stories.core.infrastructure.clock import now_local
from stories.core.infrastructure.logging import BusinessEvents
from stories.modules.signals.application.pipeline import SignalPipeline
from stories.modules.sources.application.recorder import RunLogRecorder
from stories.modules.sources.domain.entities import RunTrigger, SourceKind, SourceMode
from stories.modules.sources.domain.exceptions import (
    SourceModeMismatchError,
    SourceNotFoundError,
)
from stories.modules.sources.domain.fetcher import FetchErrorKind, FetchResult
from stories.modules.sources.domain.outcome import RunOutcome
from stories.modules.sources.domain.repository import SourceRepository


def parse_payload(raw: str | bytes) -> FetchResult:
    """Parse a pushed payload. The parsed structure is the single record.

    Bytes must be valid UTF-8; undecodable bodies count as invalid JSON.
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError):
        return FetchResult.err(FetchErrorKind.INVALID_PAYLOAD, "Invalid JSON payload")
    return FetchResult.ok([payload], pages=0)


class WebhookIngestor:
    """Validate a pushed payload and hand it to the transformer."""

    def __init__(
        self,
        source_repository: SourceRepository,
        pipeline: SignalPipeline,
        recorder: RunLogRecorder,
    ):
        self.source_repository = source_repository
        self.pipeline = pipeline
        self.recorder = recorder

    async def ingest(
        self,
        source_id: str,
        raw: str | bytes,
        now: datetime | None = None,
    ) -> RunOutcome:
        source = await self.source_repository.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(source_id=source_id)
        if source.kind != SourceKind.INTEGRATION or source.mode != SourceMode.WEBHOOK:
            raise SourceModeMismatchError(
                f"Source '{source.name}' does not accept webhooks"
            )

        started_at = await self.recorder.begin_run(source.id, now or now_local())
        if started_at is None:
            raise SourceNotFoundError(source_id=source_id)
        start_time = time.time()
        # 日志片段使用原始文本，非法字节以替换字符展示
        raw_text = (
            raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        )
        BusinessEvents.source_run_started(source_id=source.id, trigger=RunTrigger.WEBHOOK)

        parsed = parse_payload(raw)
        if not parsed.is_success:
            BusinessEvents.webhook_rejected(
                source_id=source.id, reason=parsed.error_message or "invalid payload"
            )
            outcome = RunOutcome.failure(
                message=f"Webhook Error: {parsed.error_message}",
                raw=raw_text,
            )
        else:
            # 单个对象原样转发，不做数组包装
            payload = parsed.records[0]
            try:
                signals = await self.pipeline.transform(
                    source.name, payload, source.target_signal_type
                )
                await self.pipeline.publish(signals)
                outcome = RunOutcome.success(
                    message=f"Webhook received. Parsed {len(signals)} items.",
                    items_count=len(signals),
                    raw=raw_text,
                    signals_created=len(signals),
                )
            except Exception as e:
                logger.warning(f"Webhook processing failed for {source.name}: {e}")
                outcome = RunOutcome.failure(message=f"Webhook Error: {e}", raw=raw_text)

        await self.recorder.record(
            source.id,
            started_at,
            RunTrigger.WEBHOOK,
            outcome,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return outcome
