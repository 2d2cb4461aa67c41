"""Source 聚合与值对象单元测试。

测试覆盖：
- 源类别/模式组合校验
- 运行状态机（Active/Error/Inactive）
- 测试运行不改变状态
- 运行日志条目（截断、时间戳格式）
- 轮询配置（headers JSON 字符串、body 校验、认证凭据）
"""

import dataclasses
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from stories.modules.sources.domain.entities import (
    AuthConfig,
    AuthType,
    PollingConfig,
    RunLogEntry,
    RunStatus,
    RunTrigger,
    Source,
    SourceKind,
    SourceMode,
    SourceStatus,
)
from stories.modules.sources.domain.events import (
    SourceRunRecordedEvent,
    SourceStatusChangedEvent,
)
from stories.modules.sources.domain.exceptions import InvalidSourceConfigError
from stories.modules.sources.domain.outcome import RunOutcome, make_snippet
from tests.factories import make_integration, make_web, make_webhook

STARTED = datetime(2026, 9, 24, 10, 0, 14, tzinfo=ZoneInfo("UTC"))


def entry(status: RunStatus, trigger: RunTrigger = RunTrigger.SCHEDULE) -> RunLogEntry:
    return RunLogEntry(started_at=STARTED, status=status, trigger=trigger, items_count=2)


# ============================================
# 类别/模式校验
# ============================================


class TestSourceVariants:
    """源类别与模式组合。"""

    def test_polling_integration_requires_config(self):
        with pytest.raises(ValueError):
            Source(name="x", kind=SourceKind.INTEGRATION, mode=SourceMode.POLLING)

    def test_webhook_integration_needs_no_config(self):
        source = make_webhook()
        assert source.polling is None
        assert source.is_schedulable is False

    def test_web_source_requires_url(self):
        with pytest.raises(ValueError):
            Source(name="x", kind=SourceKind.WEB)

    def test_web_source_cannot_be_webhook(self):
        with pytest.raises(ValueError):
            Source(
                name="x",
                kind=SourceKind.WEB,
                mode=SourceMode.WEBHOOK,
                url="https://competitor.com",
            )

    def test_web_source_is_schedulable(self):
        assert make_web().is_schedulable is True

    def test_new_source_defaults(self):
        source = make_integration()
        assert source.status == SourceStatus.ACTIVE
        assert source.last_run is None
        assert source.logs == []

    def test_update_connection_to_webhook_keeps_config(self):
        source = make_integration()
        source.update_connection(mode=SourceMode.WEBHOOK)
        assert source.mode == SourceMode.WEBHOOK
        assert source.polling is not None

    def test_update_connection_rejects_invalid_combination(self):
        source = make_web()
        with pytest.raises(InvalidSourceConfigError):
            source.update_connection(mode=SourceMode.WEBHOOK)
        assert source.mode == SourceMode.POLLING


# ============================================
# 状态机
# ============================================


class TestRunStateMachine:
    """运行状态机测试。"""

    def test_success_keeps_active(self):
        source = make_integration()
        source.record_run(entry(RunStatus.SUCCESS))

        assert source.status == SourceStatus.ACTIVE
        assert source.last_run == STARTED
        assert len(source.logs) == 1

    def test_failure_moves_to_error(self):
        source = make_integration()
        source.record_run(entry(RunStatus.ERROR))
        assert source.status == SourceStatus.ERROR

    def test_success_recovers_from_error(self):
        source = make_integration(status=SourceStatus.ERROR)
        source.record_run(entry(RunStatus.SUCCESS))
        assert source.status == SourceStatus.ACTIVE

    @pytest.mark.parametrize("status", [RunStatus.SUCCESS, RunStatus.ERROR])
    def test_inactive_stays_inactive(self, status):
        source = make_integration(status=SourceStatus.INACTIVE)
        source.record_run(entry(status))

        assert source.status == SourceStatus.INACTIVE
        assert len(source.logs) == 1
        assert source.last_run == STARTED

    def test_logs_keep_chronological_order(self):
        source = make_integration()
        first = entry(RunStatus.SUCCESS)
        second = entry(RunStatus.ERROR)
        source.record_run(first)
        source.record_run(second)
        assert [e.id for e in source.logs] == [first.id, second.id]

    def test_status_change_emits_event(self):
        source = make_integration()
        source.record_run(entry(RunStatus.ERROR))

        events = source.get_domain_events()
        assert any(isinstance(e, SourceRunRecordedEvent) for e in events)
        changed = [e for e in events if isinstance(e, SourceStatusChangedEvent)]
        assert len(changed) == 1
        assert changed[0].previous == "Active"
        assert changed[0].current == "Error"

    def test_no_status_event_without_change(self):
        source = make_integration()
        source.record_run(entry(RunStatus.SUCCESS))
        assert not any(
            isinstance(e, SourceStatusChangedEvent) for e in source.get_domain_events()
        )

    def test_test_run_leaves_status_and_last_run(self):
        source = make_integration(status=SourceStatus.ACTIVE)
        source.record_test(entry(RunStatus.ERROR, RunTrigger.TEST))

        assert source.status == SourceStatus.ACTIVE
        assert source.last_run is None
        assert source.logs[-1].trigger == RunTrigger.TEST

    def test_begin_run_stamps_last_run(self):
        source = make_integration()
        source.begin_run(STARTED)
        assert source.last_run == STARTED
        assert source.logs == []

    def test_activate_and_deactivate(self):
        source = make_integration(status=SourceStatus.ERROR)
        source.activate()
        assert source.status == SourceStatus.ACTIVE
        source.deactivate()
        assert source.status == SourceStatus.INACTIVE
        assert source.is_schedulable is False


# ============================================
# 运行日志条目
# ============================================


class TestRunLogEntry:
    """运行日志条目测试。"""

    def test_timestamp_format(self):
        assert entry(RunStatus.SUCCESS).timestamp == "September 24, 2026 10:00:14 AM"

    def test_timestamp_afternoon(self):
        log = RunLogEntry(
            started_at=datetime(2026, 9, 24, 15, 5, 0, tzinfo=ZoneInfo("UTC")),
            status=RunStatus.SUCCESS,
        )
        assert log.timestamp == "September 24, 2026 3:05:00 PM"

    def test_snippet_truncated(self):
        log = RunLogEntry(
            started_at=STARTED, status=RunStatus.SUCCESS, response_snippet="x" * 500
        )
        assert len(log.response_snippet) == 200

    def test_negative_items_rejected(self):
        with pytest.raises(ValueError):
            RunLogEntry(started_at=STARTED, status=RunStatus.SUCCESS, items_count=-1)


class TestRunOutcome:
    """运行结果与快照。"""

    def test_snippet_of_records(self):
        records = [{"id": i, "text": "y" * 50} for i in range(20)]
        snippet = make_snippet(records)
        assert len(snippet) == 200
        assert snippet.startswith('[{"id": 0')

    def test_snippet_of_raw_text_is_verbatim(self):
        assert make_snippet("not json") == "not json"

    def test_failure_outcome(self):
        outcome = RunOutcome.failure("boom", items_count=2, raw=[1, 2], fallback_used=True)
        assert outcome.status == RunStatus.ERROR
        assert outcome.is_success is False
        assert outcome.response_snippet == "[1, 2]"
        assert outcome.fallback_used is True

    def test_carries_only_log_fields(self):
        names = [f.name for f in dataclasses.fields(RunOutcome)]
        assert names == [
            "status",
            "message",
            "items_count",
            "response_snippet",
            "signals_created",
            "fallback_used",
        ]


# ============================================
# 轮询配置
# ============================================


class TestPollingConfig:
    """轮询配置测试。"""

    def test_headers_accept_json_string(self):
        config = PollingConfig(url="https://x.io", headers='{"X-Team": "core"}')
        assert config.headers == {"X-Team": "core"}

    def test_headers_reject_invalid_json(self):
        with pytest.raises(ValueError):
            PollingConfig(url="https://x.io", headers="{not json")

    def test_body_must_be_json_after_substitution(self):
        config = PollingConfig(
            url="https://x.io", method="POST", body='{"since": "{{yesterday}}"}'
        )
        assert config.body == '{"since": "{{yesterday}}"}'
        with pytest.raises(ValueError):
            PollingConfig(url="https://x.io", method="POST", body="since={{today}}")

    def test_auth_requires_credential(self):
        with pytest.raises(ValueError):
            AuthConfig(type=AuthType.BASIC)
        assert AuthConfig().type == AuthType.NONE
