"""OpenAI 信号转换器单元测试（mock AsyncOpenAI 客户端）。"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from stories.core.config import settings
from stories.core.infrastructure.ai import check_ai_service_health
from stories.core.infrastructure.health import HealthStatus
from stories.modules.signals.domain.entities import Signal, SignalType
from stories.modules.signals.domain.exceptions import (
    TransformationError,
    TransformerUnavailableError,
)
from stories.modules.signals.infrastructure.openai_transformer import (
    OpenAISignalTransformer,
)
from tests.factories import chat_completion

pytestmark = pytest.mark.anyio


@pytest.fixture(autouse=True)
def _enable_llm(monkeypatch):
    monkeypatch.setattr(settings, "LLM_ENABLED", True)


class TestTransform:
    """transform 测试。"""

    async def test_transform_parses_signals(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = chat_completion(
            json.dumps(
                {
                    "signals": [
                        {
                            "source": "Freshdesk",
                            "content": "Need dark mode",
                            "type": "External",
                            "date": "2026-09-24T10:00:00Z",
                            "author": "John Doe",
                        },
                        {"content": "PDF export broken", "date": "yesterday"},
                    ]
                }
            )
        )
        transformer = OpenAISignalTransformer(mock_openai_client)

        signals = await transformer.transform(
            "Freshdesk Tickets", [{"id": 991}], SignalType.INTERNAL
        )

        assert len(signals) == 2
        assert all(s.type == SignalType.INTERNAL for s in signals)
        assert signals[0].date == "September 24, 2026"
        assert signals[0].author == "John Doe"
        assert signals[1].source == "Freshdesk Tickets"
        assert signals[1].date == "yesterday"

        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.OPENAI_TRANSFORM_MODEL
        assert kwargs["response_format"] == {"type": "json_object"}
        assert '"id": 991' in kwargs["messages"][-1]["content"]

    async def test_fenced_bare_list(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = chat_completion(
            '```json\n[{"content": "hello"}]\n```'
        )
        transformer = OpenAISignalTransformer(mock_openai_client)

        signals = await transformer.transform("Src", {"a": 1})

        assert [s.content for s in signals] == ["hello"]
        assert signals[0].type == SignalType.EXTERNAL

    async def test_invalid_json_raises(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = chat_completion(
            "sorry, I cannot do that"
        )
        transformer = OpenAISignalTransformer(mock_openai_client)

        with pytest.raises(TransformationError):
            await transformer.transform("Src", {"a": 1})

    async def test_disabled(self, mock_openai_client, monkeypatch):
        monkeypatch.setattr(settings, "LLM_ENABLED", False)
        transformer = OpenAISignalTransformer(mock_openai_client)

        assert transformer.available is False
        with pytest.raises(TransformerUnavailableError):
            await transformer.transform("Src", {"a": 1})
        mock_openai_client.chat.completions.create.assert_not_called()

    async def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        transformer = OpenAISignalTransformer()

        assert transformer.available is False
        with pytest.raises(TransformerUnavailableError):
            await transformer.transform("Src", {"a": 1})

    async def test_retry_once_on_error(self, mock_openai_client, monkeypatch):
        mock_openai_client.chat.completions.create = AsyncMock(
            side_effect=[
                RuntimeError("rate limited"),
                chat_completion('{"signals": [{"content": "ok"}]}'),
            ]
        )
        transformer = OpenAISignalTransformer(mock_openai_client)
        monkeypatch.setattr(
            OpenAISignalTransformer._call_llm.retry, "sleep", AsyncMock()
        )

        signals = await transformer.transform("Src", {"a": 1})

        assert len(signals) == 1
        assert mock_openai_client.chat.completions.create.await_count == 2


class TestCluster:
    """cluster 测试。"""

    async def test_cluster_filters_unknown_ids(self, mock_openai_client):
        known = Signal(
            source="S", content="c", type=SignalType.INTERNAL, date="September 1, 2026"
        )
        mock_openai_client.chat.completions.create.return_value = chat_completion(
            json.dumps(
                {
                    "stories": [
                        {
                            "narrative": "Dark mode demand",
                            "summary": "Users want dark mode",
                            "sentiment": "Pain Point",
                            "urgency": "High",
                            "product_area": "Mobile",
                            "user_persona": "End user",
                            "source_ids": [known.id, "made-up"],
                        }
                    ]
                }
            )
        )
        transformer = OpenAISignalTransformer(mock_openai_client)

        stories = await transformer.cluster([known])

        assert len(stories) == 1
        assert stories[0].source_ids == [known.id]
        assert stories[0].signal_strength == 1

    async def test_cluster_empty_skips_call(self, mock_openai_client):
        transformer = OpenAISignalTransformer(mock_openai_client)

        assert await transformer.cluster([]) == []
        mock_openai_client.chat.completions.create.assert_not_called()


class TestSearch:
    """search 测试。"""

    async def test_search_uses_search_model(self, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = chat_completion(
            json.dumps(
                {
                    "signals": [
                        {"content": "Competitor X cut prices", "url": "https://x.com/blog"},
                        {"content": "No link", "url": ""},
                    ]
                }
            )
        )
        transformer = OpenAISignalTransformer(mock_openai_client)
        target = SimpleNamespace(
            name="Competitor X",
            url="https://x.com",
            target_signal_type=SignalType.MARKET,
        )

        signals = await transformer.search(target)

        assert [s.url for s in signals] == ["https://x.com/blog", "https://x.com"]
        assert all(s.type == SignalType.MARKET for s in signals)
        assert signals[0].id != signals[1].id
        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.OPENAI_SEARCH_MODEL
        assert "web_search_options" in kwargs
        assert "response_format" not in kwargs


class TestAIHealth:
    """AI 健康检查。"""

    async def test_ok(self, mock_openai_client):
        result = await check_ai_service_health(mock_openai_client)
        assert result.status == HealthStatus.OK

    async def test_skipped_when_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_ENABLED", False)
        result = await check_ai_service_health()
        assert result.status == HealthStatus.SKIPPED

    async def test_error(self, mock_openai_client):
        mock_openai_client.models.list = AsyncMock(side_effect=RuntimeError("401"))
        result = await check_ai_service_health(mock_openai_client)
        assert result.status == HealthStatus.ERROR
        assert result.error == "401"
