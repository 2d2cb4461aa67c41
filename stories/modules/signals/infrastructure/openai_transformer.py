"""OpenAI 驱动的信号转换器。

- transform: 将任意外部 JSON 转换为标准化 Signal
- cluster: 将 Signal 聚类为 Story
- search: 通过联网搜索模型为 Web 源生成 Signal
"""

import json
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import uuid4

from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stories.core.config import settings
from stories.modules.signals.domain.entities import (
    Sentiment,
    Signal,
    SignalType,
    Story,
    Urgency,
    format_standard_date,
)
from stories.modules.signals.domain.exceptions import (
    TransformationError,
    TransformerUnavailableError,
)
from stories.modules.signals.domain.ports import SignalTransformer, WebSearchTarget

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


class SignalDraft(BaseModel):
    """LLM 输出的单条信号。"""

    id: str | None = None
    source: str = ""
    content: str = Field(..., min_length=1)
    type: SignalType = SignalType.EXTERNAL
    date: str | None = None
    author: str | None = None
    url: str | None = None


class SignalDraftOutput(BaseModel):
    signals: list[SignalDraft] = Field(default_factory=list)


class StoryDraft(BaseModel):
    id: str | None = None
    narrative: str
    summary: str
    sentiment: Sentiment
    urgency: Urgency
    product_area: str
    user_persona: str
    source_ids: list[str] = Field(default_factory=list)
    reasoning: str | None = None


class StoryDraftOutput(BaseModel):
    stories: list[StoryDraft] = Field(default_factory=list)


class OpenAISignalTransformer(SignalTransformer):
    """OpenAI 实现的 SignalTransformer。"""

    def __init__(self, openai_client: AsyncOpenAI | None = None) -> None:
        self._client = openai_client
        self._logger = logger.bind(service="OpenAISignalTransformer")

    @property
    def client(self) -> AsyncOpenAI:
        """获取 OpenAI 客户端（延迟初始化）。"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_API_BASE,
            )
        return self._client

    @property
    def available(self) -> bool:
        if not settings.LLM_ENABLED:
            return False
        return self._client is not None or bool(settings.OPENAI_API_KEY)

    def _ensure_available(self) -> None:
        if not settings.LLM_ENABLED:
            raise TransformerUnavailableError("AI transformer is disabled")
        if not self.available:
            raise TransformerUnavailableError("OpenAI API key is missing")

    def _system_prompt(self, role: str) -> str:
        return (
            f"You are {role} for the product \"{settings.PRODUCT_NAME}\".\n\n"
            f"Product Context:\n{settings.PRODUCT_DESCRIPTION}\n\n"
            "Output strict JSON only."
        )

    async def transform(
        self,
        source_name: str,
        raw: Any,
        target_type: SignalType | None = None,
    ) -> list[Signal]:
        self._ensure_available()

        today = format_standard_date(datetime.now(UTC))
        raw_text = json.dumps(raw, ensure_ascii=False, default=str)
        user_prompt = (
            f'I have retrieved raw data from an external integration: "{source_name}".\n\n'
            "Parse this raw JSON data and transform it into normalized signals.\n"
            "Rules:\n"
            "1. Put the core message or feedback into 'content'.\n"
            f"2. Identify the date. If missing, use \"{today}\".\n"
            "3. Determine 'type' (Internal, External, or Market).\n"
            "4. Extract 'author' and 'url' if available.\n"
            "5. Use the integration name as 'source'.\n\n"
            'Respond with {"signals": [{"source", "content", "type", "date", '
            '"author", "url"}]}.\n\n'
            f"Raw Data:\n{raw_text[: settings.TRANSFORM_MAX_INPUT_CHARS]}"
        )
        messages = [
            {"role": "system", "content": self._system_prompt("a data transformation agent")},
            {"role": "user", "content": user_prompt},
        ]

        content = await self._call_llm(messages, model=settings.OPENAI_TRANSFORM_MODEL)
        output = self._validate(content, SignalDraftOutput)
        signals = [
            self._to_signal(draft, source_name, target_type, today)
            for draft in output.signals
        ]
        self._logger.info(f"Transformed {len(signals)} signals from {source_name}")
        return signals

    async def cluster(self, signals: list[Signal]) -> list[Story]:
        self._ensure_available()
        if not signals:
            return []

        payload = json.dumps(
            [s.model_dump(mode="json") for s in signals], ensure_ascii=False
        )
        user_prompt = (
            "Analyze the following raw signals (customer feedback, market news, "
            "internal notes).\n"
            "1. Cluster related signals together into stories.\n"
            "2. De-duplicate similar feedback.\n"
            "3. Identify sentiment (Pain Point, Win, Threat, Neutral).\n"
            "4. Assess urgency (High, Medium, Low).\n"
            "5. Tag product_area and user_persona using the product context.\n"
            "6. List the ids of the signals in each story as source_ids.\n\n"
            'Respond with {"stories": [{"narrative", "summary", "sentiment", '
            '"urgency", "product_area", "user_persona", "source_ids", "reasoning"}]}.\n\n'
            f"Raw Signals Input:\n{payload[: settings.TRANSFORM_MAX_INPUT_CHARS]}"
        )
        messages = [
            {"role": "system", "content": self._system_prompt("an expert Product Manager AI")},
            {"role": "user", "content": user_prompt},
        ]

        content = await self._call_llm(messages, model=settings.OPENAI_TRANSFORM_MODEL)
        output = self._validate(content, StoryDraftOutput)
        known_ids = {s.id for s in signals}
        return [
            Story(
                id=draft.id or str(uuid4()),
                narrative=draft.narrative,
                summary=draft.summary,
                sentiment=draft.sentiment,
                urgency=draft.urgency,
                product_area=draft.product_area,
                user_persona=draft.user_persona,
                source_ids=[sid for sid in draft.source_ids if sid in known_ids],
                reasoning=draft.reasoning,
            )
            for draft in output.stories
        ]

    async def search(self, target: WebSearchTarget) -> list[Signal]:
        self._ensure_available()

        today = format_standard_date(datetime.now(UTC))
        site_hint = f' specifically on the site or URL: "{target.url}"' if target.url else ""
        user_prompt = (
            f'Search the web for recent information regarding "{target.name}"{site_hint}.\n'
            "Look for news, blog posts, press releases, product updates, pricing "
            "changes, feature launches, customer reviews or discussions.\n"
            f'Only keep findings relevant to the product "{settings.PRODUCT_NAME}".\n\n'
            'Respond with {"signals": [{"content", "date", "author", "url"}]} where '
            "content summarizes the finding, url is the search result URL and "
            f'date defaults to "{today}".'
        )
        messages = [
            {"role": "system", "content": self._system_prompt("an expert market researcher")},
            {"role": "user", "content": user_prompt},
        ]

        content = await self._call_llm(
            messages, model=settings.OPENAI_SEARCH_MODEL, web_search=True
        )
        output = self._validate(content, SignalDraftOutput)
        signals = []
        for draft in output.signals:
            if not draft.url or len(draft.url) <= 5:
                draft = draft.model_copy(update={"url": target.url})
            signal = self._to_signal(draft, target.name, target.target_signal_type, today)
            signals.append(signal.model_copy(update={"id": str(uuid4())}))
        return signals

    @retry(
        retry=retry_if_exception_type((Exception,)),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _call_llm(
        self,
        messages: Sequence[dict[str, str]],
        model: str,
        web_search: bool = False,
    ) -> str:
        """调用 LLM API。"""
        kwargs: dict[str, Any] = {"model": model, "messages": list(messages)}
        if web_search:
            kwargs["web_search_options"] = {}
        else:
            kwargs["response_format"] = {"type": "json_object"}
            kwargs["temperature"] = 0.2

        response = await self.client.chat.completions.create(**kwargs)
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise TransformationError("Empty response from AI transformer")
        return content

    def _validate(self, raw_output: str, schema: type[T]) -> T:
        """验证并解析输出。"""
        text = _FENCE_RE.sub("", raw_output.strip())
        try:
            data = json.loads(text)
            if isinstance(data, list):
                key = next(iter(schema.model_fields))
                data = {key: data}
            return schema.model_validate(data)
        except json.JSONDecodeError as e:
            self._logger.warning(f"JSON decode error: {e}")
            raise TransformationError(f"AI transformer returned invalid JSON: {e}") from e
        except ValidationError as e:
            self._logger.warning(f"Schema validation error: {e}")
            raise TransformationError(
                f"AI transformer output failed validation: {e.error_count()} errors"
            ) from e

    @staticmethod
    def _to_signal(
        draft: SignalDraft,
        source_name: str,
        target_type: SignalType | None,
        default_date: str,
    ) -> Signal:
        return Signal(
            id=draft.id or str(uuid4()),
            source=draft.source or source_name,
            content=draft.content,
            type=target_type or draft.type,
            date=_standardize_date(draft.date) or default_date,
            author=draft.author,
            url=draft.url,
        )


def _standardize_date(value: str | None) -> str | None:
    """Normalize ISO-like dates to 'September 24, 2026'; keep anything else as-is."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return value
    return format_standard_date(parsed)
