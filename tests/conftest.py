"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖外部服务，HTTP 由 respx 拦截，LLM 由 fake/mock 代替）

使用方法：
    # 运行所有测试
    uv run pytest

    # 只运行单元测试
    uv run pytest tests/unit/
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from stories.core.domain.events import EventBus, reset_global_event_bus
from stories.modules.signals.application.pipeline import SignalPipeline
from stories.modules.signals.infrastructure.dependencies import reset_signal_singletons
from stories.modules.signals.infrastructure.memory_store import InMemorySignalStore
from stories.modules.sources.application.recorder import RunLogRecorder
from stories.modules.sources.application.run_service import IngestRunService
from stories.modules.sources.application.scheduler import SchedulerService
from stories.modules.sources.application.webhook import WebhookIngestor
from stories.modules.sources.infrastructure.dependencies import reset_source_singletons
from stories.modules.sources.infrastructure.fetchers.factory import HttpFetcherFactory
from stories.modules.sources.infrastructure.repositories import InMemorySourceRepository
from tests.factories import FakeSignalTransformer, chat_completion

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_singletons():
    """每个测试使用全新的事件总线与进程级单例。"""
    reset_global_event_bus()
    yield
    reset_global_event_bus()
    reset_source_singletons()
    reset_signal_singletons()


@pytest.fixture
def now() -> datetime:
    """Monday, September 28, 2026 09:00 UTC."""
    return datetime(2026, 9, 28, 9, 0, tzinfo=ZoneInfo("UTC"))


# ============================================
# 组件 Fixtures
# ============================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def source_repository(event_bus: EventBus) -> InMemorySourceRepository:
    return InMemorySourceRepository(event_bus)


@pytest.fixture
def signal_store() -> InMemorySignalStore:
    return InMemorySignalStore()


@pytest.fixture
def transformer() -> FakeSignalTransformer:
    return FakeSignalTransformer()


@pytest.fixture
def pipeline(transformer, signal_store) -> SignalPipeline:
    return SignalPipeline(transformer, signal_store)


@pytest.fixture
def recorder(source_repository) -> RunLogRecorder:
    return RunLogRecorder(source_repository)


@pytest.fixture
def run_service(source_repository, recorder, pipeline) -> IngestRunService:
    return IngestRunService(
        source_repository=source_repository,
        recorder=recorder,
        fetcher_factory=HttpFetcherFactory(),
        pipeline=pipeline,
    )


@pytest.fixture
def scheduler(source_repository, run_service) -> SchedulerService:
    return SchedulerService(source_repository, run_service)


@pytest.fixture
def ingestor(source_repository, pipeline, recorder) -> WebhookIngestor:
    return WebhookIngestor(source_repository, pipeline, recorder)


# ============================================
# HTTP Client Fixtures
# ============================================


@pytest.fixture
async def async_client(
    source_repository,
    run_service,
    scheduler,
    ingestor,
    signal_store,
    transformer,
) -> AsyncGenerator[AsyncClient, None]:
    """异步 HTTP 客户端（用于 API 测试），依赖替换为测试实例。"""
    from main import app
    from stories.modules.signals.application import dependencies as signals_app_deps
    from stories.modules.sources.application import dependencies as sources_app_deps

    saved = dict(app.dependency_overrides)
    app.dependency_overrides[sources_app_deps.get_source_repository] = (
        lambda: source_repository
    )
    app.dependency_overrides[sources_app_deps.get_scheduler_service] = lambda: scheduler
    app.dependency_overrides[sources_app_deps.get_run_service] = lambda: run_service
    app.dependency_overrides[sources_app_deps.get_webhook_ingestor] = lambda: ingestor
    app.dependency_overrides[signals_app_deps.get_signal_store] = lambda: signal_store
    app.dependency_overrides[signals_app_deps.get_signal_transformer] = (
        lambda: transformer
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    # 恢复 main 中的依赖覆盖
    app.dependency_overrides.clear()
    app.dependency_overrides.update(saved)


# ============================================
# Mock 服务 Fixtures
# ============================================


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """Mock OpenAI 客户端。"""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=chat_completion('{"signals": []}')
    )
    client.models.list = AsyncMock(return_value=MagicMock(data=[]))
    return client
