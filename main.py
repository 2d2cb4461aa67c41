"""Stories Ingest - 定时抓取与 Webhook 接入引擎入口。"""

import sentry_sdk
from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from stories.core.config import settings
from stories.core.domain.events import get_event_bus
from stories.core.domain.exceptions import DomainException
from stories.core.infrastructure.ai import check_ai_service_health
from stories.core.infrastructure.health import HealthStatus, SchedulerHealthResult
from stories.core.infrastructure.logging import setup_logging
from stories.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from stories.core.interfaces.http.routers import api_router
from stories.modules.signals.application import dependencies as signals_app_deps
from stories.modules.signals.infrastructure import dependencies as signals_infra_deps
from stories.modules.sources.application import dependencies as sources_app_deps
from stories.modules.sources.application.event_handlers import (
    register_source_event_handlers,
)
from stories.modules.sources.infrastructure import dependencies as sources_infra_deps


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting Stories ingest engine...")
    logger.info(f"Environment: {settings.ENVIRONMENT}, timezone: {settings.TIMEZONE}")

    register_source_event_handlers(get_event_bus())

    scheduler_loop = sources_infra_deps.get_scheduler_loop()
    if settings.SCHEDULER_ENABLED:
        scheduler_loop.start()
    else:
        logger.warning("Scheduler disabled, sources only run manually or by webhook")

    yield

    logger.info("Shutting down Stories ingest engine...")
    await scheduler_loop.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "定时抓取与 Webhook 接入引擎\n\n"
        "- 按计划轮询外部 JSON API，或接收 Webhook 推送\n"
        "- 原始数据经 AI 转换为 Signal，并重新聚类为 Story\n"
        "- 每次运行都会记录到源的运行日志"
    ),
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[sources_app_deps.get_source_repository] = (
    sources_infra_deps.get_source_repository
)
app.dependency_overrides[sources_app_deps.get_scheduler_service] = (
    sources_infra_deps.get_scheduler_service
)
app.dependency_overrides[sources_app_deps.get_run_service] = (
    sources_infra_deps.get_run_service
)
app.dependency_overrides[sources_app_deps.get_webhook_ingestor] = (
    sources_infra_deps.get_webhook_ingestor
)

app.dependency_overrides[signals_app_deps.get_signal_store] = (
    signals_infra_deps.get_signal_store
)
app.dependency_overrides[signals_app_deps.get_signal_transformer] = (
    signals_infra_deps.get_signal_transformer
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS middleware
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint.

    检查调度循环与 AI 服务的状态：
    - scheduler: 循环是否在运行、进行中的运行数、源数量
    - ai_service: OpenAI API 可达性（LLM 关闭时为 skipped）

    调度器停止时为 unhealthy；AI 不可用时为 degraded（运行会记为 Error）。
    """
    loop = sources_infra_deps.get_scheduler_loop()
    sources = await sources_infra_deps.get_source_repository().list_snapshot()

    scheduler_ok = loop.is_running or not settings.SCHEDULER_ENABLED
    scheduler_health = SchedulerHealthResult(
        status=HealthStatus.OK if scheduler_ok else HealthStatus.ERROR,
        running=loop.is_running,
        enabled=settings.SCHEDULER_ENABLED,
        in_flight=loop.scheduler.in_flight,
        sources=len(sources),
        last_tick_at=loop.last_tick_at,
    )
    ai_health = await check_ai_service_health()
    ai_ok = ai_health.status in (HealthStatus.OK, HealthStatus.SKIPPED)

    if scheduler_ok and ai_ok:
        overall_status = "healthy"
    elif scheduler_ok:
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return {
        "status": overall_status,
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
        "components": {
            "scheduler": scheduler_health.to_dict(),
            "ai_service": ai_health.to_dict(),
        },
        "feature_flags": {
            "llm_enabled": settings.LLM_ENABLED,
            "scheduler_enabled": settings.SCHEDULER_ENABLED,
            "transformer_available": signals_infra_deps.get_signal_transformer().available,
        },
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to Stories ingest API",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
