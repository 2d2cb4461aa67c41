"""Source API routes."""

from fastapi import APIRouter, Depends, Query, status

from stories.core.config import settings
from stories.core.interfaces.http.response import ApiResponse, PaginatedResponse
from stories.modules.signals.domain.entities import SignalType
from stories.modules.sources.application.commands import (
    ActivateSourceCommand,
    CreateIntegrationCommand,
    CreateWebSourceCommand,
    DeactivateSourceCommand,
    DeleteSourceCommand,
    RunSourceCommand,
    TestConnectionCommand,
    TestSourceCommand,
    UpdateSourceCommand,
)
from stories.modules.sources.application.dependencies import (
    get_activate_source_handler,
    get_create_integration_handler,
    get_create_web_source_handler,
    get_deactivate_source_handler,
    get_delete_source_handler,
    get_run_source_handler,
    get_scheduler_service,
    get_source_repository,
    get_test_connection_handler,
    get_test_source_handler,
    get_update_source_handler,
)
from stories.modules.sources.application.handlers import (
    ActivateSourceHandler,
    CreateIntegrationHandler,
    CreateWebSourceHandler,
    DeactivateSourceHandler,
    DeleteSourceHandler,
    RunSourceHandler,
    TestConnectionHandler,
    TestSourceHandler,
    UpdateSourceHandler,
)
from stories.modules.sources.application.scheduler import SchedulerService
from stories.modules.sources.domain.entities import SourceKind, SourceStatus
from stories.modules.sources.domain.exceptions import InvalidSourceConfigError
from stories.modules.sources.domain.repository import SourceRepository
from stories.modules.sources.interfaces.schemas import (
    CreateSourceRequest,
    ProbeResponse,
    RunLogResponse,
    RunResultResponse,
    SourceResponse,
    TestConnectionRequest,
    TestResultResponse,
    UpdateSourceRequest,
)

router = APIRouter(prefix="/sources", tags=["sources"])


@router.get(
    "",
    response_model=PaginatedResponse[SourceResponse],
    summary="获取信息源列表",
    description="获取集成与 Web 源列表，支持按类别和状态过滤",
)
async def list_sources(
    kind: SourceKind | None = Query(None, description="源类别过滤"),
    source_status: SourceStatus | None = Query(None, alias="status", description="状态过滤"),
    page: int = Query(settings.DEFAULT_PAGE, ge=1, description="页码"),
    page_size: int = Query(
        settings.SOURCES_PAGE_SIZE, ge=1, le=100, description="每页数量"
    ),
    source_repository: SourceRepository = Depends(get_source_repository),
) -> PaginatedResponse[SourceResponse]:
    """List sources."""
    sources, total = await source_repository.list_by(
        kind=kind, status=source_status, page=page, page_size=page_size
    )
    return PaginatedResponse.create(
        items=[SourceResponse.from_entity(s) for s in sources],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=ApiResponse[SourceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="创建信息源",
    description="创建轮询/Webhook 集成或 Web 搜索源",
)
async def create_source(
    request: CreateSourceRequest,
    integration_handler: CreateIntegrationHandler = Depends(get_create_integration_handler),
    web_handler: CreateWebSourceHandler = Depends(get_create_web_source_handler),
) -> ApiResponse[SourceResponse]:
    """Create a new source."""
    if request.kind == SourceKind.WEB:
        if not request.url:
            raise InvalidSourceConfigError("web sources require a url")
        source = await web_handler.handle(
            CreateWebSourceCommand(
                name=request.name,
                url=request.url,
                target_signal_type=request.target_signal_type or SignalType.MARKET,
                schedule=request.schedule,
            )
        )
    else:
        source = await integration_handler.handle(
            CreateIntegrationCommand(
                name=request.name,
                source_type=request.source_type,
                target_signal_type=request.target_signal_type or SignalType.EXTERNAL,
                mode=request.mode,
                schedule=request.schedule,
                polling=request.polling,
            )
        )
    return ApiResponse.success(
        data=SourceResponse.from_entity(source),
        message="Source created",
        code=201,
    )


@router.post(
    "/test",
    response_model=ApiResponse[ProbeResponse],
    summary="测试连接",
    description="对未保存的轮询配置发起一次首页请求并返回预览数据",
)
async def test_connection(
    request: TestConnectionRequest,
    handler: TestConnectionHandler = Depends(get_test_connection_handler),
) -> ApiResponse[ProbeResponse]:
    probe = await handler.handle(TestConnectionCommand(config=request.config))
    return ApiResponse.success(
        data=ProbeResponse(
            success=probe.success,
            message=probe.message,
            status_code=probe.status_code,
            data=probe.data,
        ),
        message=probe.message,
    )


@router.get(
    "/{source_id}",
    response_model=ApiResponse[SourceResponse],
    summary="获取信息源详情",
)
async def get_source(
    source_id: str,
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> ApiResponse[SourceResponse]:
    source = await scheduler.get_source(source_id)
    return ApiResponse.success(data=SourceResponse.from_entity(source))


@router.put(
    "/{source_id}",
    response_model=ApiResponse[SourceResponse],
    summary="更新信息源",
)
async def update_source(
    source_id: str,
    request: UpdateSourceRequest,
    handler: UpdateSourceHandler = Depends(get_update_source_handler),
) -> ApiResponse[SourceResponse]:
    source = await handler.handle(
        UpdateSourceCommand(source_id=source_id, **request.model_dump(exclude_unset=True))
    )
    return ApiResponse.success(data=SourceResponse.from_entity(source), message="Source updated")


@router.delete(
    "/{source_id}",
    response_model=ApiResponse[None],
    summary="删除信息源",
    description="删除信息源，运行日志一并丢弃",
)
async def delete_source(
    source_id: str,
    handler: DeleteSourceHandler = Depends(get_delete_source_handler),
) -> ApiResponse[None]:
    await handler.handle(DeleteSourceCommand(source_id=source_id))
    return ApiResponse.success(message="Source deleted")


@router.post(
    "/{source_id}/activate",
    response_model=ApiResponse[SourceResponse],
    summary="启用信息源",
)
async def activate_source(
    source_id: str,
    handler: ActivateSourceHandler = Depends(get_activate_source_handler),
) -> ApiResponse[SourceResponse]:
    source = await handler.handle(ActivateSourceCommand(source_id=source_id))
    return ApiResponse.success(data=SourceResponse.from_entity(source), message="Source activated")


@router.post(
    "/{source_id}/deactivate",
    response_model=ApiResponse[SourceResponse],
    summary="停用信息源",
)
async def deactivate_source(
    source_id: str,
    handler: DeactivateSourceHandler = Depends(get_deactivate_source_handler),
) -> ApiResponse[SourceResponse]:
    source = await handler.handle(DeactivateSourceCommand(source_id=source_id))
    return ApiResponse.success(
        data=SourceResponse.from_entity(source), message="Source deactivated"
    )


@router.post(
    "/{source_id}/run",
    response_model=ApiResponse[RunResultResponse],
    summary="立即运行",
    description="同步执行一次抓取/搜索并返回运行结果",
)
async def run_source(
    source_id: str,
    handler: RunSourceHandler = Depends(get_run_source_handler),
) -> ApiResponse[RunResultResponse]:
    source, outcome = await handler.handle(RunSourceCommand(source_id=source_id))
    result = RunResultResponse(
        status=outcome.status,
        message=outcome.message,
        items_count=outcome.items_count,
        signals_created=outcome.signals_created,
        fallback_used=outcome.fallback_used,
        source=SourceResponse.from_entity(source),
    )
    return ApiResponse.success(data=result, message=result.message)


@router.post(
    "/{source_id}/test",
    response_model=ApiResponse[TestResultResponse],
    summary="测试信息源",
    description="测试运行：记录一条 test 日志，但不改变状态和 last_run",
)
async def test_source(
    source_id: str,
    handler: TestSourceHandler = Depends(get_test_source_handler),
) -> ApiResponse[TestResultResponse]:
    result = await handler.handle(TestSourceCommand(source_id=source_id))
    return ApiResponse.success(
        data=TestResultResponse(
            success=result.success,
            message=result.message,
            data=result.data,
            log=RunLogResponse.from_entry(result.entry) if result.entry else None,
        ),
        message=result.message,
    )


@router.get(
    "/{source_id}/logs",
    response_model=PaginatedResponse[RunLogResponse],
    summary="获取运行日志",
    description="按时间顺序返回运行日志",
)
async def list_source_logs(
    source_id: str,
    page: int = Query(settings.DEFAULT_PAGE, ge=1, description="页码"),
    page_size: int = Query(50, ge=1, le=200, description="每页数量"),
    scheduler: SchedulerService = Depends(get_scheduler_service),
) -> PaginatedResponse[RunLogResponse]:
    source = await scheduler.get_source(source_id)
    start = (page - 1) * page_size
    entries = source.logs[start : start + page_size]
    return PaginatedResponse.create(
        items=[RunLogResponse.from_entry(e) for e in entries],
        total=len(source.logs),
        page=page,
        page_size=page_size,
    )
