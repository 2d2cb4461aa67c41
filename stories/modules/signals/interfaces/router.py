"""Signal and story API routes."""

from fastapi import APIRouter, Depends, Query

from stories.core.config import settings
from stories.core.interfaces.http.response import ApiResponse, PaginatedResponse
from stories.modules.signals.application.dependencies import get_signal_store
from stories.modules.signals.domain.exceptions import SignalNotFoundError
from stories.modules.signals.domain.ports import SignalStore
from stories.modules.signals.interfaces.schemas import SignalResponse, StoryResponse

router = APIRouter(tags=["signals"])


@router.get(
    "/signals",
    response_model=PaginatedResponse[SignalResponse],
    summary="获取信号列表",
    description="最新的信号排在最前",
)
async def list_signals(
    page: int = Query(settings.DEFAULT_PAGE, ge=1, description="页码"),
    page_size: int = Query(
        settings.SIGNALS_PAGE_SIZE, ge=1, le=200, description="每页数量"
    ),
    store: SignalStore = Depends(get_signal_store),
) -> PaginatedResponse[SignalResponse]:
    signals, total = await store.list_signals(page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[SignalResponse(**s.model_dump()) for s in signals],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.delete(
    "/signals/{signal_id}",
    response_model=ApiResponse[None],
    summary="删除信号",
)
async def delete_signal(
    signal_id: str,
    store: SignalStore = Depends(get_signal_store),
) -> ApiResponse[None]:
    if not await store.delete_signal(signal_id):
        raise SignalNotFoundError(signal_id)
    return ApiResponse.success(message="Signal deleted")


@router.get(
    "/stories",
    response_model=ApiResponse[list[StoryResponse]],
    summary="获取故事列表",
)
async def list_stories(
    store: SignalStore = Depends(get_signal_store),
) -> ApiResponse[list[StoryResponse]]:
    stories = await store.list_stories()
    return ApiResponse.success(data=[StoryResponse.from_entity(s) for s in stories])
