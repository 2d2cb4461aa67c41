"""Webhook receiving endpoint."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from stories.core.interfaces.http.response import ApiResponse
from stories.modules.sources.application.commands import ReceiveWebhookCommand
from stories.modules.sources.application.dependencies import get_receive_webhook_handler
from stories.modules.sources.application.handlers import ReceiveWebhookHandler
from stories.modules.sources.interfaces.schemas import RunResultResponse

router = APIRouter(prefix="/hooks", tags=["webhooks"])


@router.post(
    "/{source_id}",
    response_model=ApiResponse[RunResultResponse],
    summary="接收 Webhook 推送",
    description="请求体按 UTF-8 解码并解析为 JSON；解码或解析失败记为 Error 日志并返回 422",
)
async def receive_webhook(
    source_id: str,
    request: Request,
    handler: ReceiveWebhookHandler = Depends(get_receive_webhook_handler),
):
    raw = await request.body()
    outcome = await handler.handle(
        ReceiveWebhookCommand(
            source_id=source_id,
            payload=raw,
        )
    )
    result = RunResultResponse(
        status=outcome.status,
        message=outcome.message,
        items_count=outcome.items_count,
        signals_created=outcome.signals_created,
    )
    if not outcome.is_success:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
        body = ApiResponse.failure(code=code, message=outcome.message, data=result)
        return JSONResponse(status_code=code, content=body.model_dump(mode="json"))
    return ApiResponse.success(data=result, message=outcome.message)
