"""将领域异常映射为 {"error": {...}} 响应。"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from stories.core.domain.exceptions import DomainException
from stories.core.interfaces.http.response import ErrorResponse


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    logger.info(
        f"{request.method} {request.url.path} -> {exc.http_status_code} "
        f"{exc.error_code}: {exc.message}"
    )
    body = ErrorResponse.create(
        code=exc.error_code, message=exc.message, details=exc.details
    )
    return JSONResponse(status_code=exc.http_status_code, content=body.model_dump())


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse.create(code="INTERNAL_ERROR", message="An internal error occurred")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump()
    )
