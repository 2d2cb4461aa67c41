"""HTTP response envelopes."""

from typing import Any, Self

from pydantic import BaseModel


class ApiResponse[T](BaseModel):
    """{"code", "message", "data", "meta"} envelope used by every endpoint."""

    code: int = 200
    message: str = "Operation successful"
    data: T | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def success(
        cls,
        data: T | None = None,
        message: str = "Operation successful",
        code: int = 200,
        meta: dict[str, Any] | None = None,
    ) -> Self:
        return cls(code=code, message=message, data=data, meta=meta)

    @classmethod
    def failure(cls, code: int, message: str, data: T | None = None) -> Self:
        """业务失败但仍需携带结果数据（例如 Webhook 解析失败的运行结果）。"""
        return cls(code=code, message=message, data=data)


class PaginatedResponse[T](ApiResponse[list[T]]):
    data: list[T] | None = None
    meta: dict[str, Any] = {"total": 0, "page": 1, "page_size": 20}

    @classmethod
    def create(cls, items: list[T], total: int, page: int, page_size: int) -> Self:
        total_pages = (total + page_size - 1) // page_size if page_size else 0
        return cls(
            data=items,
            meta={
                "total": total,
                "page": page,
                "page_size": page_size,
                "total_pages": total_pages,
            },
        )


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: ErrorBody

    @classmethod
    def create(
        cls, code: str, message: str, details: dict[str, Any] | None = None
    ) -> Self:
        return cls(error=ErrorBody(code=code, message=message, details=details))
