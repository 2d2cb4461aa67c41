"""Domain exceptions.

每个异常类用 http_status_code / error_code 类属性声明自己的 HTTP 映射，
details 会原样放进错误响应的 error.details。
"""

from typing import Any

from fastapi import status


class DomainException(Exception):
    http_status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "DOMAIN_ERROR"

    def __init__(
        self,
        message: str = "A domain error occurred",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details
        super().__init__(message)


class EntityNotFoundError(DomainException):
    http_status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str | None = None):
        if entity_id:
            message = f"{entity_type} with id '{entity_id}' not found"
        else:
            message = f"{entity_type} not found"
        super().__init__(message, details={"entity": entity_type, "id": entity_id})


class DuplicateEntityError(DomainException):
    http_status_code = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE_ENTITY"

    def __init__(self, entity_type: str, field: str, value: str):
        super().__init__(
            f"{entity_type} with {field} '{value}' already exists",
            details={"entity": entity_type, field: value},
        )


class ValidationError(DomainException):
    """Rejected input (bad schedule fields, malformed config)."""

    error_code = "VALIDATION_ERROR"


class ServiceUnavailableError(DomainException):
    """An external collaborator (LLM, network) cannot be used right now."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "SERVICE_UNAVAILABLE"
