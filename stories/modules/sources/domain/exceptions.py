"""Source domain exceptions."""

from fastapi import status

from stories.core.domain.exceptions import (
    DomainException,
    DuplicateEntityError,
    EntityNotFoundError,
    ValidationError,
)


class SourceNotFoundError(EntityNotFoundError):
    """Raised when source is not found."""

    def __init__(self, source_id: str | None = None, name: str | None = None):
        if name:
            super().__init__("Source", name)
        else:
            super().__init__("Source", source_id)


class SourceAlreadyExistsError(DuplicateEntityError):
    """Raised when source with same name already exists."""

    def __init__(self, name: str):
        super().__init__("Source", "name", name)


class InvalidSourceConfigError(ValidationError):
    """Raised when source configuration is invalid."""

    error_code = "INVALID_SOURCE_CONFIG"

    def __init__(self, message: str):
        super().__init__(f"Invalid source configuration: {message}")


class SourceModeMismatchError(DomainException):
    """Raised when an operation does not fit the source's kind or mode."""

    http_status_code = status.HTTP_409_CONFLICT
    error_code = "SOURCE_MODE_MISMATCH"


class SourceRunInProgressError(DomainException):
    """Raised when a source already has a run in flight."""

    http_status_code = status.HTTP_409_CONFLICT
    error_code = "SOURCE_RUN_IN_PROGRESS"

    def __init__(self, source_id: str):
        super().__init__(f"Source '{source_id}' already has a run in progress")
