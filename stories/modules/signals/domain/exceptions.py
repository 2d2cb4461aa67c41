"""Signal domain exceptions."""

from stories.core.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    ServiceUnavailableError,
)


class SignalNotFoundError(EntityNotFoundError):
    """Raised when signal is not found."""

    def __init__(self, signal_id: str):
        super().__init__("Signal", signal_id)


class TransformerUnavailableError(ServiceUnavailableError):
    """Raised when the AI transformer is disabled or not configured."""

    error_code = "TRANSFORMER_UNAVAILABLE"

    def __init__(self, message: str = "AI transformer is not available"):
        super().__init__(message)


class TransformationError(DomainException):
    """Raised when the AI transformer returns an unusable result."""

    error_code = "TRANSFORMATION_FAILED"
