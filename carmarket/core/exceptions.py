"""
Domain error taxonomy.

Services raise these; the API layer maps each class to its HTTP status in
``carmarket.main``. Messages must never carry passwords, national IDs or tax IDs.
"""
from fastapi import status


class AppError(Exception):
    """Base class for recoverable business errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "app_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(AppError):
    """Malformed or out-of-range input (non-positive price, rating outside 0-10...)."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"


class NotFoundError(AppError):
    """A referenced id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class ConflictError(AppError):
    """Uniqueness violation or a lost race on a versioned row."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class InvalidStateError(AppError):
    """Requested purchase transition is not in the state table."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_state"


class PermissionDeniedError(AppError):
    """The authenticated principal does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "permission_denied"
