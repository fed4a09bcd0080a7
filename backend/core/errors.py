"""Service error taxonomy shared by the account and session layers."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    """Base class for errors surfaced to the transport layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class InternalFailureError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"


def error_response(error: ServiceError) -> JSONResponse:
    """Render a service error the way the HTTP layer reports failures."""
    return JSONResponse({"detail": error.detail}, status_code=error.status_code)


__all__ = [
    "ServiceError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "InternalFailureError",
    "error_response",
]
