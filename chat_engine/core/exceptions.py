"""Engine-wide exception classes and host integration handlers.

Every failure the engine raises on purpose derives from ``AppError`` so a
host can tell validation, authorization, state conflicts and missing
resources apart and map them to its own transport (HTTP status, RPC code).
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for engine errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found error (404)."""

    def __init__(self, message: str = "Resource not found", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str = "Validation failed", field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class ConflictError(AppError):
    """State or configuration conflict error (409)."""

    def __init__(self, message: str = "Resource conflict", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details=details,
        )


class FeatureDisabledError(ConflictError):
    """Operation invoked while its feature flag is switched off (409)."""

    def __init__(self, message: str = "Feature is disabled", feature: str | None = None):
        super().__init__(message=message, resource=feature)
        self.error_code = "FEATURE_DISABLED"


class ForbiddenError(AppError):
    """Access forbidden error (403)."""

    def __init__(self, message: str = "Access forbidden", ability: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN",
            details={"ability": ability} if ability else {},
        )


class EncryptionError(AppError):
    """Payload could not be encrypted or decrypted (500)."""

    def __init__(self, message: str = "Encryption failure", driver: str | None = None):
        super().__init__(
            message=message,
            error_code="ENCRYPTION_ERROR",
            details={"driver": driver} if driver else {},
        )


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle AppError and return consistent JSON response."""
    logger.error(
        "AppError: %s (code=%s, status=%d)",
        exc.message,
        exc.error_code,
        exc.status_code,
        extra={"details": exc.details},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.error_code,
                "message": exc.message,
                "details": exc.details if exc.details else None,
            },
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register engine exception handlers with a host FastAPI app.

    Args:
        app: The FastAPI application instance embedding the engine.
    """
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
