"""Error handling middleware for mapping exceptions to HTTP responses."""

from datetime import UTC, datetime
from typing import Any, Callable
from uuid import UUID

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from rentwise.api.schemas.errors import APIError, ErrorCode
from rentwise.core.exceptions import (
    AuthenticationError,
    BookingConflictError,
    BookingValidationError,
    ContextNotSetError,
    PayloadError,
    PaymentGatewayError,
    ResourceNotFoundError,
    TenantInactiveError,
    TenantNotFoundError,
    TenantRequiredError,
    WebhookSignatureError,
)

logger = structlog.get_logger()

# Exception base class -> HTTP status; first match wins
EXCEPTION_MAP: dict[type[Exception], int] = {
    AuthenticationError: 401,
    TenantNotFoundError: 404,
    TenantInactiveError: 403,
    TenantRequiredError: 400,
    BookingValidationError: 400,
    PayloadError: 400,
    WebhookSignatureError: 400,
    BookingConflictError: 409,
    ResourceNotFoundError: 404,
    PaymentGatewayError: 502,
    ValidationError: 422,
}

# Codes for exceptions that do not carry an error_code of their own
_FALLBACK_CODES: dict[type[Exception], str] = {
    AuthenticationError: ErrorCode.UNAUTHORIZED.value,
    TenantNotFoundError: ErrorCode.TENANT_NOT_FOUND.value,
    TenantInactiveError: ErrorCode.TENANT_INACTIVE.value,
    TenantRequiredError: ErrorCode.TENANT_REQUIRED.value,
    ValidationError: ErrorCode.VALIDATION_ERROR.value,
}


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exception to JSON error response."""
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(exc)

        if status_code >= 500:
            logger.exception(
                "request_failed",
                path=request.url.path,
                error_code=error_code,
                exc_info=exc,
            )
        else:
            logger.info(
                "request_rejected",
                path=request.url.path,
                status_code=status_code,
                error_code=error_code,
            )

        error = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )

        return JSONResponse(
            status_code=status_code,
            content=error.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    def _get_request_id(self, request: Request) -> str:
        """Extract request ID from state or generate placeholder."""
        if hasattr(request.state, "request_id"):
            rid = request.state.request_id
            return str(rid) if isinstance(rid, UUID) else rid
        return "unknown"

    def _map_exception(self, exc: Exception) -> tuple[int, str, str, dict[str, Any] | None]:
        """Map exception to (status_code, error_code, message, details)."""
        # Context errors (internal)
        if isinstance(exc, ContextNotSetError):
            return (
                500,
                ErrorCode.INTERNAL_ERROR.value,
                "Internal server error: context not initialized",
                None,
            )

        # Validation errors (Pydantic, raised outside request parsing)
        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False, include_context=False)},
            )

        for exc_type, status_code in EXCEPTION_MAP.items():
            if isinstance(exc, exc_type):
                error_code = getattr(exc, "error_code", None) or _FALLBACK_CODES.get(
                    exc_type, ErrorCode.INVALID_REQUEST.value
                )
                return status_code, error_code, str(exc), self._details(exc)

        # Generic exceptions
        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if self.debug else None,
        )

    def _details(self, exc: Exception) -> dict[str, Any] | None:
        details = getattr(exc, "details", None)
        if callable(details):
            return details()
        tenant_id = getattr(exc, "tenant_id", None)
        if tenant_id is not None:
            return {"tenant_id": str(tenant_id)}
        return None


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    request: Request,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Standard APIError response for middleware that rejects a request early."""
    rid = getattr(request.state, "request_id", None)
    error = APIError(
        error_code=error_code,
        message=message,
        details=details,
        request_id=str(rid) if rid is not None else "unknown",
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(mode="json"),
        headers=headers,
    )
