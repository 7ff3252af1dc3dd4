"""Tenant validation middleware."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rentwise.api.middleware.errors import error_response
from rentwise.api.schemas.errors import ErrorCode
from rentwise.core.exceptions import TenantInactiveError, TenantNotFoundError
from rentwise.core.tenant import TenantService

TENANT_HEADER = "X-Tenant-ID"

# Paths that never carry tenant scope
SKIP_TENANT_PATHS = {
    "/health",
    "/health/db",
    "/health/ready",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class TenantValidationMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the X-Tenant-ID header when present.

    Marketplace endpoints (quotes, holds, checkout) work without a tenant;
    endpoints that need one enforce it with the get_required_tenant_id
    dependency. A header that is present must name an existing, active
    tenant.

    Sets:
        request.state.tenant_id: UUID of the validated tenant, or None
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and validate tenant."""
        request.state.tenant_id = None

        if self._should_skip_validation(request.url.path):
            return await call_next(request)

        tenant_header = request.headers.get(TENANT_HEADER)
        if not tenant_header:
            return await call_next(request)

        try:
            tenant_id = UUID(tenant_header)
        except ValueError:
            return error_response(
                400,
                ErrorCode.INVALID_REQUEST.value,
                f"Invalid {TENANT_HEADER} format: must be a valid UUID",
                request,
            )

        try:
            await self._validate_tenant(request, tenant_id)
        except TenantNotFoundError as e:
            return error_response(
                404,
                ErrorCode.TENANT_NOT_FOUND.value,
                str(e),
                request,
                details={"tenant_id": str(tenant_id)},
            )
        except TenantInactiveError as e:
            return error_response(
                403,
                ErrorCode.TENANT_INACTIVE.value,
                str(e),
                request,
                details={"tenant_id": str(tenant_id)},
            )

        request.state.tenant_id = tenant_id
        return await call_next(request)

    def _should_skip_validation(self, path: str) -> bool:
        return path in SKIP_TENANT_PATHS or path.startswith(("/docs", "/redoc"))

    async def _validate_tenant(self, request: Request, tenant_id: UUID) -> None:
        """Validate tenant exists and is active.

        Raises:
            TenantNotFoundError: If tenant doesn't exist
            TenantInactiveError: If tenant is deactivated
        """
        async with request.app.state.session_factory() as session:
            await TenantService(session).validate_tenant_active(tenant_id)
