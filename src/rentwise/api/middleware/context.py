"""Request context middleware for propagating context through the request lifecycle."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils.compat import uuid7

from rentwise.core.context import ActorType, create_context, request_context

CORRELATION_HEADER = "X-Correlation-ID"

# Paths that don't need request context
SKIP_CONTEXT_PATHS = {
    "/health",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets up RequestContext for each request.

    Uses the ContextVar-based context management to propagate request
    context through async call chains, so log lines and audit rows carry
    the request, tenant and correlation ids.

    Requires:
        request.state.tenant_id: Set by TenantValidationMiddleware
        request.state.actor_id: Set by AuthenticationMiddleware
        request.state.actor_type: Set by AuthenticationMiddleware

    Sets:
        X-Request-ID and X-Correlation-ID response headers
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request within a RequestContext."""
        request_id = getattr(request.state, "request_id", None) or uuid7()
        request.state.request_id = request_id

        if self._should_skip_context(request.url.path):
            response = await call_next(request)
            response.headers["X-Request-ID"] = str(request_id)
            return response

        ctx = create_context(
            tenant_id=getattr(request.state, "tenant_id", None),
            actor_id=getattr(request.state, "actor_id", None),
            actor_type=getattr(request.state, "actor_type", ActorType.ANONYMOUS),
            request_id=request_id,
            correlation_id=self._parse_correlation_id(request),
        )

        with request_context(ctx):
            response = await call_next(request)

        response.headers["X-Request-ID"] = str(request_id)
        response.headers[CORRELATION_HEADER] = str(ctx.correlation_id)
        return response

    def _should_skip_context(self, path: str) -> bool:
        return path in SKIP_CONTEXT_PATHS or path.startswith(("/docs", "/redoc"))

    def _parse_correlation_id(self, request: Request) -> UUID | None:
        """Caller-supplied correlation id, ignored when not a UUID."""
        raw = request.headers.get(CORRELATION_HEADER)
        if not raw:
            return None
        try:
            return UUID(raw)
        except ValueError:
            return None
