"""Request logging middleware."""

import time
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from uuid_utils.compat import uuid7

from rentwise.observability.metrics import record_http_request

logger = structlog.get_logger("rentwise.api.requests")

# Probe and scrape paths are not logged or measured
QUIET_PATHS = {"/health", "/health/db", "/health/ready", "/metrics"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every HTTP request with its outcome and duration.

    Runs outermost so it assigns the request id used by every inner layer
    and sees the final status code, including error responses.

    Sets:
        request.state.request_id: The generated request ID (UUIDv7)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log request/response."""
        request.state.request_id = uuid7()
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        path = request.url.path
        if path not in QUIET_PATHS:
            record_http_request(
                request.method, self._route_template(request), response.status_code, duration
            )
            self._log_request(request, response, duration * 1000)
        return response

    def _route_template(self, request: Request) -> str:
        """Route path template (ids collapsed) for metric labels."""
        for route in request.app.router.routes:
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return getattr(route, "path", request.url.path)
        return "unmatched"

    def _get_client_ip(self, request: Request) -> str | None:
        """Extract client IP from request, considering proxy headers."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host
        return None

    def _log_request(self, request: Request, response: Response, duration_ms: float) -> None:
        tenant_id = getattr(request.state, "tenant_id", None)
        status_code = response.status_code

        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "http_request",
            request_id=str(request.state.request_id),
            tenant_id=str(tenant_id) if tenant_id else None,
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) or None,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
