"""Authentication middleware for API key validation."""

import hashlib
import hmac
import re
from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rentwise.api.middleware.errors import error_response
from rentwise.api.schemas.errors import ErrorCode
from rentwise.core.context import ActorType

# Back-office paths; the storefront, processor callbacks and probes are public
PROTECTED_PREFIXES = ("/v1/rentals",)

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that validates Bearer token authentication.

    Only protected paths need a token; every other request proceeds as an
    anonymous actor.

    Sets:
        request.state.actor_id: UUID of the authenticated actor, or None
        request.state.actor_type: Type of actor (SERVICE or ANONYMOUS)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and validate authentication."""
        if not self._requires_auth(request.url.path):
            request.state.actor_id = None
            request.state.actor_type = ActorType.ANONYMOUS
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._unauthorized(request, "Missing Authorization header")

        match = _BEARER.match(auth_header)
        if not match:
            return self._unauthorized(request, "Invalid Authorization header format")

        token = match.group(1)
        if not self._validate_token(token, request):
            return self._unauthorized(request, "Invalid API key")

        request.state.actor_id = self._get_actor_id_from_token(token)
        request.state.actor_type = ActorType.SERVICE
        return await call_next(request)

    def _requires_auth(self, path: str) -> bool:
        return path.startswith(PROTECTED_PREFIXES)

    def _validate_token(self, token: str, request: Request) -> bool:
        """Validate API token against the configured secret.

        Without a configured secret any non-empty token is accepted, in
        debug mode only.
        """
        settings = request.app.state.settings
        if settings.API_SECRET_KEY is None:
            return bool(token) and settings.DEBUG
        return hmac.compare_digest(token, settings.API_SECRET_KEY.get_secret_value())

    def _get_actor_id_from_token(self, token: str) -> UUID:
        """Deterministic actor id for an API token."""
        return UUID(bytes=hashlib.sha256(token.encode()).digest()[:16])

    def _unauthorized(self, request: Request, message: str) -> Response:
        return error_response(
            401,
            ErrorCode.UNAUTHORIZED.value,
            message,
            request,
            headers={"WWW-Authenticate": "Bearer"},
        )
