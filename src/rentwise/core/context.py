"""Request context for async-safe multi-tenant operations.

This module provides request context propagation using Python's contextvars
so that logging and audit records carry the tenant and correlation ids of
the request that caused them.

Usage:
    from rentwise.core.context import create_context, request_context

    ctx = create_context(tenant_id=tenant_uuid, actor_type=ActorType.SYSTEM)

    with request_context(ctx):
        current = get_current_context()
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from rentwise.core.exceptions import ContextNotSetError


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Customer or staff via the API
    SERVICE = "service"  # Authenticated service call
    SYSTEM = "system"  # Processor callbacks, background sweeps
    ANONYMOUS = "anonymous"  # Public storefront calls


class RequestContext(BaseModel):
    """Context for a single request/operation.

    tenant_id is None for marketplace calls that span several tenants
    (quotes, holds, checkout) and for processor callbacks.
    """

    request_id: UUID = Field(default_factory=uuid7)
    tenant_id: UUID | None = None
    actor_id: UUID | None = None
    actor_type: ActorType = ActorType.ANONYMOUS

    correlation_id: UUID = Field(default_factory=uuid7)
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_audit_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for audit logging."""
        return {
            "request_id": str(self.request_id),
            "tenant_id": str(self.tenant_id) if self.tenant_id else None,
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "actor_type": self.actor_type.value,
            "correlation_id": str(self.correlation_id),
            "initiated_at": self.initiated_at.isoformat(),
        }


# =============================================================================
# Context Variable Management
# =============================================================================

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Get the current request context.

    Raises:
        ContextNotSetError: If no context is set in the current execution context
    """
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No request context is set. Use request_context() context manager."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Get the current request context, or None if not set."""
    return _request_context.get()


def get_correlation_id() -> UUID:
    """Correlation id of the current context, or a fresh one outside a request."""
    ctx = _request_context.get()
    return ctx.correlation_id if ctx is not None else uuid7()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set the request context and return a token for restoration.

    This is a low-level API. Prefer using the request_context() context manager.
    """
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Reset the context to its previous value using a token."""
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Context manager for setting request context.

    Works for both sync and async code because contextvars are
    automatically propagated to async tasks.

    Args:
        ctx: The context to set for the duration of the block

    Yields:
        The context that was set
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    tenant_id: UUID | None = None,
    actor_id: UUID | None = None,
    actor_type: ActorType = ActorType.ANONYMOUS,
    request_id: UUID | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Factory function to create a RequestContext with defaults."""
    return RequestContext(
        request_id=request_id or uuid7(),
        tenant_id=tenant_id,
        actor_id=actor_id,
        actor_type=actor_type,
        correlation_id=correlation_id or uuid7(),
    )
