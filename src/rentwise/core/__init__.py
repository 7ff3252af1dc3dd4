"""Core services and utilities for Rentwise."""

from .audit import AuditLogger
from .context import (
    ActorType,
    RequestContext,
    create_context,
    get_correlation_id,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from .tenant import TenantService

__all__ = [
    # Audit
    "AuditLogger",
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "get_correlation_id",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    # Tenants
    "TenantService",
]
