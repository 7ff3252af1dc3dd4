"""Audit logging service for booking and payment accountability."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.context import get_correlation_id
from rentwise.db.models.audit import AuditEvent, AuditEventType, AuditSeverity

logger = structlog.get_logger()


class AuditLogger:
    """Service for creating audit events.

    Audit rows are written in the caller's session, so they commit or roll
    back together with the change they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        event_type: AuditEventType | str,
        event_data: dict[str, Any],
        severity: AuditSeverity | str = AuditSeverity.INFO,
        tenant_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        correlation_id: UUID | None = None,
    ) -> AuditEvent:
        """Create an immutable audit log entry.

        Args:
            event_type: Type of event (rental.created, reconciliation.mismatch, ...)
            event_data: Structured event details (must be JSON serializable)
            severity: Event severity level (default: INFO)
            tenant_id: Tenant ID (null for platform events)
            resource_type: Optional resource type (rental, checkout, ...)
            resource_id: Optional resource ID
            correlation_id: Correlation ID (default: current request context)

        Returns:
            Created AuditEvent instance
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value
        if isinstance(severity, AuditSeverity):
            severity = severity.value

        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            tenant_id=tenant_id,
            correlation_id=correlation_id or get_correlation_id(),
            resource_type=resource_type,
            resource_id=resource_id,
            event_data=event_data,
        )

        self.db.add(event)
        await self.db.flush()

        logger.info(
            f"AUDIT: {event_type}",
            severity=severity,
            tenant_id=str(tenant_id) if tenant_id else None,
            resource_type=resource_type,
            resource_id=resource_id,
        )

        return event
