"""Audit event models for booking and payment accountability."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableDateTime, PortableJSON, PortableUUID, utc_now


class AuditEventType(str, Enum):
    """Types of audit events tracked in the system."""

    # Booking lifecycle
    RENTAL_CREATED = "rental.created"
    RENTAL_STATUS_CHANGED = "rental.status_changed"
    RENTAL_CANCELLED = "rental.cancelled"

    # Checkout and reconciliation
    CHECKOUT_STARTED = "checkout.started"
    RECONCILIATION_MISMATCH = "reconciliation.mismatch"
    WEBHOOK_REJECTED = "webhook.rejected"


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(Base):
    """Immutable audit log entry.

    Audit events are append-only and capture booking and payment decisions
    that may need manual follow-up.
    """

    __tablename__ = "audit_events"

    # UUIDv7 is time-ordered, making audit events naturally sortable by ID
    audit_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")

    tenant_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), nullable=True
    )  # null for platform events
    correlation_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    event_data: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        PortableDateTime(), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("idx_audit_tenant", "tenant_id"),
        Index("idx_audit_correlation", "correlation_id"),
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.audit_id}, type={self.event_type})>"
