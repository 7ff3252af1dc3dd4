"""Rental booking models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid_utils.compat import uuid7

from .base import Base, PortableDateTime, PortableUUID, TimestampMixin


class RentalStatus(str, Enum):
    """Lifecycle of a rental booking."""

    DRAFT = "draft"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RentalStatus.COMPLETED, RentalStatus.CANCELLED)

    def can_transition_to(self, target: "RentalStatus") -> bool:
        """Whether a rental in this status may move to target.

        Staying in the same status is always allowed (a no-op).
        """
        if target == self:
            return True
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[RentalStatus, frozenset[RentalStatus]] = {
    RentalStatus.DRAFT: frozenset(
        {RentalStatus.PENDING, RentalStatus.CONFIRMED, RentalStatus.CANCELLED}
    ),
    RentalStatus.PENDING: frozenset({RentalStatus.CONFIRMED, RentalStatus.CANCELLED}),
    RentalStatus.CONFIRMED: frozenset({RentalStatus.ACTIVE, RentalStatus.CANCELLED}),
    RentalStatus.ACTIVE: frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELLED}),
    RentalStatus.COMPLETED: frozenset(),
    RentalStatus.CANCELLED: frozenset(),
}


class PaymentStatus(str, Enum):
    """Payment state reported by the processor for a charge."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    REQUIRES_CAPTURE = "requires_capture"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_cancelable(self) -> bool:
        return self.value.startswith("requires_")


class BillingUnit(str, Enum):
    """Time unit a line was priced in."""

    DAY = "day"
    HOUR = "hour"


class Rental(TimestampMixin, Base):
    """Durable, billable booking for one tenant.

    At most one rental exists per (tenant_id, idempotency_key); the unique
    constraint is what makes webhook redelivery and client retries safe.
    """

    __tablename__ = "rentals"

    rental_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("tenants.tenant_id"), nullable=False
    )
    customer_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("customers.customer_id"), nullable=False
    )

    start_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)
    end_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RentalStatus.DRAFT.value
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contract_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_email_sent: Mapped[bool] = mapped_column(default=False, nullable=False)

    items: Mapped[list["RentalItem"]] = relationship(
        back_populates="rental",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RentalItem.product_id",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="uq_rentals_tenant_idempotency"),
        Index("idx_rentals_payment_reference", "payment_reference"),
        Index("idx_rentals_tenant_status", "tenant_id", "status"),
    )

    @property
    def rental_status(self) -> RentalStatus:
        return RentalStatus(self.status)

    def __repr__(self) -> str:
        return f"<Rental(id={self.rental_id}, status={self.status})>"


class RentalItem(Base):
    """A line of a rental; prices are snapshotted at creation."""

    __tablename__ = "rental_items"

    item_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    rental_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("rentals.rental_id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("products.product_id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    billing_unit: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BillingUnit.DAY.value
    )
    billable_periods: Mapped[int] = mapped_column(nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    rental: Mapped[Rental] = relationship(back_populates="items")

    __table_args__ = (Index("idx_rental_items_product", "product_id"),)
