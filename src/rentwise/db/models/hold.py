"""Reservation hold model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableDateTime, PortableUUID, utc_now


class ReservationHold(Base):
    """Advisory, TTL-bound claim on product units while a customer pays.

    A hold with expires_at <= now is dead even if the row still exists.
    """

    __tablename__ = "reservation_holds"

    hold_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("tenants.tenant_id"), nullable=False
    )
    product_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("products.product_id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    start_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)
    end_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        PortableDateTime(), default=utc_now, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)

    customer_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_holds_product_range", "product_id", "start_at", "end_at"),
        Index("idx_holds_expires_at", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def __repr__(self) -> str:
        return f"<ReservationHold(id={self.hold_id}, product={self.product_id})>"
