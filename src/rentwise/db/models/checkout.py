"""Checkout session model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableDateTime, PortableJSON, PortableUUID, utc_now


class CheckoutSession(Base):
    """Record of a checkout handed to the payment processor.

    payload holds the same reservation intent that travels through the
    processor metadata, for support lookups. The reconciler only trusts
    what it recomputes.
    """

    __tablename__ = "checkout_sessions"

    checkout_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    payment_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        PortableDateTime(), default=utc_now, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(PortableDateTime(), nullable=False)

    is_processed: Mapped[bool] = mapped_column(default=False, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(PortableDateTime(), nullable=True)

    __table_args__ = (Index("idx_checkout_payment_reference", "payment_reference"),)

    def __repr__(self) -> str:
        return f"<CheckoutSession(id={self.checkout_id}, key={self.idempotency_key})>"
