"""Customer model."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin


def normalize_email(email: str | None) -> str | None:
    """Trim and lowercase an email address; blank values become None."""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


class Customer(TimestampMixin, Base):
    """Renter known to a tenant.

    The same person renting from two tenants has two customer rows.
    Email is stored normalized so lookups can compare it directly.
    """

    __tablename__ = "customers"

    customer_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("tenants.tenant_id"), nullable=False
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_customers_tenant_email", "tenant_id", "email"),)

    def __repr__(self) -> str:
        return f"<Customer(id={self.customer_id}, tenant={self.tenant_id})>"
