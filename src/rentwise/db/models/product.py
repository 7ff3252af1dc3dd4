"""Inventory models: rentable products owned by tenants."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin


class Product(TimestampMixin, Base):
    """Rentable inventory unit owned by one tenant.

    available_quantity is the total stock (capacity). Committed rentals are
    subtracted from it per date range; the column itself is only changed by
    catalog management.
    """

    __tablename__ = "products"

    product_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("tenants.tenant_id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    daily_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    hourly_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    available_quantity: Mapped[int] = mapped_column(default=1, nullable=False)

    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Bumped inside rental creation so concurrent writers for the same
    # product are serialized by the database row lock.
    lock_version: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (Index("idx_products_tenant", "tenant_id"),)

    def __repr__(self) -> str:
        return f"<Product(id={self.product_id}, name={self.name})>"
