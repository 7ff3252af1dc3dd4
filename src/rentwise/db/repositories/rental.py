"""Rental repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from rentwise.db.models.rental import Rental, RentalItem, RentalStatus

from .base import BaseRepository


class RentalRepository(BaseRepository[Rental, UUID]):
    """Data access for rentals and their items."""

    async def get_for_tenant(self, tenant_id: UUID, rental_id: UUID) -> Rental | None:
        """Get a rental only if it belongs to tenant_id."""
        stmt = select(Rental).where(Rental.rental_id == rental_id, Rental.tenant_id == tenant_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, tenant_id: UUID, key: str) -> Rental | None:
        stmt = select(Rental).where(Rental.tenant_id == tenant_id, Rental.idempotency_key == key)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def committed_quantity(self, product_id: UUID, start: datetime, end: datetime) -> int:
        """Units of product_id on non-cancelled rentals overlapping [start, end)."""
        stmt = (
            select(func.coalesce(func.sum(RentalItem.quantity), 0))
            .join(Rental, Rental.rental_id == RentalItem.rental_id)
            .where(
                RentalItem.product_id == product_id,
                Rental.status != RentalStatus.CANCELLED.value,
                Rental.start_at < end,
                Rental.end_at > start,
            )
        )
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def find_by_payment_reference(self, reference: str) -> list[Rental]:
        stmt = (
            select(Rental)
            .where(Rental.payment_reference == reference)
            .order_by(Rental.created_at, Rental.rental_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_idempotency_prefix(self, prefix: str) -> list[Rental]:
        """Rentals whose idempotency key starts with prefix (one per tenant of a checkout)."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = (
            select(Rental)
            .where(Rental.idempotency_key.like(f"{escaped}%", escape="\\"))
            .order_by(Rental.created_at, Rental.rental_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
