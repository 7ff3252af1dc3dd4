"""Reservation hold repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select

from rentwise.db.models.hold import ReservationHold

from .base import BaseRepository


class HoldRepository(BaseRepository[ReservationHold, UUID]):
    """Data access for reservation holds.

    Every read filters out holds whose expires_at <= now.
    """

    async def list_active(
        self, product_id: UUID, start: datetime, end: datetime, now: datetime
    ) -> list[ReservationHold]:
        stmt = (
            select(ReservationHold)
            .where(
                ReservationHold.product_id == product_id,
                ReservationHold.expires_at > now,
                ReservationHold.start_at < end,
                ReservationHold.end_at > start,
            )
            .order_by(ReservationHold.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def held_quantity(
        self, product_id: UUID, start: datetime, end: datetime, now: datetime
    ) -> int:
        stmt = select(func.coalesce(func.sum(ReservationHold.quantity), 0)).where(
            ReservationHold.product_id == product_id,
            ReservationHold.expires_at > now,
            ReservationHold.start_at < end,
            ReservationHold.end_at > start,
        )
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def delete_expired(self, now: datetime) -> int:
        """Delete dead holds in bulk, returning how many rows were removed."""
        result = await self.db.execute(
            delete(ReservationHold)
            .where(ReservationHold.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
