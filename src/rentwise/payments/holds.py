"""Reservation hold manager.

Holds are short-lived, advisory claims on product units that keep a
storefront from offering the same units to two customers mid-checkout.
They are not a concurrency primitive: rental creation re-checks capacity
on its own and never consults holds.
"""

import asyncio
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rentwise.config.settings import HoldPolicy
from rentwise.core.exceptions import InvalidDateRangeError, InvalidHoldError, ProductNotFoundError
from rentwise.db.models.base import utc_now
from rentwise.db.models.hold import ReservationHold
from rentwise.db.repositories.hold import HoldRepository
from rentwise.db.repositories.product import ProductRepository
from rentwise.observability.metrics import record_hold_created
from rentwise.payments.types import DateRange

logger = structlog.get_logger()


class HoldManager:
    """Creates, deletes and lists reservation holds.

    Expired holds (expires_at <= now) are filtered out by every read;
    purge_expired only reclaims their rows.
    """

    def __init__(self, db: AsyncSession, policy: HoldPolicy | None = None):
        self.db = db
        self.policy = policy or HoldPolicy()
        self.holds = HoldRepository(db)
        self.products = ProductRepository(db)

    async def create_hold(
        self,
        product_id: UUID,
        quantity: int,
        date_range: DateRange,
        ttl_minutes: int | None = None,
        customer_id: UUID | None = None,
        session_id: str | None = None,
        now: datetime | None = None,
    ) -> ReservationHold:
        """Persist a hold owned by the product's tenant.

        Raises:
            ProductNotFoundError: If the product does not exist
            InvalidDateRangeError: If the range does not end after it starts
            InvalidHoldError: If quantity or TTL is out of bounds
        """
        if not date_range.is_valid:
            raise InvalidDateRangeError(date_range.start, date_range.end)
        if quantity <= 0:
            raise InvalidHoldError(f"Quantity must be positive, got {quantity}", field="quantity")

        ttl = self.policy.default_ttl_minutes if ttl_minutes is None else ttl_minutes
        if ttl <= 0 or ttl > self.policy.max_ttl_minutes:
            raise InvalidHoldError(
                f"ttl_minutes must be between 1 and {self.policy.max_ttl_minutes}",
                field="ttl_minutes",
            )

        product = await self.products.get(product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)

        created_at = now or utc_now()
        hold = ReservationHold(
            tenant_id=product.tenant_id,
            product_id=product_id,
            quantity=quantity,
            start_at=date_range.start,
            end_at=date_range.end,
            created_at=created_at,
            expires_at=created_at + timedelta(minutes=ttl),
            customer_id=customer_id,
            session_id=session_id,
        )
        await self.holds.create(hold, commit=False)

        record_hold_created(str(product.tenant_id))
        logger.info(
            "hold_created",
            hold_id=str(hold.hold_id),
            product_id=str(product_id),
            tenant_id=str(product.tenant_id),
            quantity=quantity,
            expires_at=hold.expires_at.isoformat(),
        )
        return hold

    async def delete_hold(self, hold_id: UUID) -> bool:
        """Remove a hold.

        Returns:
            True if a row was deleted (expired or not), False if none existed
        """
        deleted = await self.holds.delete_by_pk(hold_id, commit=False)
        logger.info("hold_deleted", hold_id=str(hold_id), found=deleted)
        return deleted

    async def list_active_holds(
        self, product_id: UUID, date_range: DateRange, now: datetime | None = None
    ) -> list[ReservationHold]:
        return await self.holds.list_active(
            product_id, date_range.start, date_range.end, now or utc_now()
        )

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every hold whose expiry has passed."""
        purged = await self.holds.delete_expired(now or utc_now())
        if purged:
            logger.info("expired_holds_purged", count=purged)
        return purged


async def run_hold_sweeper(
    session_factory: async_sessionmaker[AsyncSession],
    interval_seconds: float,
) -> None:
    """Purge expired holds every interval_seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with session_factory() as session:
                await HoldManager(session).purge_expired()
                await session.commit()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("hold_sweep_failed")
