"""Inventory availability checks.

Capacity is the product's available_quantity minus units committed to
non-cancelled rentals overlapping the requested range. Holds are reported
for information only and never reduce what can be booked.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.exceptions import InsufficientAvailabilityError, ProductNotFoundError
from rentwise.db.models.base import utc_now
from rentwise.db.repositories.hold import HoldRepository
from rentwise.db.repositories.product import ProductRepository
from rentwise.db.repositories.rental import RentalRepository
from rentwise.payments.types import DateRange, QuoteLine

logger = structlog.get_logger()


@dataclass(frozen=True)
class AvailabilityResult:
    """Capacity picture for one product over one range."""

    product_id: UUID
    capacity: int
    committed: int
    held: int
    requested: int

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - self.committed)

    @property
    def is_available(self) -> bool:
        return self.committed + self.requested <= self.capacity


class AvailabilityService:
    """Answers "can N units of this product be booked for this range"."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.products = ProductRepository(db)
        self.rentals = RentalRepository(db)
        self.holds = HoldRepository(db)

    async def check(
        self,
        product_id: UUID,
        date_range: DateRange,
        quantity: int,
        now: datetime | None = None,
    ) -> AvailabilityResult:
        """Availability of quantity units of product_id over date_range.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = await self.products.get(product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)

        committed = await self.rentals.committed_quantity(
            product_id, date_range.start, date_range.end
        )
        held = await self.holds.held_quantity(
            product_id, date_range.start, date_range.end, now or utc_now()
        )
        return AvailabilityResult(
            product_id=product_id,
            capacity=product.available_quantity,
            committed=committed,
            held=held,
            requested=quantity,
        )

    async def lock_products(self, lines: Iterable[QuoteLine]) -> dict[UUID, int]:
        """Take the booking lock on every product in lines.

        Returns:
            Requested units per product, repeated lines merged
        """
        merged: dict[UUID, int] = {}
        for line in lines:
            merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
        await self.products.lock_for_booking(merged)
        return merged

    async def ensure_capacity(
        self, lines: Iterable[QuoteLine], date_range: DateRange, *, locked: bool = False
    ) -> None:
        """Lock the products and verify every line still fits.

        Must run inside the transaction that inserts the rental: the lock
        taken here is what stops two concurrent bookings of the last unit
        from both succeeding. Pass locked=True when lock_products already
        ran in this transaction.

        Raises:
            InsufficientAvailabilityError: For the first line that does not fit
        """
        if locked:
            merged: dict[UUID, int] = {}
            for line in lines:
                merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
        else:
            merged = await self.lock_products(lines)

        products = await self.products.get_many(list(merged))
        capacity = {product.product_id: product.available_quantity for product in products}

        for product_id in sorted(merged, key=str):
            committed = await self.rentals.committed_quantity(
                product_id, date_range.start, date_range.end
            )
            available = capacity.get(product_id, 0)
            if committed + merged[product_id] > available:
                logger.warning(
                    "insufficient_availability",
                    product_id=str(product_id),
                    requested=merged[product_id],
                    committed=committed,
                    capacity=available,
                )
                raise InsufficientAvailabilityError(
                    product_id, merged[product_id], max(0, available - committed)
                )
