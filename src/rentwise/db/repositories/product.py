"""Product repository."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select, update

from rentwise.db.models.product import Product

from .base import BaseRepository


class ProductRepository(BaseRepository[Product, UUID]):
    """Data access for rentable products."""

    async def get_active_many(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """Resolve active products in one batch, keyed by id.

        Ids that are unknown or inactive are simply absent from the result.
        """
        ids = list(set(product_ids))
        if not ids:
            return {}
        stmt = select(Product).where(Product.product_id.in_(ids), Product.is_active.is_(True))
        result = await self.db.execute(stmt)
        return {product.product_id: product for product in result.scalars().all()}

    async def lock_for_booking(self, product_ids: Iterable[UUID]) -> None:
        """Take a write lock on product rows for the current transaction.

        Rows are touched in a fixed order so two writers locking overlapping
        sets cannot deadlock. Concurrent transactions for the same product
        wait here until the holder commits or rolls back.
        """
        for product_id in sorted(set(product_ids), key=str):
            await self.db.execute(
                update(Product)
                .where(Product.product_id == product_id)
                .values(lock_version=Product.lock_version + 1)
                .execution_options(synchronize_session=False)
            )
