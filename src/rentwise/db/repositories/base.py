"""Base repository with common CRUD operations.

Provides a generic repository pattern for SQLAlchemy models with
async support.

Usage:
    from rentwise.db.repositories.base import BaseRepository

    class ProductRepository(BaseRepository[Product, UUID]):
        pass

    repo = ProductRepository(db_session)
    product = await repo.get(product_id)
"""

from collections.abc import Sequence
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic repository for SQLAlchemy models.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        PKType: The type of the primary key (UUID, int, or str)

    Attributes:
        model: The model class
        db: The database session
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args and len(args) >= 1:
                first_arg = args[0]
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record by primary key."""
        return await self.db.get(self.model, pk)

    async def get_many(self, pks: Sequence[PKType]) -> list[ModelType]:
        """Get multiple records by primary keys in one query.

        Returns:
            List of found models (may be fewer than requested if some not found)
        """
        if not pks:
            return []

        pk_col = self._get_pk_column()
        stmt = select(self.model).where(pk_col.in_(list(pks)))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, obj: ModelType, *, commit: bool = True) -> ModelType:
        """Create a new record.

        Args:
            obj: Model instance to create
            commit: Whether to commit the transaction (flush only otherwise)
        """
        self.db.add(obj)
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()
        return obj

    async def delete_by_pk(self, pk: PKType, *, commit: bool = True) -> bool:
        """Delete a record by primary key.

        Returns:
            True if deleted, False if not found
        """
        obj = await self.get(pk)
        if obj is None:
            return False

        await self.db.delete(obj)
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()
        return True

    async def count(self) -> int:
        pk_col = self._get_pk_column()
        result = await self.db.execute(select(func.count(pk_col)))
        return result.scalar() or 0

    def _get_pk_column(self):
        """Get the primary key column for this model.

        Raises:
            ValueError: If no primary key found
        """
        pk_cols = self.model.__mapper__.primary_key
        if not pk_cols:
            raise ValueError(f"No primary key found for {self.model.__name__}")
        return pk_cols[0]
