"""Customer repository."""

from uuid import UUID

from sqlalchemy import select

from rentwise.db.models.customer import Customer, normalize_email

from .base import BaseRepository


class CustomerRepository(BaseRepository[Customer, UUID]):
    """Data access for tenant-scoped customers."""

    async def get_for_tenant(self, tenant_id: UUID, customer_id: UUID) -> Customer | None:
        stmt = select(Customer).where(
            Customer.customer_id == customer_id, Customer.tenant_id == tenant_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email(self, tenant_id: UUID, email: str) -> Customer | None:
        """Oldest customer of the tenant with this email (compared normalized)."""
        normalized = normalize_email(email)
        if normalized is None:
            return None
        stmt = (
            select(Customer)
            .where(Customer.tenant_id == tenant_id, Customer.email == normalized)
            .order_by(Customer.created_at, Customer.customer_id)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
