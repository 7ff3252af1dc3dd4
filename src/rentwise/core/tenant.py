"""Tenant directory service for multi-tenancy support."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.exceptions import TenantInactiveError, TenantNotFoundError
from rentwise.db.models.tenant import Tenant


class TenantService:
    """Tenant lookups used to validate the tenant of a request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        query = select(Tenant).where(Tenant.tenant_id == tenant_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_tenant_or_raise(self, tenant_id: UUID) -> Tenant:
        """Get a tenant by ID, raising if not found.

        Raises:
            TenantNotFoundError: If tenant does not exist
        """
        tenant = await self.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    async def validate_tenant_active(self, tenant_id: UUID) -> Tenant:
        """Validate that a tenant exists and is active.

        Raises:
            TenantNotFoundError: If tenant does not exist
            TenantInactiveError: If tenant is deactivated
        """
        tenant = await self.get_tenant_or_raise(tenant_id)
        if not tenant.is_active:
            raise TenantInactiveError(tenant_id)
        return tenant
