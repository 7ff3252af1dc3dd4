"""FastAPI dependencies for database sessions and tenant scoping."""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.exceptions import TenantRequiredError
from rentwise.db.config import get_db


def get_optional_tenant_id(request: Request) -> UUID | None:
    """Tenant validated by TenantValidationMiddleware, if the request named one."""
    return getattr(request.state, "tenant_id", None)


def get_required_tenant_id(
    tenant_id: Annotated[UUID | None, Depends(get_optional_tenant_id)],
) -> UUID:
    """Tenant for tenant-scoped endpoints.

    Raises:
        TenantRequiredError: If the request carried no X-Tenant-ID header
    """
    if tenant_id is None:
        raise TenantRequiredError()
    return tenant_id


@dataclass
class TenantDatabaseSession:
    """Database session bound to the caller's tenant."""

    session: AsyncSession
    tenant_id: UUID


async def get_tenant_db_session(
    session: Annotated[AsyncSession, Depends(get_db)],
    tenant_id: Annotated[UUID, Depends(get_required_tenant_id)],
) -> TenantDatabaseSession:
    return TenantDatabaseSession(session=session, tenant_id=tenant_id)


DbSession = Annotated[AsyncSession, Depends(get_db)]
OptionalTenantId = Annotated[UUID | None, Depends(get_optional_tenant_id)]
RequiredTenantId = Annotated[UUID, Depends(get_required_tenant_id)]
TenantDb = Annotated[TenantDatabaseSession, Depends(get_tenant_db_session)]
