"""Resolve checkout customer snapshots to tenant customers."""

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.db.models.customer import Customer, normalize_email
from rentwise.db.repositories.customer import CustomerRepository
from rentwise.payments.codec import CustomerSnapshot

logger = structlog.get_logger()


class CustomerResolver:
    """Finds or creates the customer a tenant's rental should belong to.

    Lookup order: normalized email within the tenant, then the snapshot's
    customer id within the tenant, then a new customer built from the
    snapshot.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.customers = CustomerRepository(db)

    async def resolve(self, tenant_id: UUID, snapshot: CustomerSnapshot) -> Customer:
        if snapshot.email:
            customer = await self.customers.find_by_email(tenant_id, snapshot.email)
            if customer is not None:
                return customer

        if snapshot.customer_id is not None:
            customer = await self.customers.get_for_tenant(tenant_id, snapshot.customer_id)
            if customer is not None:
                return customer

        email = normalize_email(snapshot.email)
        customer = Customer(
            tenant_id=tenant_id,
            full_name=snapshot.full_name or email or "Customer",
            email=email,
            phone_number=snapshot.phone_number,
            address=snapshot.address,
            document_number=snapshot.document_number,
            notes=snapshot.notes,
        )
        await self.customers.create(customer, commit=False)
        logger.info(
            "customer_created_from_checkout",
            tenant_id=str(tenant_id),
            customer_id=str(customer.customer_id),
        )
        return customer


def snapshot_of(customer: Customer) -> CustomerSnapshot:
    return CustomerSnapshot(
        customer_id=customer.customer_id,
        full_name=customer.full_name,
        email=customer.email,
        phone_number=customer.phone_number,
        address=customer.address,
        document_number=customer.document_number,
        notes=customer.notes,
    )
