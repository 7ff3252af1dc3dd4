"""Checkout session creation.

A checkout prices the cart (several tenants allowed), encodes the
reservation intent into payment metadata and opens a payment intent. No
rental exists until the processor reports the payment and the reconciler
materializes it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.audit import AuditLogger
from rentwise.db.models.audit import AuditEventType
from rentwise.db.models.checkout import CheckoutSession
from rentwise.db.models.customer import normalize_email
from rentwise.db.repositories.checkout import CheckoutSessionRepository
from rentwise.db.repositories.customer import CustomerRepository
from rentwise.payments.calculator import PaymentCalculator
from rentwise.payments.codec import (
    IDEMPOTENCY_METADATA_KEY,
    CheckoutPayloadCodec,
    CheckoutRentalPayload,
    CustomerSnapshot,
    PayloadItem,
    TenantBreakdownPayload,
)
from rentwise.payments.customers import snapshot_of
from rentwise.payments.gateway import TENANT_IDS_METADATA_KEY, PaymentGateway
from rentwise.payments.types import PaymentComputation, QuoteRequest

logger = structlog.get_logger()


@dataclass
class CheckoutSessionResult:
    session_id: str
    url: str
    expires_at: datetime
    idempotency_key: str
    total_amount: Decimal
    deposit_amount: Decimal
    client_secret: str | None = None


def build_payload(
    idempotency_key: str,
    customer: CustomerSnapshot,
    request: QuoteRequest,
    computation: PaymentComputation,
    notes: str | None = None,
) -> CheckoutRentalPayload:
    """Reservation intent for a priced request."""
    return CheckoutRentalPayload(
        idempotency_key=idempotency_key,
        customer=customer,
        start=request.date_range.start,
        end=request.date_range.end,
        rental_type=request.rental_type,
        hours=request.hours,
        total_amount=computation.total_amount,
        deposit_amount=computation.deposit_amount,
        tenants=[
            TenantBreakdownPayload(
                tenant_id=breakdown.tenant_id,
                items=[
                    PayloadItem(product_id=line.product_id, quantity=line.quantity)
                    for line in breakdown.lines
                ],
                total_amount=breakdown.total_amount,
                deposit_amount=breakdown.deposit_amount,
            )
            for breakdown in computation.tenants
        ],
        notes=notes,
    )


class CheckoutService:
    """Opens checkout sessions with the payment processor."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGateway,
        codec: CheckoutPayloadCodec,
        *,
        currency: str = "pln",
        checkout_base_url: str = "https://checkout.stripe.com/pay",
        session_ttl_hours: int = 24,
    ):
        self.db = db
        self.gateway = gateway
        self.codec = codec
        self.currency = currency
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self.session_ttl = timedelta(hours=session_ttl_hours)
        self.calculator = PaymentCalculator(db)
        self.customers = CustomerRepository(db)
        self.sessions = CheckoutSessionRepository(db)
        self.audit = AuditLogger(db)

    async def _customer_snapshot(
        self,
        customer_id: UUID | None,
        email: str | None,
        full_name: str | None,
        phone_number: str | None,
        tenant_ids: list[UUID],
    ) -> CustomerSnapshot:
        """Snapshot the stored customer when it belongs to a tenant in the cart.

        A customer of any other tenant is ignored and only the contact
        fields given with the request are carried.
        """
        if customer_id is not None:
            customer = await self.customers.get(customer_id)
            if customer is not None and customer.tenant_id in tenant_ids:
                return snapshot_of(customer)
            logger.warning(
                "checkout_customer_not_in_cart_tenants",
                customer_id=str(customer_id),
                found=customer is not None,
            )
            customer_id = None
        return CustomerSnapshot(
            customer_id=customer_id,
            email=normalize_email(email),
            full_name=full_name,
            phone_number=phone_number,
        )

    async def create_session(
        self,
        request: QuoteRequest,
        customer_id: UUID | None = None,
        customer_email: str | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        notes: str | None = None,
    ) -> CheckoutSessionResult:
        """Price request, open a payment intent and record the session.

        Raises:
            BookingValidationError: For pricing validation failures
            PayloadTooLargeError: If the cart does not fit the metadata channel
            PaymentGatewayError: If the processor rejects the intent
        """
        computation = await self.calculator.compute(request)
        snapshot = await self._customer_snapshot(
            customer_id, customer_email, customer_name, customer_phone, computation.tenant_ids
        )
        idempotency_key = f"chk_{uuid4().hex}"
        payload = build_payload(idempotency_key, snapshot, request, computation, notes)

        metadata = self.codec.encode(payload)
        metadata[IDEMPOTENCY_METADATA_KEY] = idempotency_key
        metadata[TENANT_IDS_METADATA_KEY] = ",".join(str(tid) for tid in computation.tenant_ids)

        owner = None if computation.is_multi_tenant else computation.tenant_ids[0]
        intent = await self.gateway.create_intent(
            owner,
            computation.total_amount,
            computation.deposit_amount,
            self.currency,
            metadata,
        )
        expires_at = intent.created_at + self.session_ttl

        await self.sessions.create(
            CheckoutSession(
                idempotency_key=idempotency_key,
                payment_reference=intent.reference,
                payload=payload.model_dump(mode="json", exclude_none=True),
                created_at=intent.created_at,
                expires_at=expires_at,
            ),
            commit=False,
        )
        await self.audit.log_event(
            AuditEventType.CHECKOUT_STARTED,
            {
                "payment_reference": intent.reference,
                "total_amount": str(computation.total_amount),
                "tenant_ids": [str(tid) for tid in computation.tenant_ids],
            },
            tenant_id=owner,
            resource_type="checkout",
            resource_id=idempotency_key,
        )
        await self.db.commit()

        logger.info(
            "checkout_session_created",
            idempotency_key=idempotency_key,
            payment_reference=intent.reference,
            tenants=len(computation.tenants),
            total=str(computation.total_amount),
        )
        return CheckoutSessionResult(
            session_id=intent.reference,
            url=f"{self.checkout_base_url}/{intent.reference}",
            expires_at=expires_at,
            idempotency_key=idempotency_key,
            total_amount=computation.total_amount,
            deposit_amount=computation.deposit_amount,
            client_secret=intent.client_secret,
        )
