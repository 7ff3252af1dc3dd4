"""Rental creation and lifecycle.

RentalService is the synchronous booking path: the client has already
created a payment intent and asks for the rental directly. The webhook
reconciler reaches the same tables through build_rental and insert_rental.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils.compat import uuid7

from rentwise.core.audit import AuditLogger
from rentwise.core.exceptions import (
    CustomerNotFoundError,
    DuplicateIdempotencyKeyError,
    InvalidStatusTransitionError,
    PaymentAmountMismatchError,
    PaymentIntentNotFoundError,
    RentalNotFoundError,
)
from rentwise.db.models.audit import AuditEventType
from rentwise.db.models.rental import PaymentStatus, Rental, RentalItem, RentalStatus
from rentwise.db.repositories.customer import CustomerRepository
from rentwise.db.repositories.rental import RentalRepository
from rentwise.observability.metrics import record_rental_created
from rentwise.payments.availability import AvailabilityService
from rentwise.payments.calculator import PaymentCalculator
from rentwise.payments.gateway import PaymentGateway
from rentwise.payments.retry import call_with_retries
from rentwise.payments.types import DateRange, QuoteLine, QuoteRequest, TenantPaymentBreakdown

logger = structlog.get_logger()


@dataclass
class RentalCreation:
    """Outcome of create_rental; created is False for an idempotent replay."""

    rental: Rental
    created: bool


def merge_lines(lines: Iterable[QuoteLine]) -> dict[UUID, int]:
    merged: dict[UUID, int] = {}
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return merged


def build_rental(
    *,
    tenant_id: UUID,
    customer_id: UUID,
    date_range: DateRange,
    breakdown: TenantPaymentBreakdown,
    status: RentalStatus,
    payment_status: str | None,
    payment_reference: str | None,
    idempotency_key: str | None,
    notes: str | None = None,
) -> Rental:
    """Unsaved rental with one item per priced line of breakdown."""
    rental = Rental(
        rental_id=uuid7(),
        tenant_id=tenant_id,
        customer_id=customer_id,
        start_at=date_range.start,
        end_at=date_range.end,
        status=status.value,
        total_amount=breakdown.total_amount,
        deposit_amount=breakdown.deposit_amount,
        payment_reference=payment_reference,
        payment_status=payment_status,
        idempotency_key=idempotency_key,
        notes=notes,
        is_email_sent=False,
    )
    rental.items = [
        RentalItem(
            item_id=uuid7(),
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            billing_unit=line.billing_unit.value,
            billable_periods=line.periods,
            subtotal=line.subtotal,
        )
        for line in breakdown.lines
    ]
    return rental


async def insert_rental(db: AsyncSession, rental: Rental) -> bool:
    """Flush a new rental.

    Returns:
        False if another transaction already stored a rental with the same
        (tenant, idempotency key); the session is rolled back in that case
    """
    db.add(rental)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info(
            "rental_insert_lost_race",
            tenant_id=str(rental.tenant_id),
            idempotency_key=rental.idempotency_key,
        )
        return False
    return True


def apply_transition(rental: Rental, target: RentalStatus) -> bool:
    """Move rental to target.

    Returns:
        False when rental is already in target

    Raises:
        InvalidStatusTransitionError: If the state machine forbids the move
    """
    current = rental.rental_status
    if current == target:
        return False
    if not current.can_transition_to(target):
        raise InvalidStatusTransitionError(rental.rental_id, current.value, target.value)
    rental.status = target.value
    return True


class RentalService:
    """Creates, reads and cancels rentals for one tenant at a time."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGateway,
        *,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
    ):
        self.db = db
        self.gateway = gateway
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.rentals = RentalRepository(db)
        self.customers = CustomerRepository(db)
        self.calculator = PaymentCalculator(db)
        self.availability = AvailabilityService(db)
        self.audit = AuditLogger(db)

    async def get_rental(self, tenant_id: UUID, rental_id: UUID) -> Rental:
        rental = await self.rentals.get_for_tenant(tenant_id, rental_id)
        if rental is None:
            raise RentalNotFoundError(rental_id)
        return rental

    def _same_request(
        self, rental: Rental, customer_id: UUID, date_range: DateRange, lines: tuple[QuoteLine, ...]
    ) -> bool:
        stored = merge_lines(QuoteLine(item.product_id, item.quantity) for item in rental.items)
        return (
            rental.customer_id == customer_id
            and rental.start_at == date_range.start
            and rental.end_at == date_range.end
            and stored == merge_lines(lines)
        )

    async def _replay(
        self,
        existing: Rental,
        customer_id: UUID,
        date_range: DateRange,
        lines: tuple[QuoteLine, ...],
    ) -> RentalCreation:
        if not self._same_request(existing, customer_id, date_range, lines):
            raise DuplicateIdempotencyKeyError(existing.idempotency_key or "", existing.rental_id)
        logger.info(
            "rental_idempotent_replay",
            rental_id=str(existing.rental_id),
            idempotency_key=existing.idempotency_key,
        )
        return RentalCreation(rental=existing, created=False)

    async def create_rental(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        request: QuoteRequest,
        payment_reference: str,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> RentalCreation:
        """Create a rental paid by an existing payment intent.

        Raises:
            DuplicateIdempotencyKeyError: If the key was used for different inputs
            CustomerNotFoundError: If the customer is not the tenant's
            PaymentIntentNotFoundError: If the intent is unknown to the tenant
            PaymentAmountMismatchError: If the intent amount differs from the total
            InsufficientAvailabilityError: If capacity ran out
            BookingValidationError: For any pricing validation failure
        """
        if idempotency_key:
            existing = await self.rentals.get_by_idempotency_key(tenant_id, idempotency_key)
            if existing is not None:
                return await self._replay(existing, customer_id, request.date_range, request.lines)

        customer = await self.customers.get_for_tenant(tenant_id, customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)

        computation = await self.calculator.compute(request, tenant_id=tenant_id, strict=True)
        breakdown = computation.for_tenant(tenant_id)
        if breakdown is None:
            raise RuntimeError("strict computation returned no breakdown for its tenant")

        intent = await self.gateway.get_intent(tenant_id, payment_reference)
        if intent is None:
            raise PaymentIntentNotFoundError(payment_reference)
        if intent.amount != computation.total_amount:
            raise PaymentAmountMismatchError(
                payment_reference, computation.total_amount, intent.amount
            )

        await self.availability.ensure_capacity(request.lines, request.date_range)

        rental = build_rental(
            tenant_id=tenant_id,
            customer_id=customer_id,
            date_range=request.date_range,
            breakdown=breakdown,
            status=RentalStatus.PENDING,
            payment_status=intent.status.value,
            payment_reference=payment_reference,
            idempotency_key=idempotency_key,
            notes=notes,
        )
        if not await insert_rental(self.db, rental):
            winner = await self.rentals.get_by_idempotency_key(tenant_id, idempotency_key or "")
            if winner is None:
                raise RuntimeError("idempotency conflict without a stored rental")
            return await self._replay(winner, customer_id, request.date_range, request.lines)

        await self.audit.log_event(
            AuditEventType.RENTAL_CREATED,
            {
                "total_amount": str(rental.total_amount),
                "deposit_amount": str(rental.deposit_amount),
                "payment_reference": payment_reference,
                "source": "api",
            },
            tenant_id=tenant_id,
            resource_type="rental",
            resource_id=str(rental.rental_id),
        )
        await self.db.commit()
        record_rental_created("api")
        logger.info(
            "rental_created",
            rental_id=str(rental.rental_id),
            tenant_id=str(tenant_id),
            total=str(rental.total_amount),
        )

        await self._capture(rental)
        return RentalCreation(rental=rental, created=True)

    async def _capture(self, rental: Rental) -> None:
        reference = rental.payment_reference or ""
        captured = await call_with_retries(
            lambda: self.gateway.capture(rental.tenant_id, reference),
            operation="capture",
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        if not captured:
            logger.warning(
                "rental_left_pending",
                rental_id=str(rental.rental_id),
                payment_reference=reference,
            )
            return

        rental.payment_status = PaymentStatus.SUCCEEDED.value
        previous = rental.status
        apply_transition(rental, RentalStatus.CONFIRMED)
        await self.audit.log_event(
            AuditEventType.RENTAL_STATUS_CHANGED,
            {"from": previous, "to": rental.status, "reason": "payment_captured"},
            tenant_id=rental.tenant_id,
            resource_type="rental",
            resource_id=str(rental.rental_id),
        )
        await self.db.commit()

    async def cancel_rental(self, tenant_id: UUID, rental_id: UUID) -> Rental:
        """Cancel a rental; cancelling a cancelled rental does nothing.

        Raises:
            RentalNotFoundError: If the rental is not the tenant's
            InvalidStatusTransitionError: If the rental is completed
        """
        rental = await self.get_rental(tenant_id, rental_id)
        previous = rental.status
        if not apply_transition(rental, RentalStatus.CANCELLED):
            return rental

        await self.audit.log_event(
            AuditEventType.RENTAL_CANCELLED,
            {"from": previous},
            tenant_id=tenant_id,
            resource_type="rental",
            resource_id=str(rental_id),
        )
        await self.db.commit()
        logger.info("rental_cancelled", rental_id=str(rental_id), tenant_id=str(tenant_id))
        return rental
