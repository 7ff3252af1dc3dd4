"""Webhook reconciler.

Turns payment processor callbacks into durable booking state:

- checkout completed: decode the reservation intent from metadata and,
  for every tenant in it, run Validate -> Materialize -> Notify in a
  transaction of its own
- payment succeeded / failed / canceled and charge refunded: locate the
  rentals the payment belongs to and move their payment and rental status

Redelivery is expected. Every step is keyed by (tenant, idempotency key),
so replaying an event never creates a second rental.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rentwise.core.audit import AuditLogger
from rentwise.core.exceptions import (
    BookingValidationError,
    InsufficientAvailabilityError,
    PayloadError,
)
from rentwise.core.logging import LogContext
from rentwise.db.models.audit import AuditEventType, AuditSeverity
from rentwise.db.models.customer import Customer
from rentwise.db.models.rental import PaymentStatus, Rental, RentalStatus
from rentwise.db.repositories.checkout import CheckoutSessionRepository
from rentwise.db.repositories.product import ProductRepository
from rentwise.db.repositories.rental import RentalRepository
from rentwise.observability.metrics import (
    record_reconciliation_outcome,
    record_rental_created,
    record_webhook_event,
)
from rentwise.payments.availability import AvailabilityService
from rentwise.payments.calculator import PaymentCalculator, allocate_deposits, compute_deposit
from rentwise.payments.codec import (
    IDEMPOTENCY_METADATA_KEY,
    RENTAL_METADATA_KEY,
    TENANT_METADATA_KEY,
    CheckoutPayloadCodec,
    CheckoutRentalPayload,
    TenantBreakdownPayload,
)
from rentwise.payments.collaborators import (
    BlobStore,
    DocumentGenerator,
    NotificationSender,
    contract_path,
)
from rentwise.payments.customers import CustomerResolver
from rentwise.payments.events import ProcessorEvent, ProcessorEventType
from rentwise.payments.rentals import apply_transition, build_rental, insert_rental
from rentwise.payments.retry import call_with_retries
from rentwise.payments.types import (
    ZERO,
    DateRange,
    PaymentComputation,
    QuoteRequest,
)

logger = structlog.get_logger()


class ReportStatus(str, Enum):
    PROCESSED = "processed"
    IGNORED = "ignored"
    REJECTED = "rejected"


class TenantOutcome(str, Enum):
    """What happened to one tenant's slice of a checkout."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    MISMATCH = "mismatch"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass
class ReconciliationReport:
    """Result of handling one processor event."""

    event_id: str
    event_type: str
    status: ReportStatus
    outcomes: dict[UUID, TenantOutcome] = field(default_factory=dict)
    rental_ids: list[UUID] = field(default_factory=list)
    reason: str | None = None

    @property
    def should_retry(self) -> bool:
        """Whether the processor should redeliver the event."""
        return TenantOutcome.FAILED in self.outcomes.values()

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "status": self.status.value,
            "outcomes": {str(tid): outcome.value for tid, outcome in self.outcomes.items()},
            "rental_ids": [str(rid) for rid in self.rental_ids],
            "reason": self.reason,
        }


@dataclass
class _Validated:
    computation: PaymentComputation
    idempotency_key: str


# Payment status events: new payment status, and the rental statuses each
# target may be entered from
_STATUS_RULES: dict[
    ProcessorEventType, tuple[PaymentStatus, RentalStatus, frozenset[RentalStatus] | None]
] = {
    ProcessorEventType.PAYMENT_SUCCEEDED: (
        PaymentStatus.SUCCEEDED,
        RentalStatus.CONFIRMED,
        frozenset({RentalStatus.DRAFT, RentalStatus.PENDING}),
    ),
    ProcessorEventType.PAYMENT_FAILED: (
        PaymentStatus.FAILED,
        RentalStatus.PENDING,
        frozenset({RentalStatus.DRAFT}),
    ),
    ProcessorEventType.PAYMENT_CANCELED: (
        PaymentStatus.CANCELED,
        RentalStatus.CANCELLED,
        None,
    ),
    ProcessorEventType.CHARGE_REFUNDED: (
        PaymentStatus.CANCELED,
        RentalStatus.CANCELLED,
        None,
    ),
}


class WebhookReconciler:
    """Applies processor events to rentals.

    Example:
        reconciler = WebhookReconciler(session_factory, codec, notifier, documents, blobs)
        report = await reconciler.handle(event)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        codec: CheckoutPayloadCodec,
        notifier: NotificationSender,
        documents: DocumentGenerator,
        blobs: BlobStore,
        *,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
    ):
        self.session_factory = session_factory
        self.codec = codec
        self.notifier = notifier
        self.documents = documents
        self.blobs = blobs
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    async def handle(self, event: ProcessorEvent) -> ReconciliationReport:
        with LogContext(event_id=event.event_id, event_type=event.raw_type):
            if event.event_type == ProcessorEventType.CHECKOUT_COMPLETED:
                report = await self.handle_checkout_completed(event)
            elif event.event_type in _STATUS_RULES:
                report = await self.handle_payment_status(event)
            else:
                logger.info("webhook_event_ignored")
                report = ReconciliationReport(
                    event.event_id, event.raw_type, ReportStatus.IGNORED, reason="unhandled_type"
                )

        record_webhook_event(event.event_type.value, report.status.value)
        return report

    # -------------------------------------------------------------------------
    # Checkout completed
    # -------------------------------------------------------------------------

    async def handle_checkout_completed(self, event: ProcessorEvent) -> ReconciliationReport:
        report = ReconciliationReport(event.event_id, event.raw_type, ReportStatus.PROCESSED)

        try:
            payload = self.codec.decode(event.metadata)
        except PayloadError as e:
            logger.warning(
                "checkout_payload_undecodable",
                error=str(e),
                error_code=e.error_code,
                reference=event.reference,
            )
            await self._audit_rejection(event, str(e))
            report.status = ReportStatus.REJECTED
            report.reason = e.error_code
            return report

        for breakdown in payload.tenants:
            outcome, rental_id = await self._reconcile_tenant(event, payload, breakdown)
            report.outcomes[breakdown.tenant_id] = outcome
            if rental_id is not None:
                report.rental_ids.append(rental_id)
            record_reconciliation_outcome(outcome.value)

        if not report.should_retry:
            async with self.session_factory() as db:
                await CheckoutSessionRepository(db).mark_processed(payload.idempotency_key)
                await db.commit()

        logger.info(
            "checkout_reconciled",
            idempotency_key=payload.idempotency_key,
            outcomes={str(k): v.value for k, v in report.outcomes.items()},
        )
        return report

    async def _reconcile_tenant(
        self,
        event: ProcessorEvent,
        payload: CheckoutRentalPayload,
        breakdown: TenantBreakdownPayload,
    ) -> tuple[TenantOutcome, UUID | None]:
        tenant_id = breakdown.tenant_id
        with LogContext(tenant_id=str(tenant_id)):
            try:
                async with self.session_factory() as db:
                    validated = await self._validate(db, payload, breakdown)
                    if isinstance(validated, TenantOutcome):
                        return validated, None

                    outcome, rental, customer = await self._materialize(
                        db, event, payload, breakdown, validated
                    )
                    if rental is None or customer is None:
                        return outcome, None

                    await self._notify(db, rental, customer)
                    return outcome, rental.rental_id
            except Exception:
                logger.exception("tenant_reconciliation_failed")
                return TenantOutcome.FAILED, None

    async def _validate(
        self,
        db: AsyncSession,
        payload: CheckoutRentalPayload,
        breakdown: TenantBreakdownPayload,
    ) -> _Validated | TenantOutcome:
        """Check the tenant's slice against current state.

        Nothing in the payload is trusted: prices and the deposit share are
        recomputed and compared.
        """
        tenant_id = breakdown.tenant_id
        key = payload.tenant_key(tenant_id)

        if await RentalRepository(db).get_by_idempotency_key(tenant_id, key) is not None:
            logger.info("checkout_tenant_already_reconciled", idempotency_key=key)
            return TenantOutcome.DUPLICATE

        request = QuoteRequest(
            date_range=DateRange(payload.start, payload.end),
            lines=breakdown.lines,
            rental_type=payload.rental_type,
            hours=payload.hours,
        )
        try:
            computation = await PaymentCalculator(db).compute(
                request, tenant_id=tenant_id, strict=True
            )
        except BookingValidationError as e:
            logger.warning(
                "checkout_tenant_unavailable", error=str(e), error_code=e.error_code
            )
            return TenantOutcome.UNAVAILABLE

        tenant_totals = {t.tenant_id: t.total_amount for t in payload.tenants}
        expected_deposit = allocate_deposits(
            compute_deposit(sum(tenant_totals.values(), ZERO)), tenant_totals
        )[tenant_id]

        if (
            computation.total_amount != breakdown.total_amount
            or breakdown.deposit_amount != expected_deposit
        ):
            context = {
                "idempotency_key": key,
                "expected_total": str(computation.total_amount),
                "payload_total": str(breakdown.total_amount),
                "expected_deposit": str(expected_deposit),
                "payload_deposit": str(breakdown.deposit_amount),
                "items": [
                    {"product_id": str(i.product_id), "quantity": i.quantity}
                    for i in breakdown.items
                ],
            }
            logger.error("reconciliation_mismatch", **context)
            await AuditLogger(db).log_event(
                AuditEventType.RECONCILIATION_MISMATCH,
                context,
                severity=AuditSeverity.WARNING,
                tenant_id=tenant_id,
                resource_type="checkout",
                resource_id=payload.idempotency_key,
            )
            await db.commit()
            return TenantOutcome.MISMATCH

        return _Validated(computation=computation, idempotency_key=key)

    async def _materialize(
        self,
        db: AsyncSession,
        event: ProcessorEvent,
        payload: CheckoutRentalPayload,
        breakdown: TenantBreakdownPayload,
        validated: _Validated,
    ) -> tuple[TenantOutcome, Rental | None, Customer | None]:
        """Insert the tenant's rental after a locked capacity re-check."""
        tenant_id = breakdown.tenant_id
        date_range = DateRange(payload.start, payload.end)

        availability = AvailabilityService(db)
        await availability.lock_products(breakdown.lines)

        # A concurrent delivery of the same event may have committed while we waited
        existing = await RentalRepository(db).get_by_idempotency_key(
            tenant_id, validated.idempotency_key
        )
        if existing is not None:
            await db.rollback()
            logger.info(
                "checkout_tenant_already_reconciled", idempotency_key=validated.idempotency_key
            )
            return TenantOutcome.DUPLICATE, None, None

        customer = await CustomerResolver(db).resolve(tenant_id, payload.customer)

        try:
            await availability.ensure_capacity(breakdown.lines, date_range, locked=True)
        except InsufficientAvailabilityError as e:
            await db.rollback()
            logger.warning("checkout_tenant_unavailable", error=str(e), **e.details())
            return TenantOutcome.UNAVAILABLE, None, None

        tenant_breakdown = validated.computation.for_tenant(tenant_id)
        if tenant_breakdown is None:
            raise RuntimeError("strict computation returned no breakdown for its tenant")
        # Deposit share is the one allocated across the whole checkout
        tenant_breakdown.deposit_amount = breakdown.deposit_amount

        rental = build_rental(
            tenant_id=tenant_id,
            customer_id=customer.customer_id,
            date_range=date_range,
            breakdown=tenant_breakdown,
            status=RentalStatus.CONFIRMED,
            payment_status=PaymentStatus.SUCCEEDED.value,
            payment_reference=event.reference,
            idempotency_key=validated.idempotency_key,
            notes=payload.notes,
        )
        if not await insert_rental(db, rental):
            return TenantOutcome.DUPLICATE, None, None

        await AuditLogger(db).log_event(
            AuditEventType.RENTAL_CREATED,
            {
                "total_amount": str(rental.total_amount),
                "deposit_amount": str(rental.deposit_amount),
                "payment_reference": event.reference,
                "source": "webhook",
                "event_id": event.event_id,
            },
            tenant_id=tenant_id,
            resource_type="rental",
            resource_id=str(rental.rental_id),
        )
        await db.commit()

        record_rental_created("webhook")
        logger.info(
            "rental_materialized",
            rental_id=str(rental.rental_id),
            idempotency_key=validated.idempotency_key,
            total=str(rental.total_amount),
        )
        return TenantOutcome.CREATED, rental, customer

    async def _notify(self, db: AsyncSession, rental: Rental, customer: Customer) -> None:
        """Contract and confirmation; collaborator failures are logged, not raised."""
        contract_url: str | None = None
        try:
            products = await ProductRepository(db).get_many(
                [item.product_id for item in rental.items]
            )
            names = {product.product_id: product.name for product in products}
            document = await self.documents.generate_contract(rental, customer, names)
            contract_url = await self.blobs.save(contract_path(rental), document)
        except Exception:
            logger.exception("rental_contract_failed", rental_id=str(rental.rental_id))

        if contract_url is not None:
            rental.contract_url = contract_url
            await db.commit()

        sent = await call_with_retries(
            lambda: self.notifier.send_rental_confirmation(rental, customer, contract_url),
            operation="send_rental_confirmation",
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        if sent:
            rental.is_email_sent = True
            await db.commit()

    async def _audit_rejection(self, event: ProcessorEvent, reason: str) -> None:
        async with self.session_factory() as db:
            await AuditLogger(db).log_event(
                AuditEventType.WEBHOOK_REJECTED,
                {"event_id": event.event_id, "event_type": event.raw_type, "reason": reason},
                severity=AuditSeverity.WARNING,
                resource_type="payment",
                resource_id=event.reference,
            )
            await db.commit()

    # -------------------------------------------------------------------------
    # Payment status
    # -------------------------------------------------------------------------

    async def _locate(
        self, repo: RentalRepository, reference: str | None, metadata: Mapping[str, str]
    ) -> list[Rental]:
        if reference:
            rentals = await repo.find_by_payment_reference(reference)
            if rentals:
                return rentals

        key = metadata.get(IDEMPOTENCY_METADATA_KEY)
        if key:
            rentals = await repo.find_by_idempotency_prefix(f"{key}:")
            if rentals:
                return rentals

        tenant_raw = metadata.get(TENANT_METADATA_KEY)
        rental_raw = metadata.get(RENTAL_METADATA_KEY)
        if tenant_raw and rental_raw:
            try:
                rental = await repo.get_for_tenant(UUID(tenant_raw), UUID(rental_raw))
            except ValueError:
                logger.warning("webhook_metadata_ids_invalid", tenant_id=tenant_raw)
                return []
            if rental is not None:
                return [rental]
        return []

    async def handle_payment_status(self, event: ProcessorEvent) -> ReconciliationReport:
        report = ReconciliationReport(event.event_id, event.raw_type, ReportStatus.PROCESSED)
        payment_status, target, allowed_from = _STATUS_RULES[event.event_type]

        async with self.session_factory() as db:
            rentals = await self._locate(RentalRepository(db), event.reference, event.metadata)
            if (
                not rentals
                and event.event_type == ProcessorEventType.PAYMENT_SUCCEEDED
                and self.codec.has_payload(event.metadata)
            ):
                # Intent-only flows never send checkout.session.completed
                logger.info("payment_succeeded_materializing", reference=event.reference)
                return await self.handle_checkout_completed(event)
            if not rentals:
                logger.info("payment_event_unmatched", reference=event.reference)
                report.status = ReportStatus.IGNORED
                report.reason = "no_matching_rental"
                return report

            audit = AuditLogger(db)
            for rental in rentals:
                previous = rental.status
                rental.payment_status = payment_status.value

                current = rental.rental_status
                if allowed_from is None:
                    eligible = not current.is_terminal
                else:
                    eligible = current in allowed_from
                changed = eligible and apply_transition(rental, target)
                if changed:
                    await audit.log_event(
                        AuditEventType.RENTAL_STATUS_CHANGED,
                        {
                            "from": previous,
                            "to": rental.status,
                            "payment_status": payment_status.value,
                            "event_id": event.event_id,
                        },
                        tenant_id=rental.tenant_id,
                        resource_type="rental",
                        resource_id=str(rental.rental_id),
                    )
                report.rental_ids.append(rental.rental_id)
                logger.info(
                    "rental_payment_status_updated",
                    rental_id=str(rental.rental_id),
                    payment_status=payment_status.value,
                    status=rental.status,
                    changed=changed,
                )

            await db.commit()
        return report
