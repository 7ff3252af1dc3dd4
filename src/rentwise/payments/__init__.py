"""Booking settlement and payment reconciliation.

This module provides:
- PaymentCalculator: prices lines over a date range and splits by tenant
- AvailabilityService: capacity checks and the locked re-check at booking
- HoldManager: short-lived advisory holds on inventory
- CheckoutPayloadCodec: carries a reservation intent through payment metadata
- PaymentGateway: processor abstraction with mock and Stripe adapters
- WebhookReconciler: turns processor callbacks into rentals

Example usage:
    from rentwise.payments import PaymentCalculator, QuoteRequest, DateRange, QuoteLine

    request = QuoteRequest(DateRange(start, end), (QuoteLine(product_id, 2),))
    quote = await PaymentCalculator(db).compute(request)
"""

from .availability import AvailabilityResult, AvailabilityService
from .calculator import (
    DEPOSIT_RATE,
    PaymentCalculator,
    allocate_deposits,
    compute_deposit,
    compute_payment,
)
from .checkout import CheckoutService, CheckoutSessionResult
from .codec import (
    CheckoutPayloadCodec,
    CheckoutRentalPayload,
    CustomerSnapshot,
    PayloadItem,
    TenantBreakdownPayload,
    chunk_value,
)
from .collaborators import (
    BlobStore,
    DocumentGenerator,
    InMemoryBlobStore,
    LocalFileBlobStore,
    LoggingNotificationSender,
    NotificationSender,
    PdfContractGenerator,
)
from .events import ProcessorEvent, ProcessorEventType, parse_processor_event
from .gateway import (
    MockPaymentGateway,
    PaymentGateway,
    PaymentIntent,
    StripePaymentGateway,
    create_payment_gateway,
)
from .holds import HoldManager, run_hold_sweeper
from .reconciler import ReconciliationReport, ReportStatus, TenantOutcome, WebhookReconciler
from .rentals import RentalCreation, RentalService
from .types import (
    DateRange,
    PaymentComputation,
    QuoteLine,
    QuoteRequest,
    RentalType,
    TenantPaymentBreakdown,
)

__all__ = [
    # Pricing
    "DEPOSIT_RATE",
    "PaymentCalculator",
    "allocate_deposits",
    "compute_deposit",
    "compute_payment",
    "DateRange",
    "PaymentComputation",
    "QuoteLine",
    "QuoteRequest",
    "RentalType",
    "TenantPaymentBreakdown",
    # Inventory
    "AvailabilityResult",
    "AvailabilityService",
    "HoldManager",
    "run_hold_sweeper",
    # Checkout
    "CheckoutService",
    "CheckoutSessionResult",
    "CheckoutPayloadCodec",
    "CheckoutRentalPayload",
    "CustomerSnapshot",
    "PayloadItem",
    "TenantBreakdownPayload",
    "chunk_value",
    # Gateway
    "MockPaymentGateway",
    "PaymentGateway",
    "PaymentIntent",
    "StripePaymentGateway",
    "create_payment_gateway",
    "ProcessorEvent",
    "ProcessorEventType",
    "parse_processor_event",
    # Reconciliation
    "ReconciliationReport",
    "ReportStatus",
    "TenantOutcome",
    "WebhookReconciler",
    # Rentals
    "RentalCreation",
    "RentalService",
    # Collaborators
    "BlobStore",
    "DocumentGenerator",
    "InMemoryBlobStore",
    "LocalFileBlobStore",
    "LoggingNotificationSender",
    "NotificationSender",
    "PdfContractGenerator",
]
