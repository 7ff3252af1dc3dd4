"""Database models for Rentwise."""

from .audit import AuditEvent, AuditEventType, AuditSeverity
from .base import Base, TimestampMixin
from .checkout import CheckoutSession
from .customer import Customer, normalize_email
from .hold import ReservationHold
from .product import Product
from .rental import BillingUnit, PaymentStatus, Rental, RentalItem, RentalStatus
from .tenant import Tenant

__all__ = [
    "Base",
    "TimestampMixin",
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
    "BillingUnit",
    "CheckoutSession",
    "Customer",
    "normalize_email",
    "PaymentStatus",
    "Product",
    "Rental",
    "RentalItem",
    "RentalStatus",
    "ReservationHold",
    "Tenant",
]
