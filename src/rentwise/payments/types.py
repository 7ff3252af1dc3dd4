"""Value types shared by the pricing, hold and reconciliation components."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from rentwise.db.models.rental import BillingUnit

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_DAY = timedelta(days=1)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Amount in the currency's minor unit (cents, grosze)."""
    return int((round_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return round_money(Decimal(amount) / 100)


class RentalType(str, Enum):
    """How a booking is billed."""

    DAILY = "daily"
    HOURLY = "hourly"


@dataclass(frozen=True)
class DateRange:
    """Half-open booking interval [start, end) in UTC."""

    start: datetime
    end: datetime

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    def billable_days(self) -> int:
        """Whole days started by the range, never less than one.

        Computed on integer microseconds so that N days plus one second
        rounds up to N + 1 without floating point drift.
        """
        elapsed = self.end - self.start
        day_us = _DAY // timedelta(microseconds=1)
        elapsed_us = elapsed // timedelta(microseconds=1)
        return max(1, -(-elapsed_us // day_us))

    def overlaps(self, other: "DateRange") -> bool:
        return self.start < other.end and self.end > other.start


@dataclass(frozen=True)
class QuoteLine:
    """A requested (product, quantity) pair."""

    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class QuoteRequest:
    """Input of the payment computation."""

    date_range: DateRange
    lines: tuple[QuoteLine, ...]
    rental_type: RentalType = RentalType.DAILY
    hours: int | None = None

    @property
    def is_hourly(self) -> bool:
        return self.rental_type == RentalType.HOURLY and (self.hours or 0) > 0


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only pricing view of a product at computation time."""

    product_id: UUID
    tenant_id: UUID
    daily_price: Decimal
    hourly_price: Decimal | None = None
    available_quantity: int = 0


@dataclass(frozen=True)
class PricedLine:
    """A merged, priced line of one product."""

    product_id: UUID
    tenant_id: UUID
    quantity: int
    unit_price: Decimal
    billing_unit: BillingUnit
    periods: int
    subtotal: Decimal


@dataclass
class TenantPaymentBreakdown:
    """One tenant's slice of a (possibly multi-tenant) computation."""

    tenant_id: UUID
    total_amount: Decimal
    deposit_amount: Decimal
    lines: list[PricedLine] = field(default_factory=list)

    @property
    def items(self) -> list[QuoteLine]:
        return [QuoteLine(line.product_id, line.quantity) for line in self.lines]


@dataclass
class PaymentComputation:
    """Result of pricing a quote request.

    tenants is ordered by tenant id; the last entry absorbed the deposit
    rounding remainder.
    """

    total_amount: Decimal
    deposit_amount: Decimal
    billable_periods: int
    lines: list[PricedLine]
    tenants: list[TenantPaymentBreakdown]

    @property
    def tenant_ids(self) -> list[UUID]:
        return [breakdown.tenant_id for breakdown in self.tenants]

    @property
    def is_multi_tenant(self) -> bool:
        return len(self.tenants) > 1

    def for_tenant(self, tenant_id: UUID) -> TenantPaymentBreakdown | None:
        for breakdown in self.tenants:
            if breakdown.tenant_id == tenant_id:
                return breakdown
        return None
