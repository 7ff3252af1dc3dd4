"""Payment computation engine.

Prices a set of (product, quantity) lines over a date range, derives the
deposit, and splits both across the tenants owning the products.

The pricing itself (compute_payment) is a pure function over product
snapshots; PaymentCalculator only loads those snapshots from the database.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.core.exceptions import (
    CrossTenantNotAllowedError,
    EmptyLineSetError,
    InvalidDateRangeError,
    InvalidQuantityError,
    ProductsUnavailableError,
)
from rentwise.db.models.rental import BillingUnit
from rentwise.db.repositories.product import ProductRepository
from rentwise.payments.types import (
    ZERO,
    PaymentComputation,
    PricedLine,
    ProductSnapshot,
    QuoteRequest,
    TenantPaymentBreakdown,
    round_money,
)

logger = structlog.get_logger()

DEPOSIT_RATE = Decimal("0.30")


def validate_request(request: QuoteRequest) -> None:
    """Reject requests that cannot be priced regardless of inventory.

    Raises:
        InvalidDateRangeError: If end <= start
        EmptyLineSetError: If there are no lines
        InvalidQuantityError: If a line asks for zero or fewer units
    """
    if not request.date_range.is_valid:
        raise InvalidDateRangeError(request.date_range.start, request.date_range.end)
    if not request.lines:
        raise EmptyLineSetError()
    for line in request.lines:
        if line.quantity <= 0:
            raise InvalidQuantityError(line.product_id, line.quantity)


def compute_deposit(total: Decimal) -> Decimal:
    return round_money(total * DEPOSIT_RATE)


def allocate_deposits(
    deposit: Decimal, tenant_totals: Mapping[UUID, Decimal]
) -> dict[UUID, Decimal]:
    """Split a deposit across tenants in proportion to their totals.

    Tenants are processed in tenant-id order; every tenant but the last
    gets its rounded proportional share and the last one takes whatever
    remains, so the shares always add up to the deposit exactly.
    """
    ordered = sorted(tenant_totals, key=str)
    if not ordered:
        return {}

    grand_total = sum(tenant_totals.values(), ZERO)
    shares: dict[UUID, Decimal] = {}
    allocated = ZERO

    for tenant_id in ordered[:-1]:
        if grand_total == ZERO:
            share = ZERO
        else:
            share = round_money(deposit * tenant_totals[tenant_id] / grand_total)
        shares[tenant_id] = share
        allocated += share

    shares[ordered[-1]] = deposit - allocated
    return shares


def _price_line(
    product: ProductSnapshot, quantity: int, request: QuoteRequest, days: int
) -> PricedLine:
    if request.is_hourly and product.hourly_price is not None and product.hourly_price > 0:
        unit_price = product.hourly_price
        unit = BillingUnit.HOUR
        periods = request.hours or 0
    else:
        unit_price = product.daily_price
        unit = BillingUnit.DAY
        periods = days

    return PricedLine(
        product_id=product.product_id,
        tenant_id=product.tenant_id,
        quantity=quantity,
        unit_price=unit_price,
        billing_unit=unit,
        periods=periods,
        subtotal=round_money(unit_price * quantity * periods),
    )


def compute_payment(
    request: QuoteRequest,
    products: Mapping[UUID, ProductSnapshot],
    *,
    tenant_id: UUID | None = None,
    strict: bool = False,
) -> PaymentComputation:
    """Price a request against a product snapshot.

    Args:
        request: Date range, lines and billing mode
        products: Resolvable products keyed by id
        tenant_id: Caller's tenant; when given, every product must belong to it
        strict: Reject lines spanning more than one tenant

    Raises:
        InvalidDateRangeError, EmptyLineSetError, InvalidQuantityError
        ProductsUnavailableError: If any referenced product is not in products
        CrossTenantNotAllowedError: In strict mode, for multi-tenant lines
    """
    validate_request(request)

    missing = {line.product_id for line in request.lines} - set(products)
    if missing:
        raise ProductsUnavailableError(missing)

    # Merge repeated products; a product has one owner so this is per tenant bucket
    quantities: dict[UUID, int] = {}
    for line in request.lines:
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity

    tenants_seen = {products[pid].tenant_id for pid in quantities}
    if tenant_id is not None and tenants_seen != {tenant_id}:
        raise CrossTenantNotAllowedError(tenants_seen, expected_tenant_id=tenant_id)
    if strict and len(tenants_seen) > 1:
        raise CrossTenantNotAllowedError(tenants_seen)

    days = request.date_range.billable_days()
    lines = sorted(
        (_price_line(products[pid], qty, request, days) for pid, qty in quantities.items()),
        key=lambda line: (str(line.tenant_id), str(line.product_id)),
    )

    total = round_money(sum((line.subtotal for line in lines), ZERO))
    deposit = compute_deposit(total)

    tenant_totals: dict[UUID, Decimal] = {}
    for line in lines:
        tenant_totals[line.tenant_id] = tenant_totals.get(line.tenant_id, ZERO) + line.subtotal
    deposits = allocate_deposits(deposit, tenant_totals)

    breakdowns = [
        TenantPaymentBreakdown(
            tenant_id=tid,
            total_amount=round_money(tenant_totals[tid]),
            deposit_amount=deposits[tid],
            lines=[line for line in lines if line.tenant_id == tid],
        )
        for tid in sorted(tenant_totals, key=str)
    ]

    hourly_used = any(line.billing_unit == BillingUnit.HOUR for line in lines)
    return PaymentComputation(
        total_amount=total,
        deposit_amount=deposit,
        billable_periods=(request.hours or 0) if hourly_used else days,
        lines=lines,
        tenants=breakdowns,
    )


class PaymentCalculator:
    """Loads product snapshots and prices requests against them.

    Example:
        calculator = PaymentCalculator(db)
        quote = await calculator.compute(request)
        quote.total_amount, quote.deposit_amount
    """

    def __init__(self, db: AsyncSession):
        self.products = ProductRepository(db)

    async def load_snapshots(self, product_ids: Iterable[UUID]) -> dict[UUID, ProductSnapshot]:
        """Resolve active products in a single query."""
        found = await self.products.get_active_many(product_ids)
        return {
            pid: ProductSnapshot(
                product_id=product.product_id,
                tenant_id=product.tenant_id,
                daily_price=product.daily_price,
                hourly_price=product.hourly_price,
                available_quantity=product.available_quantity,
            )
            for pid, product in found.items()
        }

    async def compute(
        self,
        request: QuoteRequest,
        *,
        tenant_id: UUID | None = None,
        strict: bool = False,
    ) -> PaymentComputation:
        validate_request(request)
        snapshots = await self.load_snapshots(line.product_id for line in request.lines)
        computation = compute_payment(request, snapshots, tenant_id=tenant_id, strict=strict)

        logger.debug(
            "payment_computed",
            total=str(computation.total_amount),
            deposit=str(computation.deposit_amount),
            periods=computation.billable_periods,
            tenants=len(computation.tenants),
        )
        return computation
