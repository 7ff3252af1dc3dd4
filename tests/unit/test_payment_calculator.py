"""Unit tests for the payment computation engine."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

import pytest

from rentwise.core.exceptions import (
    CrossTenantNotAllowedError,
    EmptyLineSetError,
    InvalidDateRangeError,
    InvalidQuantityError,
    ProductsUnavailableError,
)
from rentwise.db.models.rental import BillingUnit
from rentwise.payments.calculator import allocate_deposits, compute_deposit, compute_payment
from rentwise.payments.types import (
    DateRange,
    ProductSnapshot,
    QuoteLine,
    QuoteRequest,
    RentalType,
    to_minor_units,
)

TENANT_A = UUID("00000000-0000-7000-8000-00000000000a")
TENANT_B = UUID("00000000-0000-7000-8000-00000000000b")
MIXER = UUID("10000000-0000-7000-8000-000000000001")
DRILL = UUID("10000000-0000-7000-8000-000000000002")
LIFT = UUID("10000000-0000-7000-8000-000000000003")

START = datetime(2030, 6, 1, 9, 0, tzinfo=UTC)


def _products() -> dict[UUID, ProductSnapshot]:
    return {
        MIXER: ProductSnapshot(MIXER, TENANT_A, Decimal("35.00"), available_quantity=2),
        DRILL: ProductSnapshot(
            DRILL, TENANT_A, Decimal("20.00"), hourly_price=Decimal("4.50"), available_quantity=5
        ),
        LIFT: ProductSnapshot(LIFT, TENANT_B, Decimal("100.00"), available_quantity=1),
    }


def _request(*lines: tuple[UUID, int], days: float = 3, **kwargs) -> QuoteRequest:
    return QuoteRequest(
        date_range=DateRange(START, START + timedelta(days=days)),
        lines=tuple(QuoteLine(pid, qty) for pid, qty in lines),
        **kwargs,
    )


class TestDateRange:
    """Tests for billable day counting."""

    def test_exact_days(self):
        assert DateRange(START, START + timedelta(days=3)).billable_days() == 3

    def test_partial_day_rounds_up(self):
        assert DateRange(START, START + timedelta(days=3, seconds=1)).billable_days() == 4

    def test_short_range_is_one_day(self):
        assert DateRange(START, START + timedelta(minutes=30)).billable_days() == 1

    def test_overlap_is_half_open(self):
        first = DateRange(START, START + timedelta(days=1))
        second = DateRange(START + timedelta(days=1), START + timedelta(days=2))
        assert not first.overlaps(second)
        assert first.overlaps(DateRange(START + timedelta(hours=23), START + timedelta(days=2)))


class TestComputePayment:
    """Tests for compute_payment."""

    def test_single_product_three_days(self):
        """35.00/day for three days is 105.00 with a 31.50 deposit."""
        result = compute_payment(_request((MIXER, 1)), _products())

        assert result.total_amount == Decimal("105.00")
        assert result.deposit_amount == Decimal("31.50")
        assert result.billable_periods == 3
        assert len(result.tenants) == 1
        assert result.tenants[0].tenant_id == TENANT_A

    def test_quantity_multiplies_subtotal(self):
        result = compute_payment(_request((MIXER, 2)), _products())

        assert result.lines[0].subtotal == Decimal("210.00")
        assert result.total_amount == Decimal("210.00")

    def test_repeated_product_lines_are_merged(self):
        result = compute_payment(_request((MIXER, 1), (MIXER, 1)), _products())

        assert len(result.lines) == 1
        assert result.lines[0].quantity == 2

    def test_partial_day_is_billed_as_full_day(self):
        result = compute_payment(_request((MIXER, 1), days=1.5), _products())

        assert result.billable_periods == 2
        assert result.total_amount == Decimal("70.00")

    def test_hourly_billing_uses_hourly_price(self):
        request = _request((DRILL, 2), days=1, rental_type=RentalType.HOURLY, hours=5)

        result = compute_payment(request, _products())

        line = result.lines[0]
        assert line.billing_unit == BillingUnit.HOUR
        assert line.periods == 5
        assert result.total_amount == Decimal("45.00")
        assert result.billable_periods == 5

    def test_hourly_falls_back_to_daily_without_hourly_price(self):
        request = _request((MIXER, 1), days=1, rental_type=RentalType.HOURLY, hours=5)

        result = compute_payment(request, _products())

        assert result.lines[0].billing_unit == BillingUnit.DAY
        assert result.total_amount == Decimal("35.00")

    def test_multi_tenant_split(self):
        """Tenant totals and deposits add up to the overall amounts."""
        result = compute_payment(_request((MIXER, 1), (LIFT, 1), days=1), _products())

        assert result.is_multi_tenant
        assert result.total_amount == Decimal("135.00")
        assert result.deposit_amount == Decimal("40.50")
        assert [t.tenant_id for t in result.tenants] == [TENANT_A, TENANT_B]
        assert sum(t.total_amount for t in result.tenants) == result.total_amount
        assert sum(t.deposit_amount for t in result.tenants) == result.deposit_amount

    def test_tenant_filter_rejects_foreign_products(self):
        with pytest.raises(CrossTenantNotAllowedError) as exc_info:
            compute_payment(_request((LIFT, 1)), _products(), tenant_id=TENANT_A)

        assert exc_info.value.expected_tenant_id == TENANT_A

    def test_strict_mode_rejects_multi_tenant(self):
        with pytest.raises(CrossTenantNotAllowedError):
            compute_payment(_request((MIXER, 1), (LIFT, 1)), _products(), strict=True)

    def test_unknown_product(self):
        unknown = UUID("10000000-0000-7000-8000-0000000000ff")

        with pytest.raises(ProductsUnavailableError) as exc_info:
            compute_payment(_request((unknown, 1)), _products())

        assert exc_info.value.product_ids == [unknown]
        assert exc_info.value.error_code == "products_unavailable"

    def test_end_before_start(self):
        request = QuoteRequest(DateRange(START, START), (QuoteLine(MIXER, 1),))

        with pytest.raises(InvalidDateRangeError):
            compute_payment(request, _products())

    def test_empty_lines(self):
        with pytest.raises(EmptyLineSetError):
            compute_payment(_request(), _products())

    def test_non_positive_quantity(self):
        with pytest.raises(InvalidQuantityError) as exc_info:
            compute_payment(_request((MIXER, 0)), _products())

        assert exc_info.value.details() == {"product_id": str(MIXER), "quantity": 0}


class TestDeposits:
    """Tests for deposit rounding and allocation."""

    def test_deposit_is_thirty_percent(self):
        assert compute_deposit(Decimal("105.00")) == Decimal("31.50")

    def test_deposit_rounds_half_up(self):
        assert compute_deposit(Decimal("0.05")) == Decimal("0.02")

    def test_last_tenant_absorbs_remainder(self):
        totals = {TENANT_A: Decimal("10.00"), TENANT_B: Decimal("10.00")}

        shares = allocate_deposits(Decimal("0.01"), totals)

        assert shares[TENANT_A] == Decimal("0.01")
        assert shares[TENANT_B] == Decimal("0.00")
        assert sum(shares.values()) == Decimal("0.01")

    def test_allocation_always_sums_to_deposit(self):
        totals = {TENANT_A: Decimal("33.33"), TENANT_B: Decimal("66.67")}
        deposit = compute_deposit(sum(totals.values()))

        shares = allocate_deposits(deposit, totals)

        assert sum(shares.values()) == deposit

    def test_zero_totals(self):
        shares = allocate_deposits(Decimal("0.00"), {TENANT_A: Decimal("0.00")})

        assert shares == {TENANT_A: Decimal("0.00")}

    def test_no_tenants(self):
        assert allocate_deposits(Decimal("1.00"), {}) == {}


class TestMinorUnits:
    def test_to_minor_units(self):
        assert to_minor_units(Decimal("105.00")) == 10500
        assert to_minor_units(Decimal("0.015")) == 2
