"""API schemas for payment quotes."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from rentwise.payments.types import PaymentComputation, QuoteRequest, RentalType

from .common import BookingWindow, ItemInput


class QuoteRequestBody(BookingWindow):
    """Request body for pricing a cart.

    Example:
        {
            "start": "2026-06-01T09:00:00Z",
            "end": "2026-06-04T09:00:00Z",
            "items": [{"product_id": "0193...", "quantity": 2}]
        }
    """

    items: list[ItemInput] = Field(default_factory=list, description="Cart lines")
    rental_type: RentalType = Field(default=RentalType.DAILY, description="Billing mode")
    hours: int | None = Field(default=None, ge=0, description="Hours billed in hourly mode")

    def to_quote_request(self) -> QuoteRequest:
        return QuoteRequest(
            date_range=self.date_range,
            lines=tuple(item.to_line() for item in self.items),
            rental_type=self.rental_type,
            hours=self.hours,
        )


class QuoteLineResponse(BaseModel):
    product_id: UUID
    quantity: int
    unit_price: Decimal
    billing_unit: str
    periods: int
    subtotal: Decimal


class TenantQuoteResponse(BaseModel):
    """One tenant's share of a quote."""

    tenant_id: UUID
    total: Decimal
    deposit: Decimal
    lines: list[QuoteLineResponse]


class QuoteResponse(BaseModel):
    """Priced cart; tenants are ordered by tenant id."""

    total: Decimal = Field(..., description="Sum of all line subtotals")
    deposit: Decimal = Field(..., description="Deposit due at checkout")
    currency: str
    billable_periods: int = Field(..., description="Days, or hours in hourly mode")
    tenants: list[TenantQuoteResponse]

    @classmethod
    def from_computation(cls, computation: PaymentComputation, currency: str) -> "QuoteResponse":
        return cls(
            total=computation.total_amount,
            deposit=computation.deposit_amount,
            currency=currency,
            billable_periods=computation.billable_periods,
            tenants=[
                TenantQuoteResponse(
                    tenant_id=breakdown.tenant_id,
                    total=breakdown.total_amount,
                    deposit=breakdown.deposit_amount,
                    lines=[
                        QuoteLineResponse(
                            product_id=line.product_id,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            billing_unit=line.billing_unit.value,
                            periods=line.periods,
                            subtotal=line.subtotal,
                        )
                        for line in breakdown.lines
                    ],
                )
                for breakdown in computation.tenants
            ],
        )
