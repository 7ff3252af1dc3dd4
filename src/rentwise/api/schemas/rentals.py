"""API schemas for rentals."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from rentwise.db.models.rental import Rental

from .common import BookingWindow, ItemInput


class CreateRentalRequest(BookingWindow):
    """Request body for booking against an existing payment intent.

    Retrying with the same idempotency_key and identical inputs returns the
    rental created by the first attempt.
    """

    customer_id: UUID
    items: list[ItemInput] = Field(default_factory=list)
    payment_intent_id: str = Field(..., min_length=1, max_length=255)
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class RentalItemResponse(BaseModel):
    product_id: UUID
    quantity: int
    unit_price: Decimal
    billing_unit: str
    billable_periods: int
    subtotal: Decimal


class RentalResponse(BaseModel):
    """Rental as stored, with its priced items."""

    id: UUID
    tenant_id: UUID
    customer_id: UUID
    start: datetime
    end: datetime
    status: str
    payment_status: str | None
    payment_reference: str | None
    total_amount: Decimal
    deposit_amount: Decimal
    idempotency_key: str | None
    contract_url: str | None
    notes: str | None
    items: list[RentalItemResponse]
    created_at: datetime

    @classmethod
    def from_rental(cls, rental: Rental) -> "RentalResponse":
        return cls(
            id=rental.rental_id,
            tenant_id=rental.tenant_id,
            customer_id=rental.customer_id,
            start=rental.start_at,
            end=rental.end_at,
            status=rental.status,
            payment_status=rental.payment_status,
            payment_reference=rental.payment_reference,
            total_amount=rental.total_amount,
            deposit_amount=rental.deposit_amount,
            idempotency_key=rental.idempotency_key,
            contract_url=rental.contract_url,
            notes=rental.notes,
            items=[
                RentalItemResponse(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    billing_unit=item.billing_unit,
                    billable_periods=item.billable_periods,
                    subtotal=item.subtotal,
                )
                for item in rental.items
            ],
            created_at=rental.created_at,
        )
