"""API schemas for availability checks and reservation holds."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from rentwise.payments.availability import AvailabilityResult

from .common import BookingWindow


class AvailabilityResponse(BaseModel):
    """Capacity of one product over a range.

    held is informational; holds never reduce what can be booked.
    """

    product_id: UUID
    start: datetime
    end: datetime
    requested: int
    capacity: int
    committed: int
    held: int
    remaining: int
    available: bool

    @classmethod
    def from_result(
        cls, result: AvailabilityResult, start: datetime, end: datetime
    ) -> "AvailabilityResponse":
        return cls(
            product_id=result.product_id,
            start=start,
            end=end,
            requested=result.requested,
            capacity=result.capacity,
            committed=result.committed,
            held=result.held,
            remaining=result.remaining,
            available=result.is_available,
        )


class CreateHoldRequest(BookingWindow):
    """Request body for placing a reservation hold."""

    product_id: UUID
    quantity: int = Field(..., description="Units to hold")
    ttl_minutes: int | None = Field(
        default=None, description="Hold lifetime; policy default if omitted"
    )
    customer_id: UUID | None = None
    session_id: str | None = Field(default=None, max_length=255)


class HoldResponse(BaseModel):
    id: UUID
    expires_at: datetime
