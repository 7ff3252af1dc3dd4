"""Request fragments shared by the booking endpoints."""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from rentwise.payments.types import DateRange, QuoteLine


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ItemInput(BaseModel):
    """A requested product and quantity."""

    product_id: UUID = Field(..., description="Product to rent")
    quantity: int = Field(..., description="Units requested; must be positive")

    def to_line(self) -> QuoteLine:
        return QuoteLine(product_id=self.product_id, quantity=self.quantity)


class BookingWindow(BaseModel):
    """Half-open rental range [start, end)."""

    start: datetime = Field(..., description="Rental start (UTC if no offset given)")
    end: datetime = Field(..., description="Rental end, exclusive")

    @field_validator("start", "end")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start, end=self.end)
