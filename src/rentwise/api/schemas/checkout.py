"""API schemas for checkout sessions."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .payments import QuoteRequestBody


class CreateSessionRequest(QuoteRequestBody):
    """Cart plus whatever is known about the customer.

    A customer_id of a tenant in the cart takes precedence over the inline
    contact fields.
    """

    customer_id: UUID | None = None
    customer_email: str | None = Field(default=None, max_length=320)
    customer_name: str | None = Field(default=None, max_length=200)
    customer_phone: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=2000)


class CreateSessionResponse(BaseModel):
    session_id: str = Field(..., description="Processor payment reference")
    url: str = Field(..., description="Hosted checkout page")
    expires_at: datetime
    total: Decimal
    deposit: Decimal
    client_secret: str | None = None
