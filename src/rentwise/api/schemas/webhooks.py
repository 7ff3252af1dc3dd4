"""API schemas for processor webhooks."""

from uuid import UUID

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the payment processor."""

    event_id: str
    event_type: str
    status: str
    outcomes: dict[UUID, str] = {}
    rental_ids: list[UUID] = []
    reason: str | None = None
