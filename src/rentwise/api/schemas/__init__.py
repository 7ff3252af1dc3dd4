"""API schemas for request/response validation."""

from .checkout import CreateSessionRequest, CreateSessionResponse
from .common import BookingWindow, ItemInput, as_utc
from .errors import APIError, ErrorCode
from .health import ComponentHealth, HealthDetailResponse, HealthResponse, HealthStatus
from .inventory import AvailabilityResponse, CreateHoldRequest, HoldResponse
from .payments import QuoteRequestBody, QuoteResponse, TenantQuoteResponse
from .rentals import CreateRentalRequest, RentalItemResponse, RentalResponse
from .webhooks import WebhookResponse

__all__ = [
    # Error schemas
    "APIError",
    "ErrorCode",
    # Health schemas
    "ComponentHealth",
    "HealthStatus",
    "HealthResponse",
    "HealthDetailResponse",
    # Shared
    "BookingWindow",
    "ItemInput",
    "as_utc",
    # Quotes
    "QuoteRequestBody",
    "QuoteResponse",
    "TenantQuoteResponse",
    # Inventory
    "AvailabilityResponse",
    "CreateHoldRequest",
    "HoldResponse",
    # Checkout
    "CreateSessionRequest",
    "CreateSessionResponse",
    # Rentals
    "CreateRentalRequest",
    "RentalItemResponse",
    "RentalResponse",
    # Webhooks
    "WebhookResponse",
]
