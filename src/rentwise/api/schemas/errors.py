"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes not carried by a domain exception.

    Domain exceptions bring their own code (error_code class attribute).
    """

    # Authentication & tenants
    UNAUTHORIZED = "unauthorized"
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_INACTIVE = "tenant_inactive"
    TENANT_REQUIRED = "tenant_required"

    # Request errors
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"

    # System errors
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


class APIError(BaseModel):
    """Standardized API error response format.

    All API errors return this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")
    request_id: str = Field(..., description="Request ID for tracing (UUIDv7)")
    timestamp: datetime = Field(..., description="When the error occurred")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error_code": "insufficient_availability",
                "message": "Insufficient availability for product 0193...: requested 2",
                "details": {
                    "product_id": "01934f2a-7c1e-7000-8000-0a1b2c3d4e5f",
                    "requested": 2,
                    "remaining": 1,
                },
                "request_id": "019478f2-1234-7000-8000-abcdef123456",
                "timestamp": "2026-01-30T12:00:00Z",
            }
        }
    }
