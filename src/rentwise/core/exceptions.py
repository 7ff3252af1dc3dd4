"""Core exceptions for bookings, payments and tenant isolation."""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any
from uuid import UUID

from rentwise.utils.exceptions import RentwiseError


class ContextNotSetError(RentwiseError):
    """Raised when attempting to access request context that is not set."""

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


# =============================================================================
# Booking validation errors (rejected synchronously, never retried)
# =============================================================================


class BookingValidationError(RentwiseError):
    """Base class for invalid booking or payment requests.

    Attributes:
        error_code: Machine-readable reason surfaced to API clients
    """

    error_code = "invalid_request"

    def details(self) -> dict[str, Any] | None:
        return None


class InvalidDateRangeError(BookingValidationError):
    """Raised when a rental range does not end after it starts."""

    error_code = "invalid_date_range"

    def __init__(self, start: Any, end: Any):
        super().__init__("Rental range must end after it starts")
        self.start = start
        self.end = end

    def __str__(self) -> str:
        return f"Invalid date range: end {self.end} is not after start {self.start}"

    def details(self) -> dict[str, Any]:
        return {"start": str(self.start), "end": str(self.end)}


class EmptyLineSetError(BookingValidationError):
    """Raised when a quote or booking has no item lines."""

    error_code = "empty_line_set"

    def __init__(self) -> None:
        super().__init__("At least one item line is required")


class InvalidQuantityError(BookingValidationError):
    """Raised when a line asks for zero or negative units."""

    error_code = "invalid_quantity"

    def __init__(self, product_id: UUID, quantity: int):
        super().__init__(f"Quantity must be positive, got {quantity}")
        self.product_id = product_id
        self.quantity = quantity

    def details(self) -> dict[str, Any]:
        return {"product_id": str(self.product_id), "quantity": self.quantity}


class ProductsUnavailableError(BookingValidationError):
    """Raised when referenced products are unknown or inactive.

    Attributes:
        product_ids: The ids that could not be resolved
    """

    error_code = "products_unavailable"

    def __init__(self, product_ids: Iterable[UUID]):
        self.product_ids = sorted(product_ids, key=str)
        super().__init__("Some products are unavailable")

    def __str__(self) -> str:
        ids = ", ".join(str(pid) for pid in self.product_ids)
        return f"Products unavailable: {ids}"

    def details(self) -> dict[str, Any]:
        return {"product_ids": [str(pid) for pid in self.product_ids]}


class CrossTenantNotAllowedError(BookingValidationError):
    """Raised in strict mode when lines reference products of several tenants."""

    error_code = "cross_tenant_not_allowed"

    def __init__(self, tenant_ids: Iterable[UUID], expected_tenant_id: UUID | None = None):
        self.tenant_ids = sorted(set(tenant_ids), key=str)
        self.expected_tenant_id = expected_tenant_id
        super().__init__("Items must belong to a single tenant")

    def __str__(self) -> str:
        ids = ", ".join(str(tid) for tid in self.tenant_ids)
        if self.expected_tenant_id is not None:
            return f"Items must belong to tenant {self.expected_tenant_id}, found: {ids}"
        return f"Items must belong to a single tenant, found: {ids}"

    def details(self) -> dict[str, Any]:
        return {
            "tenant_ids": [str(tid) for tid in self.tenant_ids],
            "expected_tenant_id": (
                str(self.expected_tenant_id) if self.expected_tenant_id else None
            ),
        }


class InvalidHoldError(BookingValidationError):
    """Raised when a hold request is malformed (quantity or TTL out of bounds)."""

    error_code = "invalid_hold"

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field

    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class PaymentIntentNotFoundError(BookingValidationError):
    """Raised when a referenced payment intent does not exist for the tenant."""

    error_code = "payment_intent_not_found"

    def __init__(self, reference: str):
        super().__init__(f"Payment intent not found: {reference}")
        self.reference = reference

    def details(self) -> dict[str, Any]:
        return {"payment_intent_id": self.reference}


class PaymentAmountMismatchError(BookingValidationError):
    """Raised when an intent's amount differs from the recomputed total."""

    error_code = "payment_amount_mismatch"

    def __init__(self, reference: str, expected: Decimal, actual: Decimal):
        super().__init__("Payment intent amount does not match the rental total")
        self.reference = reference
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return (
            f"Payment intent {self.reference} amount {self.actual} "
            f"does not match rental total {self.expected}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "payment_intent_id": self.reference,
            "expected": str(self.expected),
            "actual": str(self.actual),
        }


# =============================================================================
# Conflicts (client may retry with different parameters)
# =============================================================================


class BookingConflictError(RentwiseError):
    """Base class for requests that conflict with current state."""

    error_code = "conflict"

    def details(self) -> dict[str, Any] | None:
        return None


class InsufficientAvailabilityError(BookingConflictError):
    """Raised when committed rentals leave too few units for a request."""

    error_code = "insufficient_availability"

    def __init__(self, product_id: UUID, requested: int, remaining: int):
        super().__init__("Not enough units available for the requested range")
        self.product_id = product_id
        self.requested = requested
        self.remaining = remaining

    def __str__(self) -> str:
        return (
            f"Insufficient availability for product {self.product_id}: "
            f"requested {self.requested}, remaining {self.remaining}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "requested": self.requested,
            "remaining": self.remaining,
        }


class DuplicateIdempotencyKeyError(BookingConflictError):
    """Raised when a key is reused for a different booking request."""

    error_code = "duplicate_idempotency_key"

    def __init__(self, idempotency_key: str, rental_id: UUID):
        super().__init__(f"Idempotency key already used: {idempotency_key}")
        self.idempotency_key = idempotency_key
        self.rental_id = rental_id

    def details(self) -> dict[str, Any]:
        return {"idempotency_key": self.idempotency_key, "rental_id": str(self.rental_id)}


class InvalidStatusTransitionError(BookingConflictError):
    """Raised when a rental cannot move to the requested status."""

    error_code = "invalid_status_transition"

    def __init__(self, rental_id: UUID, current: str, target: str):
        super().__init__(f"Cannot move rental from {current} to {target}")
        self.rental_id = rental_id
        self.current = current
        self.target = target

    def details(self) -> dict[str, Any]:
        return {"rental_id": str(self.rental_id), "current": self.current, "target": self.target}


# =============================================================================
# Missing resources
# =============================================================================


class ResourceNotFoundError(RentwiseError):
    """Base class for lookups that found nothing in the caller's tenant."""

    error_code = "not_found"
    resource = "resource"

    def __init__(self, resource_id: UUID):
        super().__init__(f"{self.resource.capitalize()} not found: {resource_id}")
        self.resource_id = resource_id

    def details(self) -> dict[str, Any]:
        return {f"{self.resource}_id": str(self.resource_id)}


class RentalNotFoundError(ResourceNotFoundError):
    error_code = "rental_not_found"
    resource = "rental"


class ProductNotFoundError(ResourceNotFoundError):
    error_code = "product_not_found"
    resource = "product"


class CustomerNotFoundError(ResourceNotFoundError):
    error_code = "customer_not_found"
    resource = "customer"


class HoldNotFoundError(ResourceNotFoundError):
    error_code = "hold_not_found"
    resource = "hold"


# =============================================================================
# Checkout payload codec
# =============================================================================


class PayloadError(RentwiseError):
    """Base class for checkout payloads that cannot cross the metadata channel."""

    error_code = "invalid_payload"


class IncompletePayloadError(PayloadError):
    """Raised when the part count or one of the payload chunks is missing."""

    error_code = "incomplete_payload"

    def __init__(self, message: str, missing_keys: Iterable[str] = ()):
        super().__init__(message)
        self.missing_keys = list(missing_keys)

    def __str__(self) -> str:
        if self.missing_keys:
            return f"{self.args[0]} (missing: {', '.join(self.missing_keys)})"
        return self.args[0]


class MalformedPayloadError(PayloadError):
    """Raised when the payload is present but cannot be parsed or validated."""

    error_code = "malformed_payload"


class PayloadTooLargeError(PayloadError):
    """Raised when a payload would need more chunks than the channel allows."""

    error_code = "payload_too_large"

    def __init__(self, length: int, max_parts: int, chunk_size: int):
        super().__init__("Checkout payload exceeds the metadata channel capacity")
        self.length = length
        self.max_parts = max_parts
        self.chunk_size = chunk_size

    def __str__(self) -> str:
        return (
            f"Checkout payload of {self.length} characters exceeds "
            f"{self.max_parts} parts of {self.chunk_size}"
        )


# =============================================================================
# Payment processor
# =============================================================================


class WebhookSignatureError(RentwiseError):
    """Raised when a processor callback fails signature verification."""

    error_code = "invalid_signature"


class PaymentGatewayError(RentwiseError):
    """Raised when the external payment processor rejects or fails a call.

    Attributes:
        operation: Gateway operation that failed
        reference: Processor reference involved, if any
    """

    error_code = "payment_gateway_error"

    def __init__(self, message: str, operation: str, reference: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.reference = reference

    def __str__(self) -> str:
        return f"PaymentGatewayError({self.operation}): {self.args[0]}"


# =============================================================================
# Tenants and authentication
# =============================================================================


class TenantNotFoundError(RentwiseError):
    """Raised when a tenant cannot be found.

    Attributes:
        tenant_id: The ID of the tenant that was not found
    """

    def __init__(self, tenant_id: UUID):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"TenantNotFoundError: {self.tenant_id}"


class TenantInactiveError(RentwiseError):
    """Raised when attempting to use an inactive (deactivated) tenant.

    Attributes:
        tenant_id: The ID of the inactive tenant
    """

    def __init__(self, tenant_id: UUID):
        super().__init__(f"Tenant is inactive: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"TenantInactiveError: {self.tenant_id}"


class TenantRequiredError(RentwiseError):
    """Raised when an endpoint needs a tenant but the request carried none."""

    def __init__(self) -> None:
        super().__init__("X-Tenant-ID header is required for this operation")


class AuthenticationError(RentwiseError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)
