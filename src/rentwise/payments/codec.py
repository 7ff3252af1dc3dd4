"""Checkout payload codec.

The payment processor lets us attach a flat key/value metadata map to a
charge, with a per-value size ceiling. The reservation intent travels
through that map: it is serialized into a versioned envelope and, when
the encoded text is longer than one value may be, split into ordered
chunks plus a part-count key.

Wire layout (metadata keys):

    rental_payload                      whole envelope, when it fits
    rental_payload_parts = "N"          otherwise, followed by
    rental_payload_0 .. rental_payload_{N-1}
"""

import json
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Self
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rentwise.core.exceptions import (
    IncompletePayloadError,
    MalformedPayloadError,
    PayloadTooLargeError,
)
from rentwise.payments.types import ZERO, QuoteLine, RentalType

logger = structlog.get_logger()

PAYLOAD_KEY = "rental_payload"
PARTS_KEY = "rental_payload_parts"
CHUNK_KEY_PREFIX = "rental_payload_"

# Plain-text companions of the payload, readable without decoding
IDEMPOTENCY_METADATA_KEY = "idempotency_key"
TENANT_METADATA_KEY = "tenant_id"
RENTAL_METADATA_KEY = "rental_id"

PAYLOAD_VERSION = 1
MAX_VALUE_LENGTH = 450
MAX_PARTS = 40


# =============================================================================
# Payload model
# =============================================================================


class CustomerSnapshot(BaseModel):
    """Denormalized copy of the customer at checkout time."""

    model_config = ConfigDict(frozen=True)

    customer_id: UUID | None = None
    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None
    document_number: str | None = None
    notes: str | None = None


class PayloadItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = Field(gt=0)


class TenantBreakdownPayload(BaseModel):
    """What one tenant was authorized to charge, and for which items."""

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    items: list[PayloadItem] = Field(min_length=1)
    total_amount: Decimal
    deposit_amount: Decimal

    @property
    def lines(self) -> tuple[QuoteLine, ...]:
        return tuple(QuoteLine(item.product_id, item.quantity) for item in self.items)


class CheckoutRentalPayload(BaseModel):
    """Full reservation intent carried through the processor metadata."""

    model_config = ConfigDict(frozen=True)

    idempotency_key: str = Field(min_length=1)
    customer: CustomerSnapshot
    start: datetime
    end: datetime
    rental_type: RentalType = RentalType.DAILY
    hours: int | None = None
    total_amount: Decimal
    deposit_amount: Decimal
    tenants: list[TenantBreakdownPayload] = Field(min_length=1)
    notes: str | None = None

    @model_validator(mode="after")
    def validate_breakdown_sums(self) -> Self:
        """Tenant totals and deposits must add up to the overall amounts."""
        total = sum((t.total_amount for t in self.tenants), ZERO)
        deposit = sum((t.deposit_amount for t in self.tenants), ZERO)
        if total != self.total_amount:
            raise ValueError(f"tenant totals {total} do not add up to {self.total_amount}")
        if deposit != self.deposit_amount:
            raise ValueError(f"tenant deposits {deposit} do not add up to {self.deposit_amount}")
        return self

    def tenant_key(self, tenant_id: UUID) -> str:
        """Idempotency key of the rental created for one tenant."""
        return f"{self.idempotency_key}:{tenant_id}"


# =============================================================================
# Encoding
# =============================================================================


def chunk_value(value: str, size: int) -> list[str]:
    """Split value into consecutive pieces of at most size characters."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    if not value:
        return [""]
    return [value[i : i + size] for i in range(0, len(value), size)]


def chunk_key(index: int) -> str:
    return f"{CHUNK_KEY_PREFIX}{index}"


class CheckoutPayloadCodec:
    """Encodes payloads into processor metadata and back.

    Example:
        codec = CheckoutPayloadCodec()
        metadata = codec.encode(payload)
        assert codec.decode(metadata) == payload
    """

    def __init__(self, max_value_length: int = MAX_VALUE_LENGTH, max_parts: int = MAX_PARTS):
        self.max_value_length = max_value_length
        self.max_parts = max_parts

    def serialize(self, payload: CheckoutRentalPayload) -> str:
        """Versioned compact JSON envelope of payload."""
        envelope = {
            "v": PAYLOAD_VERSION,
            "p": payload.model_dump(mode="json", exclude_none=True),
        }
        return json.dumps(envelope, separators=(",", ":"), sort_keys=True)

    def deserialize(self, encoded: str) -> CheckoutRentalPayload:
        try:
            envelope = json.loads(encoded)
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(f"Checkout payload is not valid JSON: {e}") from e

        if not isinstance(envelope, dict) or "p" not in envelope:
            raise MalformedPayloadError("Checkout payload envelope is missing its body")
        if envelope.get("v") != PAYLOAD_VERSION:
            raise MalformedPayloadError(
                f"Unsupported checkout payload version: {envelope.get('v')!r}"
            )

        try:
            return CheckoutRentalPayload.model_validate(envelope["p"])
        except ValidationError as e:
            raise MalformedPayloadError(f"Checkout payload failed validation: {e}") from e

    def encode(self, payload: CheckoutRentalPayload) -> dict[str, str]:
        """Metadata entries carrying payload.

        Raises:
            PayloadTooLargeError: If more than max_parts chunks would be needed
        """
        encoded = self.serialize(payload)
        if len(encoded) <= self.max_value_length:
            return {PAYLOAD_KEY: encoded}

        chunks = chunk_value(encoded, self.max_value_length)
        if len(chunks) > self.max_parts:
            raise PayloadTooLargeError(len(encoded), self.max_parts, self.max_value_length)

        metadata = {PARTS_KEY: str(len(chunks))}
        metadata.update({chunk_key(i): chunk for i, chunk in enumerate(chunks)})
        return metadata

    def decode(self, metadata: Mapping[str, Any]) -> CheckoutRentalPayload:
        """Rebuild the payload from metadata entries.

        Raises:
            IncompletePayloadError: If the payload, part count or a chunk is missing
            MalformedPayloadError: If the reassembled text is not a valid payload
        """
        if PARTS_KEY in metadata:
            try:
                parts = int(str(metadata[PARTS_KEY]))
            except ValueError as e:
                raise IncompletePayloadError(
                    f"Unreadable part count: {metadata[PARTS_KEY]!r}"
                ) from e
            if parts < 1 or parts > self.max_parts:
                raise IncompletePayloadError(f"Part count out of range: {parts}")

            keys = [chunk_key(i) for i in range(parts)]
            missing = [key for key in keys if key not in metadata]
            if missing:
                raise IncompletePayloadError("Checkout payload chunks are missing", missing)
            encoded = "".join(str(metadata[key]) for key in keys)
        elif PAYLOAD_KEY in metadata:
            encoded = str(metadata[PAYLOAD_KEY])
        else:
            raise IncompletePayloadError("No checkout payload in metadata", [PAYLOAD_KEY])

        return self.deserialize(encoded)

    @staticmethod
    def has_payload(metadata: Mapping[str, Any]) -> bool:
        return PAYLOAD_KEY in metadata or PARTS_KEY in metadata
