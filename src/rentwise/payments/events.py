"""Inbound payment processor events.

Callbacks arrive in the processor's envelope:

    {"id": "evt_...", "type": "payment_intent.succeeded",
     "data": {"object": {...}}}

parse_processor_event verifies the signature header (when a signing
secret is configured) and normalizes the envelope into a ProcessorEvent.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import stripe
import structlog

from rentwise.core.exceptions import MalformedPayloadError, WebhookSignatureError
from rentwise.db.models.base import utc_now

logger = structlog.get_logger()

SIGNATURE_HEADER = "Stripe-Signature"
SIGNATURE_TOLERANCE_SECONDS = 300


class ProcessorEventType(str, Enum):
    """Processor events the reconciler understands."""

    CHECKOUT_COMPLETED = "checkout.session.completed"
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_CANCELED = "payment_intent.canceled"
    CHARGE_REFUNDED = "charge.refunded"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, raw: str) -> "ProcessorEventType":
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ProcessorEvent:
    """Normalized processor callback.

    Attributes:
        reference: Payment intent the event concerns, when it names one
        metadata: Metadata attached to the intent or checkout session
    """

    event_id: str
    event_type: ProcessorEventType
    raw_type: str
    reference: str | None
    metadata: dict[str, str] = field(default_factory=dict)
    amount_minor: int | None = None
    received_at: datetime = field(default_factory=utc_now)
    data: dict[str, Any] = field(default_factory=dict, repr=False)


def _reference_of(event_type: ProcessorEventType, obj: dict[str, Any]) -> str | None:
    if event_type in (ProcessorEventType.CHECKOUT_COMPLETED, ProcessorEventType.CHARGE_REFUNDED):
        reference = obj.get("payment_intent")
    else:
        reference = obj.get("id")
    return str(reference) if reference else None


def parse_processor_event(
    payload: bytes,
    signature: str | None,
    secret: str | None,
    tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
) -> ProcessorEvent:
    """Verify and normalize a processor callback body.

    Without a secret the body is trusted as-is; that mode exists for local
    development only.

    Raises:
        WebhookSignatureError: If a secret is configured and the header is
            missing, stale or does not match
        MalformedPayloadError: If the body is not a processor event envelope
    """
    text = payload.decode("utf-8", errors="replace")

    if secret:
        if not signature:
            raise WebhookSignatureError(f"Missing {SIGNATURE_HEADER} header")
        try:
            stripe.WebhookSignature.verify_header(text, signature, secret, tolerance)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Invalid webhook signature: {e}") from e
    else:
        logger.debug("webhook_signature_not_checked")

    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Webhook body is not valid JSON: {e}") from e

    if not isinstance(body, dict) or "type" not in body:
        raise MalformedPayloadError("Webhook body is not an event envelope")

    data = body.get("data") or {}
    obj = (data.get("object") or {}) if isinstance(data, dict) else {}
    if not isinstance(obj, dict):
        raise MalformedPayloadError("Webhook event object is not a mapping")

    raw_type = str(body["type"])
    event_type = ProcessorEventType.from_raw(raw_type)
    metadata = obj.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise MalformedPayloadError("Webhook metadata is not a mapping")
    amount = obj.get("amount_total", obj.get("amount"))

    return ProcessorEvent(
        event_id=str(body.get("id", "")),
        event_type=event_type,
        raw_type=raw_type,
        reference=_reference_of(event_type, obj),
        metadata={str(key): str(value) for key, value in metadata.items()},
        amount_minor=int(amount) if isinstance(amount, int) else None,
        data=obj,
    )
