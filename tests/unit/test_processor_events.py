"""Unit tests for processor callback parsing and signature checks."""

import hashlib
import hmac
import json
import time

import pytest

from rentwise.core.exceptions import MalformedPayloadError, WebhookSignatureError
from rentwise.payments.events import ProcessorEventType, parse_processor_event

SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = SECRET, timestamp: int | None = None) -> str:
    """Build a processor-style signature header for payload."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def envelope(event_type: str, obj: dict, event_id: str = "evt_1") -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


class TestSignature:
    """Tests for signature verification."""

    def test_valid_signature(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})

        event = parse_processor_event(payload, sign(payload), SECRET)

        assert event.event_type == ProcessorEventType.PAYMENT_SUCCEEDED

    def test_wrong_secret(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})

        with pytest.raises(WebhookSignatureError):
            parse_processor_event(payload, sign(payload, secret="whsec_other"), SECRET)

    def test_tampered_body(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})
        header = sign(payload)
        tampered = envelope("payment_intent.succeeded", {"id": "pi_2"})

        with pytest.raises(WebhookSignatureError):
            parse_processor_event(tampered, header, SECRET)

    def test_stale_timestamp(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})
        header = sign(payload, timestamp=int(time.time()) - 3600)

        with pytest.raises(WebhookSignatureError):
            parse_processor_event(payload, header, SECRET)

    def test_missing_header(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})

        with pytest.raises(WebhookSignatureError):
            parse_processor_event(payload, None, SECRET)

    def test_no_secret_skips_verification(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1"})

        event = parse_processor_event(payload, "garbage", None)

        assert event.reference == "pi_1"


class TestNormalization:
    """Tests for envelope normalization."""

    def test_checkout_completed_uses_payment_intent(self):
        payload = envelope(
            "checkout.session.completed",
            {
                "id": "cs_1",
                "payment_intent": "pi_1",
                "amount_total": 10500,
                "metadata": {"idempotency_key": "chk_1", "parts": 2},
            },
        )

        event = parse_processor_event(payload, None, None)

        assert event.event_type == ProcessorEventType.CHECKOUT_COMPLETED
        assert event.reference == "pi_1"
        assert event.amount_minor == 10500
        assert event.metadata == {"idempotency_key": "chk_1", "parts": "2"}
        assert event.event_id == "evt_1"

    def test_charge_refunded_uses_payment_intent(self):
        payload = envelope("charge.refunded", {"id": "ch_1", "payment_intent": "pi_9"})

        event = parse_processor_event(payload, None, None)

        assert event.reference == "pi_9"

    def test_unknown_event_type(self):
        payload = envelope("customer.created", {"id": "cus_1"})

        event = parse_processor_event(payload, None, None)

        assert event.event_type == ProcessorEventType.UNKNOWN
        assert event.raw_type == "customer.created"

    def test_missing_reference(self):
        event = parse_processor_event(envelope("payment_intent.succeeded", {}), None, None)

        assert event.reference is None
        assert event.metadata == {}

    def test_invalid_json(self):
        with pytest.raises(MalformedPayloadError):
            parse_processor_event(b"{nope", None, None)

    def test_not_an_envelope(self):
        with pytest.raises(MalformedPayloadError):
            parse_processor_event(b'["payment_intent.succeeded"]', None, None)

    def test_metadata_must_be_mapping(self):
        payload = envelope("payment_intent.succeeded", {"id": "pi_1", "metadata": ["x"]})

        with pytest.raises(MalformedPayloadError):
            parse_processor_event(payload, None, None)
