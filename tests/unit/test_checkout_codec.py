"""Unit tests for the checkout payload codec."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

import pytest
from pydantic import ValidationError

from rentwise.core.exceptions import (
    IncompletePayloadError,
    MalformedPayloadError,
    PayloadTooLargeError,
)
from rentwise.payments.codec import (
    PARTS_KEY,
    PAYLOAD_KEY,
    CheckoutPayloadCodec,
    CheckoutRentalPayload,
    CustomerSnapshot,
    PayloadItem,
    TenantBreakdownPayload,
    chunk_key,
    chunk_value,
)

TENANT_A = UUID("00000000-0000-7000-8000-00000000000a")
TENANT_B = UUID("00000000-0000-7000-8000-00000000000b")
START = datetime(2030, 6, 1, 9, 0, tzinfo=UTC)


def _payload(item_count: int = 1, notes: str | None = None) -> CheckoutRentalPayload:
    items = [
        PayloadItem(product_id=UUID(int=i + 1), quantity=1) for i in range(item_count)
    ]
    return CheckoutRentalPayload(
        idempotency_key="chk_0123456789abcdef",
        customer=CustomerSnapshot(full_name="Jan Kowalski", email="jan@example.com"),
        start=START,
        end=START + timedelta(days=3),
        total_amount=Decimal("135.00"),
        deposit_amount=Decimal("40.50"),
        tenants=[
            TenantBreakdownPayload(
                tenant_id=TENANT_A,
                items=items,
                total_amount=Decimal("35.00"),
                deposit_amount=Decimal("10.50"),
            ),
            TenantBreakdownPayload(
                tenant_id=TENANT_B,
                items=[PayloadItem(product_id=UUID(int=999), quantity=1)],
                total_amount=Decimal("100.00"),
                deposit_amount=Decimal("30.00"),
            ),
        ],
        notes=notes,
    )


class TestChunking:
    def test_chunk_value_splits_in_order(self):
        assert chunk_value("abcdefg", 3) == ["abc", "def", "g"]

    def test_chunk_value_empty(self):
        assert chunk_value("", 3) == [""]

    def test_chunk_value_rejects_bad_size(self):
        with pytest.raises(ValueError):
            chunk_value("abc", 0)

    def test_chunk_key(self):
        assert chunk_key(0) == "rental_payload_0"


class TestPayloadModel:
    def test_breakdown_sums_are_enforced(self):
        with pytest.raises(ValidationError):
            CheckoutRentalPayload(
                idempotency_key="chk_x",
                customer=CustomerSnapshot(),
                start=START,
                end=START + timedelta(days=1),
                total_amount=Decimal("99.00"),
                deposit_amount=Decimal("29.70"),
                tenants=[
                    TenantBreakdownPayload(
                        tenant_id=TENANT_A,
                        items=[PayloadItem(product_id=UUID(int=1), quantity=1)],
                        total_amount=Decimal("35.00"),
                        deposit_amount=Decimal("10.50"),
                    )
                ],
            )

    def test_items_must_have_positive_quantity(self):
        with pytest.raises(ValidationError):
            PayloadItem(product_id=UUID(int=1), quantity=0)

    def test_tenant_key(self):
        assert _payload().tenant_key(TENANT_A) == f"chk_0123456789abcdef:{TENANT_A}"


class TestCheckoutPayloadCodec:
    """Tests for encode/decode across the metadata channel."""

    def test_small_payload_uses_single_key(self):
        codec = CheckoutPayloadCodec(max_value_length=5000)

        metadata = codec.encode(_payload())

        assert set(metadata) == {PAYLOAD_KEY}
        assert codec.decode(metadata) == _payload()

    def test_envelope_is_versioned_compact_json(self):
        encoded = CheckoutPayloadCodec().serialize(_payload())

        envelope = json.loads(encoded)
        assert envelope["v"] == 1
        assert envelope["p"]["idempotency_key"] == "chk_0123456789abcdef"
        assert ": " not in encoded
        assert "notes" not in envelope["p"]

    def test_large_payload_is_chunked(self):
        codec = CheckoutPayloadCodec(max_value_length=100)
        payload = _payload(item_count=6, notes="Deliver to the back gate")

        metadata = codec.encode(payload)

        parts = int(metadata[PARTS_KEY])
        assert parts > 1
        assert PAYLOAD_KEY not in metadata
        assert all(len(metadata[chunk_key(i)]) <= 100 for i in range(parts))
        assert codec.decode(metadata) == payload

    def test_missing_chunk_is_incomplete(self):
        codec = CheckoutPayloadCodec(max_value_length=100)
        metadata = codec.encode(_payload(item_count=6))
        del metadata[chunk_key(1)]

        with pytest.raises(IncompletePayloadError) as exc_info:
            codec.decode(metadata)

        assert exc_info.value.missing_keys == [chunk_key(1)]
        assert exc_info.value.error_code == "incomplete_payload"

    def test_missing_payload_is_incomplete(self):
        with pytest.raises(IncompletePayloadError):
            CheckoutPayloadCodec().decode({"idempotency_key": "chk_x"})

    def test_unreadable_part_count(self):
        with pytest.raises(IncompletePayloadError):
            CheckoutPayloadCodec().decode({PARTS_KEY: "many"})

    def test_part_count_out_of_range(self):
        codec = CheckoutPayloadCodec(max_parts=3)

        with pytest.raises(IncompletePayloadError):
            codec.decode({PARTS_KEY: "4"})

    def test_too_large_payload(self):
        codec = CheckoutPayloadCodec(max_value_length=50, max_parts=2)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            codec.encode(_payload(item_count=4))

        assert exc_info.value.max_parts == 2

    def test_invalid_json_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            CheckoutPayloadCodec().decode({PAYLOAD_KEY: "{not json"})

    def test_unknown_version_is_malformed(self):
        body = json.dumps({"v": 2, "p": {}})

        with pytest.raises(MalformedPayloadError):
            CheckoutPayloadCodec().decode({PAYLOAD_KEY: body})

    def test_invalid_body_is_malformed(self):
        body = json.dumps({"v": 1, "p": {"idempotency_key": "chk_x"}})

        with pytest.raises(MalformedPayloadError):
            CheckoutPayloadCodec().decode({PAYLOAD_KEY: body})

    def test_has_payload(self):
        assert CheckoutPayloadCodec.has_payload({PAYLOAD_KEY: "x"})
        assert CheckoutPayloadCodec.has_payload({PARTS_KEY: "2"})
        assert not CheckoutPayloadCodec.has_payload({})
