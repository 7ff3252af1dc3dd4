"""Unit tests for contract generation, blob storage and notifications."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from uuid_utils.compat import uuid7

from rentwise.db.models.customer import Customer
from rentwise.db.models.rental import Rental, RentalItem
from rentwise.payments.collaborators import (
    InMemoryBlobStore,
    LocalFileBlobStore,
    LoggingNotificationSender,
    PdfContractGenerator,
    _customer_rows,
    _item_rows,
    _period_rows,
    contract_path,
)

START = datetime(2030, 6, 1, 9, 0, tzinfo=UTC)


def _rental(notes: str | None = None) -> Rental:
    product_id = uuid7()
    rental = Rental(
        rental_id=uuid7(),
        tenant_id=uuid7(),
        customer_id=uuid7(),
        start_at=START,
        end_at=START + timedelta(days=3),
        status="confirmed",
        total_amount=Decimal("105.00"),
        deposit_amount=Decimal("31.50"),
        notes=notes,
    )
    rental.items = [
        RentalItem(
            item_id=uuid7(),
            product_id=product_id,
            quantity=1,
            unit_price=Decimal("35.00"),
            billing_unit="day",
            billable_periods=3,
            subtotal=Decimal("105.00"),
        )
    ]
    return rental


def _customer(email: str | None = "jan@example.com") -> Customer:
    return Customer(
        customer_id=uuid7(),
        tenant_id=uuid7(),
        full_name="Jan Kowalski",
        email=email,
        document_number="ABC123456",
    )


class TestContractGenerator:
    def test_item_rows_list_items_and_amounts(self):
        rental = _rental()
        names = {rental.items[0].product_id: "Concrete mixer"}

        rows = _item_rows(rental, names)

        assert rows[0] == ["Item", "Qty", "Unit price", "Periods", "Subtotal"]
        assert rows[1] == ["Concrete mixer", "1", "35.00 / day", "3", "105.00"]
        assert rows[-2] == ["Total", "", "", "", "105.00"]
        assert rows[-1] == ["Deposit", "", "", "", "31.50"]

    def test_unknown_product_names_fall_back_to_id(self):
        rental = _rental()

        rows = _item_rows(rental, {})

        assert rows[1][0] == str(rental.items[0].product_id)

    def test_customer_and_period_rows(self):
        rental = _rental()

        assert ["Customer", "Jan Kowalski"] in _customer_rows(_customer())
        assert ["Document", "ABC123456"] in _customer_rows(_customer())
        assert ["Email", "-"] in _customer_rows(_customer(email=None))
        assert _period_rows(rental)[1:] == [
            ["Start", "2030-06-01 09:00 UTC"],
            ["End", "2030-06-04 09:00 UTC"],
        ]

    async def test_contract_is_a_pdf(self):
        rental = _rental(notes="Deliver before 8am & call <first>")
        names = {rental.items[0].product_id: "Concrete mixer"}

        document = await PdfContractGenerator().generate_contract(rental, _customer(), names)

        assert document.startswith(b"%PDF-")
        assert document.rstrip().endswith(b"%%EOF")


class TestBlobStores:
    def test_contract_path(self):
        rental = _rental()

        assert contract_path(rental) == f"contracts/{rental.tenant_id}/{rental.rental_id}.pdf"

    async def test_in_memory_store(self):
        store = InMemoryBlobStore()

        url = await store.save("contracts/a.txt", b"data")

        assert url == "memory://contracts/a.txt"
        assert store.blobs["contracts/a.txt"] == b"data"

    async def test_local_store_writes_below_root(self, tmp_path):
        store = LocalFileBlobStore(tmp_path, base_url="/files/")

        url = await store.save("contracts/t/r.txt", b"agreement")

        assert url == "/files/contracts/t/r.txt"
        assert (tmp_path / "contracts" / "t" / "r.txt").read_bytes() == b"agreement"

    async def test_local_store_rejects_traversal(self, tmp_path):
        store = LocalFileBlobStore(tmp_path / "blobs")

        with pytest.raises(ValueError):
            await store.save("../outside.txt", b"x")


class TestNotificationSender:
    async def test_sends_to_customer_with_email(self):
        sent = await LoggingNotificationSender().send_rental_confirmation(
            _rental(), _customer(), "memory://contract"
        )

        assert sent is True

    async def test_skips_customer_without_email(self):
        sent = await LoggingNotificationSender().send_rental_confirmation(
            _rental(), _customer(email=None), None
        )

        assert sent is False
