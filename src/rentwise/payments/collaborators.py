"""Downstream collaborators used after a rental is committed.

Contract generation, document storage and customer notification are
best-effort: callers log their failures and never undo a booking because
of them.
"""

import asyncio
from collections.abc import Mapping
from io import BytesIO
from pathlib import Path
from typing import Protocol
from uuid import UUID
from xml.sax.saxutils import escape

import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from rentwise.db.models.customer import Customer
from rentwise.db.models.rental import Rental

logger = structlog.get_logger()


class NotificationSender(Protocol):
    async def send_rental_confirmation(
        self, rental: Rental, customer: Customer, contract_url: str | None
    ) -> bool: ...


class DocumentGenerator(Protocol):
    async def generate_contract(
        self,
        rental: Rental,
        customer: Customer,
        product_names: Mapping[UUID, str] | None = None,
    ) -> bytes: ...


class BlobStore(Protocol):
    async def save(self, path: str, data: bytes) -> str:
        """Store data under path and return a URL it can be fetched from."""
        ...


def contract_path(rental: Rental) -> str:
    return f"contracts/{rental.tenant_id}/{rental.rental_id}.pdf"


def _contract_number(rental: Rental) -> str:
    return str(rental.rental_id)[:8].upper()


def _customer_rows(customer: Customer) -> list[list[str]]:
    rows = [
        ["Customer", customer.full_name],
        ["Email", customer.email or "-"],
        ["Phone", customer.phone_number or "-"],
    ]
    if customer.document_number:
        rows.append(["Document", customer.document_number])
    return rows


def _period_rows(rental: Rental) -> list[list[str]]:
    return [
        ["Contract no", _contract_number(rental)],
        ["Start", f"{rental.start_at:%Y-%m-%d %H:%M} UTC"],
        ["End", f"{rental.end_at:%Y-%m-%d %H:%M} UTC"],
    ]


def _item_rows(rental: Rental, names: Mapping[UUID, str]) -> list[list[str]]:
    rows = [["Item", "Qty", "Unit price", "Periods", "Subtotal"]]
    for item in rental.items:
        rows.append(
            [
                names.get(item.product_id, str(item.product_id)),
                str(item.quantity),
                f"{item.unit_price} / {item.billing_unit}",
                str(item.billable_periods),
                str(item.subtotal),
            ]
        )
    rows.append(["Total", "", "", "", str(rental.total_amount)])
    rows.append(["Deposit", "", "", "", str(rental.deposit_amount)])
    return rows


def _render_pdf(
    title: str,
    customer_rows: list[list[str]],
    period_rows: list[list[str]],
    item_rows: list[list[str]],
    notes: str | None,
) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()
    grid = TableStyle(
        [
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ]
    )

    elements: list[object] = [
        Paragraph("<b>RENTAL AGREEMENT</b>", styles["Title"]),
        Spacer(1, 8),
    ]
    for heading, rows, widths in (
        ("Customer", customer_rows, [40 * mm, 120 * mm]),
        ("Rental period", period_rows, [40 * mm, 120 * mm]),
    ):
        table = Table(rows, colWidths=widths)
        table.setStyle(grid)
        elements += [Paragraph(heading, styles["Heading3"]), table, Spacer(1, 10)]

    items = Table(
        item_rows, colWidths=[62 * mm, 14 * mm, 34 * mm, 18 * mm, 32 * mm]
    )
    items.setStyle(grid)
    items.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("FONTNAME", (0, -2), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    elements += [Paragraph("Items", styles["Heading3"]), items]

    if notes:
        elements += [
            Spacer(1, 10),
            Paragraph("Notes", styles["Heading3"]),
            Paragraph(escape(notes), styles["Normal"]),
        ]

    doc.build(elements)
    return buffer.getvalue()


class LoggingNotificationSender:
    """Records confirmations in the log instead of delivering them."""

    async def send_rental_confirmation(
        self, rental: Rental, customer: Customer, contract_url: str | None
    ) -> bool:
        if not customer.email:
            logger.warning(
                "rental_confirmation_skipped",
                rental_id=str(rental.rental_id),
                reason="customer_has_no_email",
            )
            return False

        logger.info(
            "rental_confirmation_sent",
            rental_id=str(rental.rental_id),
            tenant_id=str(rental.tenant_id),
            recipient=customer.email,
            contract_url=contract_url,
        )
        return True


class PdfContractGenerator:
    """Renders a rental agreement as an A4 PDF."""

    async def generate_contract(
        self,
        rental: Rental,
        customer: Customer,
        product_names: Mapping[UUID, str] | None = None,
    ) -> bytes:
        # Only rendering runs off the event loop
        return await asyncio.to_thread(
            _render_pdf,
            f"Rental agreement {_contract_number(rental)}",
            _customer_rows(customer),
            _period_rows(rental),
            _item_rows(rental, product_names or {}),
            rental.notes,
        )


class LocalFileBlobStore:
    """Writes blobs below a root directory."""

    def __init__(self, root: str | Path, base_url: str = "/files"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _write(self, path: str, data: bytes) -> None:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise ValueError(f"Blob path escapes storage root: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def save(self, path: str, data: bytes) -> str:
        await asyncio.to_thread(self._write, path, data)
        return f"{self.base_url}/{path}"


class InMemoryBlobStore:
    """Keeps blobs in a dict; used by tests."""

    def __init__(self, base_url: str = "memory://"):
        self.base_url = base_url
        self.blobs: dict[str, bytes] = {}

    async def save(self, path: str, data: bytes) -> str:
        self.blobs[path] = data
        return f"{self.base_url}{path}"
