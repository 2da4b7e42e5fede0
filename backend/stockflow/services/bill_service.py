# Overview: PDF bill rendering (reportlab). Pure: structured order in, PDF bytes out.

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from stockflow.time_utils import utcnow


BRAND_COLOR = colors.HexColor("#1D546D")
HEADER_ROW_COLOR = colors.HexColor("#e8e8e8")
ALT_ROW_COLOR = colors.HexColor("#fafafa")
TEXT_COLOR = colors.HexColor("#333333")
DISCOUNT_COLOR = colors.HexColor("#e53e3e")
MUTED_COLOR = colors.HexColor("#666666")

MARGIN = 30
ROW_HEIGHT = 18


class BillRenderError(Exception):
    """Raised when a bill cannot be rendered."""
    pass


@dataclass(frozen=True)
class BillLine:
    product_name: str
    price_cents: int
    quantity: int
    subtotal_cents: int
    amount_cents: int


@dataclass(frozen=True)
class BillData:
    bill_number: str
    customer: str
    customermail: str
    discount_percent: float
    lines: list[BillLine] = field(default_factory=list)
    issued_at: datetime | None = None

    @property
    def subtotal_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines)

    @property
    def total_cents(self) -> int:
        return sum(line.amount_cents for line in self.lines)

    @property
    def discount_cents(self) -> int:
        return self.subtotal_cents - self.total_cents


def bill_data_from_sales(sales: list, discount_percent: float) -> BillData:
    """Build BillData from the SaleRecords of one order."""
    if not sales:
        raise BillRenderError("Cannot build a bill without sale records")
    first = sales[0]
    return BillData(
        bill_number=first.bill_number,
        customer=first.customer,
        customermail=first.customermail,
        discount_percent=float(discount_percent),
        issued_at=first.date,
        lines=[
            BillLine(
                product_name=s.product_name,
                price_cents=s.price_cents,
                quantity=s.quantity,
                subtotal_cents=s.subtotal_cents,
                amount_cents=s.amount_cents,
            )
            for s in sales
        ],
    )


def format_money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}Rs. {cents // 100:,}.{cents % 100:02d}"


def _format_percent(value: float) -> str:
    return f"{value:g}"


def _draw_table_row(c: canvas.Canvas, y: float, product: str, price: str, qty: str, amount: str) -> None:
    c.drawString(MARGIN + 5, y, product[:48])
    c.drawRightString(310, y, price)
    c.drawCentredString(350, y, qty)
    c.drawRightString(560, y, amount)


def _new_page_if_needed(c: canvas.Canvas, y: float) -> float:
    if y > MARGIN + 80:
        return y
    c.showPage()
    c.setFont("Helvetica", 9)
    c.setFillColor(TEXT_COLOR)
    return A4[1] - MARGIN - 20


def render_bill(bill: BillData) -> bytes:
    """
    Render an A4 invoice for one order and return the PDF bytes.

    Totals shown are the sums of the per-line cents, so they match the stored
    sale records exactly.
    """
    if not bill.lines:
        raise BillRenderError("Bill has no lines")

    try:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=A4)
        width, height = A4
        issued = bill.issued_at or utcnow()

        c.setTitle(f"Invoice {bill.bill_number}")

        # Header band
        c.setFillColor(BRAND_COLOR)
        c.rect(0, height - 80, width, 80, stroke=0, fill=1)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 20)
        c.drawString(MARGIN, height - 40, "INVOICE")
        c.setFont("Helvetica", 8)
        c.drawRightString(width - MARGIN, height - 30, f"Invoice #: {bill.bill_number}")
        c.drawRightString(width - MARGIN, height - 43, f"Date: {issued:%Y-%m-%d}")
        c.setFont("Helvetica-Bold", 8)
        c.drawString(MARGIN, height - 64, "BILL TO:")
        c.setFont("Helvetica", 9)
        c.drawString(MARGIN + 45, height - 64, f"{bill.customer.upper()} | {bill.customermail}")

        # Table header
        y = height - 110
        c.setFillColor(HEADER_ROW_COLOR)
        c.rect(MARGIN, y - 5, width - 2 * MARGIN, ROW_HEIGHT, stroke=0, fill=1)
        c.setFillColor(TEXT_COLOR)
        c.setFont("Helvetica-Bold", 8)
        _draw_table_row(c, y, "PRODUCT", "UNIT PRICE (INR)", "QTY", "AMOUNT (INR)")

        # Rows
        c.setFont("Helvetica", 9)
        y -= ROW_HEIGHT + 4
        for index, line in enumerate(bill.lines):
            y = _new_page_if_needed(c, y)
            if index % 2 == 0:
                c.setFillColor(ALT_ROW_COLOR)
                c.rect(MARGIN, y - 5, width - 2 * MARGIN, ROW_HEIGHT, stroke=0, fill=1)
            c.setFillColor(TEXT_COLOR)
            _draw_table_row(
                c, y,
                line.product_name,
                format_money(line.price_cents),
                str(line.quantity),
                format_money(line.amount_cents),
            )
            y -= ROW_HEIGHT

        # Divider
        c.setStrokeColor(colors.HexColor("#cccccc"))
        c.setLineWidth(0.5)
        c.line(MARGIN, y + 8, width - MARGIN, y + 8)

        # Totals
        y = _new_page_if_needed(c, y - 10)
        c.setFillColor(TEXT_COLOR)
        c.setFont("Helvetica", 9)
        c.drawRightString(380, y, "Subtotal:")
        c.drawRightString(560, y, format_money(bill.subtotal_cents))
        y -= 15

        if bill.discount_cents > 0:
            c.setFillColor(DISCOUNT_COLOR)
            c.drawRightString(380, y, f"Discount ({_format_percent(bill.discount_percent)}%):")
            c.drawRightString(560, y, "- " + format_money(bill.discount_cents))
            y -= 15

        c.setFillColor(BRAND_COLOR)
        c.rect(380, y - 6, 185, 22, stroke=0, fill=1)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(390, y, "GRAND TOTAL")
        c.drawRightString(560, y, format_money(bill.total_cents))

        # Footer
        y -= 40
        c.setFillColor(MUTED_COLOR)
        c.setFont("Helvetica", 9)
        c.drawCentredString(width / 2, y, "Thank you for your business!")
        c.setFont("Helvetica", 7)
        c.drawCentredString(width / 2, y - 12, "For queries, please contact support.")
        c.setFillColor(BRAND_COLOR)
        c.setFont("Helvetica-Bold", 8)
        c.drawCentredString(width / 2, y - 28, "Powered by StockFlow")

        c.showPage()
        c.save()
    except (ValueError, TypeError, AttributeError) as e:
        raise BillRenderError(f"Failed to render bill {bill.bill_number}: {e}") from e

    return buf.getvalue()
