"""
Sales Service - multi-line sale creation and sale/bill queries

PIPELINE (create_sale):
1. Validate (no writes): discount range, customer fields, every line's
   product ownership, quantity and stock. All line errors are collected; any
   error rejects the whole order.
2. Commit (one DB transaction): per line a conditional decrement
   (inventory >= qty), one SaleRecord per line, optional synchronous velocity
   update, owner sale counter. A decrement that loses a race rolls the whole
   order back and is reported like a validation error.
3. Post-commit, best effort: stock alerts, audit entries, bill
   render/upload/email (see billing_service). Only a render failure surfaces.

There is no idempotency key: a resubmitted order is a new order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product, SaleRecord, User
from ..models.sales import BILL_PENDING
from stockflow.time_utils import utcnow
from ..validation import ValidationError, coerce_int
from .audit_service import append_audit_event
from .concurrency import run_with_retry
from .document_service import next_document_number
from .products_service import get_owned_product
from . import billing_service
from . import notification_service
from . import velocity_service


HUNDRED = Decimal(100)
# Single address, no whitespace or header separators
_EMAIL_RE = re.compile(r"^[^\s@,;<>]+@[^\s@,;<>]+\.[^\s@,;<>]+$")


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleValidationError(SaleError):
    """The order was rejected as a whole; nothing was written."""
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors), details={"errors": list(errors)})
        self.errors = list(errors)


class SaleNotFoundError(SaleError):
    """Sale missing or owned by someone else."""
    pass


@dataclass(frozen=True)
class ValidatedLine:
    product_id: int
    product_name: str
    quantity: int


def parse_discount(value) -> Decimal:
    """Discount percentage in [0, 100]; None means no discount."""
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        raise SaleValidationError(["Invalid discount percentage"])
    try:
        discount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise SaleValidationError(["Invalid discount percentage"])
    if not discount.is_finite() or discount < 0 or discount > HUNDRED:
        raise SaleValidationError(["Invalid discount percentage"])
    return discount


def compute_line_amounts(price_cents: int, quantity: int, discount: Decimal) -> tuple[int, int]:
    """
    Returns (subtotal_cents, amount_cents) for one line.

    amount = subtotal * (1 - discount/100), rounded half-up to the cent.
    """
    subtotal = price_cents * quantity
    amount = (Decimal(subtotal) * (HUNDRED - discount) / HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return subtotal, int(amount)


def _line_field(item: dict, *names: str):
    for name in names:
        if name in item:
            return item[name]
    return None


def _validate_lines(owner_id: int, products) -> list[ValidatedLine]:
    if not isinstance(products, list) or not products:
        raise SaleValidationError(["At least one product is required"])

    errors: list[str] = []
    validated: list[ValidatedLine] = []

    for item in products:
        if not isinstance(item, dict):
            errors.append("Invalid product line")
            continue

        raw_id = _line_field(item, "productId", "product_id")
        raw_qty = _line_field(item, "quantity")

        try:
            product_id = coerce_int("productId", raw_id)
        except ValidationError:
            errors.append(f"Product {raw_id} not found or unauthorized")
            continue

        product = get_owned_product(product_id, owner_id)
        if not product:
            errors.append(f"Product {product_id} not found or unauthorized")
            continue

        try:
            quantity = coerce_int("quantity", raw_qty)
        except ValidationError:
            quantity = 0
        if quantity <= 0:
            errors.append(f"Invalid quantity for \"{product.name}\": {raw_qty}")
            continue

        if product.inventory < quantity:
            errors.append(
                f"Insufficient inventory for \"{product.name}\". "
                f"Available: {product.inventory}, Requested: {quantity}"
            )
            continue

        validated.append(ValidatedLine(product_id=product.id, product_name=product.name, quantity=quantity))

    if errors:
        raise SaleValidationError(errors)

    return validated


def _commit_order(
    *,
    owner_id: int,
    customer: str,
    customermail: str,
    discount: Decimal,
    lines: list[ValidatedLine],
) -> list[int]:
    """
    Write the order in one transaction and return the new SaleRecord ids.

    Raises SaleValidationError (after rollback) if any conditional decrement
    found less stock than requested.
    """
    def _op() -> list[int]:
        now = utcnow()
        bill_number = next_document_number(owner_id=owner_id, document_type="BILL", prefix="BILL")

        shortfalls: list[str] = []
        records: list[SaleRecord] = []

        for line in lines:
            result = db.session.execute(
                update(Product)
                .where(
                    Product.id == line.product_id,
                    Product.owner_id == owner_id,
                    Product.inventory >= line.quantity,
                )
                .values(inventory=Product.inventory - line.quantity, last_sold_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                available = (
                    db.session.query(Product.inventory)
                    .filter_by(id=line.product_id, owner_id=owner_id)
                    .scalar()
                )
                shortfalls.append(
                    f"Insufficient inventory for \"{line.product_name}\". "
                    f"Available: {available or 0}, Requested: {line.quantity}"
                )
                continue

            product = db.session.get(Product, line.product_id)
            subtotal, amount = compute_line_amounts(product.price_cents, line.quantity, discount)
            records.append(SaleRecord(
                owner_id=owner_id,
                bill_number=bill_number,
                customer=customer,
                customermail=customermail,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                price_cents=product.price_cents,
                cp_cents=product.cp_cents or 0,
                subtotal_cents=subtotal,
                discount_percent=discount,
                amount_cents=amount,
                date=now,
                bill_status=BILL_PENDING,
            ))

        if shortfalls:
            db.session.rollback()
            raise SaleValidationError(shortfalls)

        db.session.add_all(records)
        db.session.flush()

        if current_app.config["SALES_VELOCITY_MODE"] == velocity_service.MODE_SYNC:
            for product_id in sorted({r.product_id for r in records}):
                velocity_service.recalculate_product(product_id, owner_id, now)

        db.session.execute(
            update(User)
            .where(User.id == owner_id)
            .values(total_sales_created=User.total_sales_created + len(records))
            .execution_options(synchronize_session=False)
        )

        db.session.commit()
        return [r.id for r in records]

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def _run_stock_alerts(owner_id: int, product_ids: list[int]) -> None:
    for product_id in product_ids:
        try:
            product = db.session.get(Product, product_id)
            notification_service.check_low_stock(product, owner_id)
            notification_service.check_forecast(product, owner_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Stock alert check failed for product %s", product_id)


def _record_audit(owner_id: int, sales: list[SaleRecord]) -> None:
    try:
        for sale in sales:
            append_audit_event(
                actor_user_id=owner_id,
                action="CREATE_SALE",
                entity_type="sale",
                entity_id=sale.id,
                before=None,
                after=sale.to_dict(),
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed for sales %s", [s.id for s in sales])


def get_sales_by_ids(sale_ids: list[int]) -> list[SaleRecord]:
    return (
        db.session.query(SaleRecord)
        .filter(SaleRecord.id.in_(sale_ids))
        .order_by(SaleRecord.id.asc())
        .all()
    )


def create_sale(
    *,
    owner_id: int,
    customer: str | None,
    customermail: str | None,
    products,
    discount=0,
) -> list[SaleRecord]:
    """
    Create one SaleRecord per order line, or nothing at all.

    Raises SaleValidationError (400), BillRenderError (500, sales already
    committed and marked FAILED), or any unexpected error (500).
    """
    customer = (customer or "").strip()
    customermail = (customermail or "").strip()
    missing = [name for name, value in (("customer", customer), ("customermail", customermail)) if not value]
    if missing:
        raise SaleValidationError([f"{name} is required" for name in missing])
    if not _EMAIL_RE.match(customermail):
        raise SaleValidationError(["Invalid customermail"])

    discount_pct = parse_discount(discount)

    lines = _validate_lines(owner_id, products)

    sale_ids = _commit_order(
        owner_id=owner_id,
        customer=customer,
        customermail=customermail,
        discount=discount_pct,
        lines=lines,
    )
    sales = get_sales_by_ids(sale_ids)

    current_app.logger.info(
        "Sale %s created by owner %s: %d line(s)", sales[0].bill_number, owner_id, len(sales)
    )

    _run_stock_alerts(owner_id, sorted({s.product_id for s in sales}))
    _record_audit(owner_id, sales)

    billing_service.issue_bill(sales, discount_pct)

    return get_sales_by_ids(sale_ids)


def list_sales(owner_id: int) -> list[SaleRecord]:
    """Owner's sale records, newest first."""
    return (
        db.session.query(SaleRecord)
        .filter_by(owner_id=owner_id)
        .order_by(SaleRecord.date.desc(), SaleRecord.id.desc())
        .all()
    )


def get_sale(sale_id: int, owner_id: int) -> SaleRecord:
    sale = db.session.query(SaleRecord).filter_by(id=sale_id).first()
    if sale is None:
        raise SaleNotFoundError("Sale not found or unauthorized")
    if sale.owner_id != owner_id:
        current_app.logger.warning(
            "Cross-owner sale access denied: user %s requested sale %s owned by %s",
            owner_id, sale_id, sale.owner_id,
        )
        raise SaleNotFoundError("Sale not found or unauthorized")
    return sale


def get_bill_url(sale_id: int, owner_id: int) -> str:
    """Stored bill URL for an owned sale; SaleNotFoundError if none."""
    sale = get_sale(sale_id, owner_id)
    if not sale.pdf_url:
        raise SaleNotFoundError("Bill not found")
    return sale.pdf_url
