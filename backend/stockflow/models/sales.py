from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


BILL_PENDING = "PENDING"
BILL_GENERATED = "GENERATED"
BILL_FAILED = "FAILED"
BILL_STATUSES = {BILL_PENDING, BILL_GENERATED, BILL_FAILED}


class SaleRecord(db.Model):
    """
    One sold line of an order (append-only).

    Customer, product, quantity and money fields are a snapshot taken at sale
    time and never change. Only bill_status and pdf_url are written after
    creation, and bill_status only moves PENDING -> GENERATED | FAILED.

    All records of one order share bill_number and the same bill document.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_owner_date", "owner_id", "date"),
        db.Index("ix_sales_owner_product", "owner_id", "product_id"),
        db.Index("ix_sales_bill_number", "bill_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    bill_number = db.Column(db.String(64), nullable=False)

    customer = db.Column(db.String(255), nullable=False)
    customermail = db.Column(db.String(255), nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    cp_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    amount_cents = db.Column(db.Integer, nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False)

    bill_status = db.Column(db.String(16), nullable=False, default=BILL_PENDING, index=True)
    pdf_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "bill_number": self.bill_number,
            "customer": self.customer,
            "customermail": self.customermail,
            "product": {
                "product_id": self.product_id,
                "product_name": self.product_name,
            },
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cp_cents": self.cp_cents,
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": float(self.discount_percent) if self.discount_percent is not None else 0.0,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "bill_status": self.bill_status,
            "pdf_url": self.pdf_url,
        }


class DocumentSequence(db.Model):
    """
    Atomic per-owner document sequences (bill numbers).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "document_type", name="uq_doc_sequences_owner_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
