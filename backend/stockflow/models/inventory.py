from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with quantity on hand.

    OWNERSHIP: Every product belongs to exactly one user (owner_id).
    Lookups from request input are always (id, owner_id) scoped.

    INVARIANTS:
    - inventory >= 0 (sales deduct through a conditional UPDATE)
    - prices are stored in cents
    - daily_sales_avg is derived; see services/velocity_service.py
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("inventory >= 0", name="ck_products_inventory_non_negative"),
        db.Index("ix_products_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    inventory = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cp_cents = db.Column(db.Integer, nullable=False, default=0)

    # Per-product override of LOW_STOCK_THRESHOLD
    low_stock_threshold = db.Column(db.Integer, nullable=True)

    last_sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    daily_sales_avg = db.Column(db.Float, nullable=False, default=0.0)
    sales_avg_updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} owner_id={self.owner_id} inventory={self.inventory}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "sku": self.sku,
            "description": self.description,
            "image_url": self.image_url,
            "inventory": self.inventory,
            "price_cents": self.price_cents,
            "cp_cents": self.cp_cents,
            "low_stock_threshold": self.low_stock_threshold,
            "last_sold_at": to_utc_z(self.last_sold_at),
            "daily_sales_avg": self.daily_sales_avg,
            "sales_avg_updated_at": to_utc_z(self.sales_avg_updated_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
