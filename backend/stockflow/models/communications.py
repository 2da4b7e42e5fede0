from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


KIND_LOW_STOCK = "LOW_STOCK"
KIND_FORECAST_WARNING = "FORECAST_WARNING"


class Notification(db.Model):
    """
    Stock alert raised for an owner after a sale.

    At most one unread alert per (owner, product, kind) is kept; a new check
    while one is unread is a no-op.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_owner_read", "owner_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    kind = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "product_id": self.product_id,
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "is_read": self.is_read,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }
