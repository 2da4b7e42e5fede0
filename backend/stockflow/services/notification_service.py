# Overview: Low-stock and stock-out forecast alerts raised after sales.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Notification, Product
from ..models.communications import KIND_LOW_STOCK, KIND_FORECAST_WARNING
from stockflow.time_utils import utcnow


class NotificationError(Exception):
    """Raised for notification lookups that fail (404-level)."""
    pass


def _has_unread(owner_id: int, product_id: int, kind: str) -> bool:
    return db.session.query(Notification.id).filter_by(
        owner_id=owner_id,
        product_id=product_id,
        kind=kind,
        is_read=False,
    ).first() is not None


def _raise_alert(owner_id: int, product: Product, kind: str, title: str, message: str) -> Notification | None:
    if _has_unread(owner_id, product.id, kind):
        return None
    alert = Notification(
        owner_id=owner_id,
        product_id=product.id,
        kind=kind,
        title=title,
        message=message,
    )
    db.session.add(alert)
    db.session.flush()
    return alert


def low_stock_threshold(product: Product) -> int:
    if product.low_stock_threshold is not None:
        return product.low_stock_threshold
    return current_app.config["LOW_STOCK_THRESHOLD"]


def days_until_stockout(product: Product) -> float | None:
    """inventory / daily_sales_avg, or None when there is no sales velocity."""
    if not product.daily_sales_avg or product.daily_sales_avg <= 0:
        return None
    return product.inventory / product.daily_sales_avg


def check_low_stock(product: Product, owner_id: int) -> Notification | None:
    threshold = low_stock_threshold(product)
    if product.inventory > threshold:
        return None
    if product.inventory == 0:
        title = f"{product.name} is out of stock"
    else:
        title = f"{product.name} is running low"
    return _raise_alert(
        owner_id,
        product,
        KIND_LOW_STOCK,
        title,
        f"Only {product.inventory} unit(s) of \"{product.name}\" left (threshold {threshold}).",
    )


def check_forecast(product: Product, owner_id: int) -> Notification | None:
    days = days_until_stockout(product)
    if days is None:
        return None
    warning_days = current_app.config["FORECAST_WARNING_DAYS"]
    if days >= warning_days:
        return None
    return _raise_alert(
        owner_id,
        product,
        KIND_FORECAST_WARNING,
        f"{product.name} may sell out soon",
        f"At {product.daily_sales_avg:.2f} units/day, \"{product.name}\" will run out in about "
        f"{days:.1f} day(s).",
    )


def list_notifications(owner_id: int, unread_only: bool = False) -> list[Notification]:
    query = db.session.query(Notification).filter_by(owner_id=owner_id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_read(notification_id: int, owner_id: int) -> Notification:
    alert = db.session.query(Notification).filter_by(id=notification_id, owner_id=owner_id).first()
    if not alert:
        raise NotificationError("Notification not found")
    if not alert.is_read:
        alert.is_read = True
        alert.read_at = utcnow()
        db.session.commit()
    return alert
