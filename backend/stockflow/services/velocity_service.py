# Overview: Sales velocity (daily_sales_avg) computation, per product or in batch.

"""
Sales Velocity

daily_sales_avg = total units sold / max(1, ceil(days since first sale))

Two modes (SALES_VELOCITY_MODE):
- "deferred" (default): the sale pipeline leaves the field alone and
  recalculate_all() runs from cron via `flask sales recalc-velocity`.
  Values are stale by at most the batch interval.
- "sync": the pipeline calls recalculate_product() for each product it
  touched, inside the sale transaction (two aggregate reads per product).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, update

from ..extensions import db
from ..models import Product, SaleRecord
from stockflow.time_utils import utcnow, elapsed_days


MODE_DEFERRED = "deferred"
MODE_SYNC = "sync"


def compute_daily_sales_avg(total_quantity: int, first_sale_at: datetime | None, now: datetime | None = None) -> float:
    if not total_quantity or first_sale_at is None:
        return 0.0
    return total_quantity / elapsed_days(first_sale_at, now)


def recalculate_product(product_id: int, owner_id: int, now: datetime | None = None) -> float:
    """Recompute one product's average from its sale records (flush, no commit)."""
    now = now or utcnow()
    total = (
        db.session.query(func.coalesce(func.sum(SaleRecord.quantity), 0))
        .filter(SaleRecord.product_id == product_id, SaleRecord.owner_id == owner_id)
        .scalar()
    )
    first_sale_at = (
        db.session.query(func.min(SaleRecord.date))
        .filter(SaleRecord.product_id == product_id, SaleRecord.owner_id == owner_id)
        .scalar()
    )
    avg = compute_daily_sales_avg(int(total or 0), first_sale_at, now)
    db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.owner_id == owner_id)
        .values(daily_sales_avg=avg, sales_avg_updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return avg


def recalculate_all(owner_id: int | None = None, now: datetime | None = None) -> int:
    """
    Recompute daily_sales_avg for every product (optionally one owner's).

    One grouped aggregate over sales, then one UPDATE per product.
    Products without sales are reset to 0. Commits. Returns products updated.
    """
    now = now or utcnow()

    stats_query = db.session.query(
        SaleRecord.product_id,
        func.sum(SaleRecord.quantity),
        func.min(SaleRecord.date),
    ).group_by(SaleRecord.product_id)
    if owner_id is not None:
        stats_query = stats_query.filter(SaleRecord.owner_id == owner_id)
    stats = {pid: (int(total or 0), first) for pid, total, first in stats_query.all()}

    products_query = db.session.query(Product.id)
    if owner_id is not None:
        products_query = products_query.filter(Product.owner_id == owner_id)
    product_ids = [pid for (pid,) in products_query.all()]

    for pid in product_ids:
        total, first_sale_at = stats.get(pid, (0, None))
        db.session.execute(
            update(Product)
            .where(Product.id == pid)
            .values(
                daily_sales_avg=compute_daily_sales_avg(total, first_sale_at, now),
                sales_avg_updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

    db.session.commit()
    return len(product_ids)
