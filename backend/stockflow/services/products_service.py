# backend/stockflow/services/products_service.py
"""
Products Service

OWNERSHIP: Every operation is scoped to the calling owner. A product id that
exists but belongs to another owner is reported exactly like a missing one,
and the attempt is logged.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product
from .audit_service import append_audit_event

PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "description", "image_url",
    "inventory", "price_cents", "cp_cents", "low_stock_threshold",
}


class ProductError(Exception):
    """Raised when a product cannot be found for the owner (404-level)."""
    pass


def get_owned_product(product_id: int, owner_id: int) -> Product | None:
    """
    Resolve a product scoped to (product_id, owner_id).

    Returns None for missing and foreign products alike.
    """
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        return None
    if product.owner_id != owner_id:
        current_app.logger.warning(
            "Cross-owner product access denied: user %s requested product %s owned by %s",
            owner_id, product_id, product.owner_id,
        )
        return None
    return product


def require_owned_product(product_id: int, owner_id: int) -> Product:
    product = get_owned_product(product_id, owner_id)
    if product is None:
        raise ProductError("Product not found")
    return product


def list_products(
    owner_id: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Owner-scoped product listing with optional pagination.

    Returns dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = (
        db.session.query(Product)
        .filter(Product.owner_id == owner_id)
        .order_by(Product.name.asc(), Product.id.asc())
    )

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(*, patch: dict, owner_id: int) -> Product:
    """Create a product from a validated patch dict."""
    product = Product(owner_id=owner_id)
    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(product, k, v)

    db.session.add(product)
    db.session.flush()
    append_audit_event(
        actor_user_id=owner_id,
        action="CREATE_PRODUCT",
        entity_type="product",
        entity_id=product.id,
        after=product.to_dict(),
    )
    db.session.commit()
    return product


def update_product(*, product_id: int, owner_id: int, patch: dict) -> Product:
    """Apply a validated patch to an owned product."""
    product = require_owned_product(product_id, owner_id)
    before = product.to_dict()

    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(product, k, v)

    db.session.flush()
    append_audit_event(
        actor_user_id=owner_id,
        action="UPDATE_PRODUCT",
        entity_type="product",
        entity_id=product.id,
        before=before,
        after=product.to_dict(),
    )
    db.session.commit()
    return product
