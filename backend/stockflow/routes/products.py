# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/stockflow/routes/products.py
"""
Product management routes.

OWNERSHIP: All product operations are scoped to the authenticated owner
(g.current_user). Another owner's product id answers 404, never 403.
"""
from flask import Blueprint, request, g

from ..services.products_service import (
    ProductError,
    create_product,
    list_products as list_products_service,
    require_owned_product,
    update_product,
)
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "description", "image_url",
        "inventory", "price_cents", "cp_cents", "low_stock_threshold",
    },
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List the owner's products with optional pagination.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    return list_products_service(g.current_user.id, page=page, per_page=per_page)


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = require_owned_product(product_id, g.current_user.id)
    except ProductError:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}, 200


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a product owned by the caller."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    created = create_product(patch=patch, owner_id=g.current_user.id)
    return {"product": created.to_dict()}, 201


@products_bp.route("/<int:product_id>", methods=["PUT", "PATCH"])
@require_auth
def update_product_route(product_id: int):
    """Partially update an owned product."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = update_product(product_id=product_id, owner_id=g.current_user.id, patch=patch)
    except ProductError:
        return {"error": "Product not found"}, 404

    return {"product": updated.to_dict()}, 200
