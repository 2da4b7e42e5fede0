# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/stockflow/routes/sales.py
"""Sales API routes (owner-scoped)"""

from flask import Blueprint, request, jsonify, g, redirect, current_app

from ..services import sales_service
from ..services.bill_service import BillRenderError
from ..services.sales_service import SaleNotFoundError, SaleValidationError
from ..services.storage_service import get_download_url
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_payload(sale) -> dict:
    data = sale.to_dict()
    data["download_url"] = get_download_url(sale.pdf_url)
    return data


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create a multi-line sale for the authenticated owner.

    Body: {customer, customermail, products: [{productId, quantity}], discount}

    Returns 200 with one record per line, 400 with every validation failure
    joined by "; ", or 500.
    """
    try:
        data = request.get_json(silent=True) or {}

        sales = sales_service.create_sale(
            owner_id=g.current_user.id,
            customer=data.get("customer"),
            customermail=data.get("customermail"),
            products=data.get("products"),
            discount=data.get("discount", 0),
        )

        return jsonify({
            "sales": [_sale_payload(s) for s in sales],
            "bill_number": sales[0].bill_number,
            "message": "Sale completed successfully",
        }), 200

    except SaleValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except BillRenderError:
        current_app.logger.exception("Bill rendering failed")
        return jsonify({"error": "Failed to generate bill"}), 500
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Owner's sale records, newest first, each with a download_url."""
    try:
        sales = sales_service.list_sales(g.current_user.id)
        return jsonify({"sales": [_sale_payload(s) for s in sales], "count": len(sales)}), 200
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, g.current_user.id)
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": _sale_payload(sale)}), 200


@sales_bp.get("/<int:sale_id>/bill")
@require_auth
def get_bill_route(sale_id: int):
    """Redirect to the stored bill document."""
    try:
        url = sales_service.get_bill_url(sale_id, g.current_user.id)
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get bill for sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
    return redirect(url, code=302)
