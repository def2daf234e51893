# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/tillpoint/routes/sales.py
"""Sales API routes: totals, checkout, suspend/resume and void"""

from flask import Blueprint, request, jsonify, g

from ..services import cart_service, catalog_service, sales_service, suspended_service
from ..decorators import require_identity, require_employee, json_errors


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _cart_from_request():
    data = request.get_json(silent=True) or {}
    return cart_service.cart_from_dict(data.get("cart", data))


def _tenant_tax_rate():
    return sales_service.tax_rate_for(catalog_service.get_tenant(g.tenant_id))


@sales_bp.post("/totals")
@require_identity
@json_errors("compute cart totals")
def cart_totals_route():
    """Subtotal, tax, total and balance for a cart. Nothing is written."""
    cart = _cart_from_request()
    catalog_service.refresh_customer(cart, g.tenant_id)
    return jsonify({"cart": cart_service.cart_to_dict(cart, _tenant_tax_rate())}), 200


@sales_bp.post("/checkout")
@require_employee
@json_errors("complete sale")
def checkout_route():
    """
    Commit a cart as a completed sale.

    Returns 201 with the sale, its lines and payments. Loyalty/commission
    failures come back as warnings; the sale still stands.
    """
    cart = _cart_from_request()
    result = sales_service.commit_sale(cart, g.tenant_id, g.employee_id)
    return jsonify(result.to_dict()), 201


@sales_bp.post("/suspend")
@require_employee
@json_errors("suspend sale")
def suspend_route():
    cart = _cart_from_request()
    sale_id = sales_service.suspend_sale(cart, g.tenant_id, g.employee_id)
    return jsonify({"sale_id": sale_id}), 201


@sales_bp.get("/suspended")
@require_identity
@json_errors("list suspended sales")
def list_suspended_route():
    sales = suspended_service.list_suspended(g.tenant_id)
    return jsonify({"sales": [sale.to_dict(include_lines=True) for sale in sales]}), 200


@sales_bp.post("/suspended/<int:sale_id>/resume")
@require_identity
@json_errors("resume suspended sale")
def resume_route(sale_id: int):
    """Rebuild the cart of a suspended sale. Only one caller can win."""
    cart = sales_service.resume_sale(sale_id, g.tenant_id)
    return jsonify({"cart": cart_service.cart_to_dict(cart, _tenant_tax_rate())}), 200


@sales_bp.delete("/suspended/<int:sale_id>")
@require_identity
@json_errors("discard suspended sale")
def discard_route(sale_id: int):
    sale = suspended_service.discard(sale_id, g.tenant_id)
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.get("/")
@require_identity
@json_errors("list sales")
def list_sales_route():
    status = request.args.get("status")
    limit = request.args.get("limit", 100, type=int)
    sales = sales_service.list_sales(g.tenant_id, status=status, limit=limit)
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_identity
@json_errors("fetch sale")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id, g.tenant_id)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.post("/<int:sale_id>/void")
@require_employee
@json_errors("void sale")
def void_sale_route(sale_id: int):
    """Cancel a completed sale and return its stock."""
    data = request.get_json(silent=True) or {}
    sale = sales_service.void_sale(sale_id, g.employee_id, reason=data.get("reason"), tenant_id=g.tenant_id)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200
