# Overview: Flask API routes for loyalty points and commissions; read-mostly views.

from flask import Blueprint, request, jsonify, g

from ..errors import ValidationError, INVALID_CART
from tillpoint.time_utils import parse_iso_datetime
from ..services import catalog_service, rewards_service
from ..decorators import require_identity, json_errors


rewards_bp = Blueprint("rewards", __name__, url_prefix="/api/rewards")


@rewards_bp.get("/customers/<int:customer_id>/points")
@require_identity
@json_errors("fetch loyalty points")
def customer_points_route(customer_id: int):
    """Balance, current tier and recent loyalty history for a customer."""
    if catalog_service.get_customer(customer_id, g.tenant_id) is None:
        raise ValidationError("Customer not found", code=INVALID_CART, details={"customer_id": customer_id})

    tier = rewards_service.get_customer_tier(customer_id, g.tenant_id)
    history = rewards_service.list_loyalty_transactions(customer_id, limit=request.args.get("limit", 50, type=int))
    return jsonify({
        "customer_id": customer_id,
        "points": rewards_service.get_points(customer_id),
        "tier": tier.to_dict() if tier else None,
        "transactions": [tx.to_dict() for tx in history],
    }), 200


@rewards_bp.get("/employees/<int:employee_id>/commissions")
@require_identity
@json_errors("list commissions")
def employee_commissions_route(employee_id: int):
    """
    Commissions for an employee.

    Query params:
    - paid: true/false filter
    - since/until: ISO-8601 bounds (inclusive)
    """
    if catalog_service.get_employee(employee_id, g.tenant_id) is None:
        raise ValidationError("Employee not found", code=INVALID_CART, details={"employee_id": employee_id})

    paid_raw = request.args.get("paid")
    paid = None
    if paid_raw is not None:
        paid = paid_raw.strip().lower() in {"1", "true", "yes"}

    try:
        since = parse_iso_datetime(request.args.get("since"))
        until = parse_iso_datetime(request.args.get("until"))
    except ValueError as e:
        raise ValidationError(str(e), code=INVALID_CART)

    commissions = rewards_service.list_commissions(employee_id, paid=paid, since=since, until=until)
    return jsonify({
        "employee_id": employee_id,
        "commissions": [c.to_dict() for c in commissions],
    }), 200
