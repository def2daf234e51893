# Overview: Flask API routes for stock levels, adjustments and transfers.

# backend/tillpoint/routes/inventory.py
"""
Inventory routes.

- adjust: signed delta for one (item, location); never below zero
- transfer: atomic move between two locations
- stock level and audit trail lookups

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- since/until filtering is inclusive.
"""
from flask import Blueprint, request, jsonify, g

from ..errors import ValidationError, INVALID_CART
from tillpoint.time_utils import parse_iso_datetime
from ..services import inventory_service
from ..decorators import require_identity, json_errors


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _required_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer", code=INVALID_CART, details={"field": key})
    return value


def _parse_time(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError as e:
        raise ValidationError(str(e), code=INVALID_CART, details={"field": name})


@inventory_bp.post("/adjust")
@require_identity
@json_errors("adjust inventory")
def adjust_inventory_route():
    """
    Apply a signed quantity change (receiving, shrink, corrections).

    Body: {"item_id", "location_id", "delta", "reason"}
    """
    payload = request.get_json(silent=True) or {}
    item_id = _required_int(payload, "item_id")
    location_id = _required_int(payload, "location_id")
    delta = _required_int(payload, "delta")

    quantity = inventory_service.adjust(
        tenant_id=g.tenant_id,
        item_id=item_id,
        location_id=location_id,
        delta=delta,
        reason=(payload.get("reason") or "").strip() or "Manual adjustment",
        actor_id=g.employee_id,
    )
    return jsonify({"item_id": item_id, "location_id": location_id, "quantity": quantity}), 200


@inventory_bp.post("/transfer")
@require_identity
@json_errors("transfer inventory")
def transfer_inventory_route():
    """Body: {"item_id", "from_location_id", "to_location_id", "quantity", "reason"}"""
    payload = request.get_json(silent=True) or {}
    item_id = _required_int(payload, "item_id")
    from_location_id = _required_int(payload, "from_location_id")
    to_location_id = _required_int(payload, "to_location_id")

    source_qty, dest_qty = inventory_service.transfer(
        tenant_id=g.tenant_id,
        item_id=item_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        quantity=_required_int(payload, "quantity"),
        reason=payload.get("reason") or "",
        actor_id=g.employee_id,
    )
    return jsonify({
        "item_id": item_id,
        "from": {"location_id": from_location_id, "quantity": source_qty},
        "to": {"location_id": to_location_id, "quantity": dest_qty},
    }), 200


@inventory_bp.get("/<int:item_id>/<int:location_id>")
@require_identity
@json_errors("fetch stock level")
def stock_level_route(item_id: int, location_id: int):
    quantity = inventory_service.get_stock_level(item_id, location_id, tenant_id=g.tenant_id)
    return jsonify({"item_id": item_id, "location_id": location_id, "quantity": quantity}), 200


@inventory_bp.get("/<int:item_id>/transactions")
@require_identity
@json_errors("list inventory transactions")
def list_transactions_route(item_id: int):
    location_id = request.args.get("location_id", type=int)
    limit = request.args.get("limit", 200, type=int)

    transactions = inventory_service.list_transactions(
        tenant_id=g.tenant_id,
        item_id=item_id,
        location_id=location_id,
        since=_parse_time("since"),
        until=_parse_time("until"),
        limit=limit,
    )
    return jsonify({"transactions": [tx.to_dict() for tx in transactions]}), 200
