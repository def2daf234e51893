# Overview: Service-layer operations for inventory; quantity by (item, location) plus audit trail.

# backend/tillpoint/services/inventory_service.py

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryRecord, InventoryTransaction
from ..errors import (
    ValidationError,
    ConflictError,
    INSUFFICIENT_STOCK,
    INVALID_CART,
)
from tillpoint.time_utils import utcnow
from .catalog_service import get_item, get_location
from .concurrency import atomic, begin_write, run_with_retry
"""
Inventory Invariants (authoritative)

Model:
- InventoryRecord holds the current quantity for one (item, location).
- InventoryTransaction is the append-only audit trail; one row per mutation,
  carrying exactly the signed delta applied to the record.

Concurrency:
- Quantities change only through a single conditional UPDATE:
    quantity = quantity + delta WHERE quantity + delta >= 0
  The database serializes concurrent updates of the same row, so there is no
  read-modify-write window and no lost update.
- A decrement that matches zero rows is a stock shortfall (InsufficientStock).
- The first increment for a new (item, location) inserts the row; a racing
  insert loses on the unique constraint and falls back to the UPDATE.

Business invariants:
- On-hand quantity is never negative, on every path (sale, void, transfer,
  receiving, manual adjustment). Backorders are not supported.
- Audit rows are never updated or deleted. Reversals are new rows.

Units of work:
- apply_adjustment() only flushes; callers composing a larger atomic unit
  (checkout, void, transfer) own the commit.
- adjust()/transfer()/receive() are standalone units with retry.
"""


def get_stock_level(item_id: int, location_id: int, tenant_id: int | None = None) -> int:
    """
    Current quantity; 0 when the (item, location) has never been stocked.

    With a tenant_id, the item and location must belong to that tenant.
    """
    if tenant_id is not None:
        _require_refs(tenant_id, item_id, location_id)
    qty = (
        db.session.query(InventoryRecord.quantity)
        .filter_by(item_id=item_id, location_id=location_id)
        .scalar()
    )
    return int(qty or 0)


def apply_adjustment(
    *,
    tenant_id: int,
    item_id: int,
    location_id: int,
    delta: int,
    reason: str,
    actor_id: int | None = None,
    sale_id: int | None = None,
    occurred_at: datetime | None = None,
) -> int:
    """
    Core ADJUST logic without retry, validation of references, or commit.

    Returns the new quantity. Raises ConflictError(InsufficientStock) and
    leaves the record untouched when the delta would go below zero.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer", code=INVALID_CART)
    if delta == 0:
        raise ValidationError("delta must be non-zero", code=INVALID_CART)
    if not reason:
        raise ValidationError("reason required", code=INVALID_CART)

    stmt = (
        update(InventoryRecord)
        .where(
            InventoryRecord.item_id == item_id,
            InventoryRecord.location_id == location_id,
            InventoryRecord.quantity + delta >= 0,
        )
        .values(
            quantity=InventoryRecord.quantity + delta,
            version_id=InventoryRecord.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if not result.rowcount:
        if delta < 0:
            raise ConflictError(
                "Insufficient stock",
                code=INSUFFICIENT_STOCK,
                details={
                    "item_id": item_id,
                    "location_id": location_id,
                    "requested": -delta,
                    "available": get_stock_level(item_id, location_id),
                },
            )
        _insert_record(item_id, location_id, delta, stmt)

    tx = InventoryTransaction(
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        actor_id=actor_id,
        quantity_delta=delta,
        reason=reason,
        sale_id=sale_id,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(tx)
    db.session.flush()

    return get_stock_level(item_id, location_id)


def _insert_record(item_id: int, location_id: int, quantity: int, retry_stmt) -> None:
    record = InventoryRecord(item_id=item_id, location_id=location_id, quantity=quantity)
    try:
        with db.session.begin_nested():
            db.session.add(record)
    except IntegrityError:
        # Lost the insert race; the row exists now.
        result = db.session.execute(retry_stmt)
        if not result.rowcount:
            raise


def _require_refs(tenant_id: int, item_id: int, *location_ids: int) -> None:
    if get_item(item_id, tenant_id) is None:
        raise ValidationError("Item not found", code=INVALID_CART, details={"item_id": item_id})
    for location_id in location_ids:
        if get_location(location_id, tenant_id) is None:
            raise ValidationError(
                "Stock location not found",
                code=INVALID_CART,
                details={"location_id": location_id},
            )


def adjust(
    *,
    tenant_id: int,
    item_id: int,
    location_id: int,
    delta: int,
    reason: str,
    actor_id: int | None = None,
) -> int:
    """Apply a signed delta as its own unit of work; returns the new quantity."""
    def _op():
        begin_write()
        with atomic():
            _require_refs(tenant_id, item_id, location_id)
            return apply_adjustment(
                tenant_id=tenant_id,
                item_id=item_id,
                location_id=location_id,
                delta=delta,
                reason=reason,
                actor_id=actor_id,
            )

    return run_with_retry(_op)


def receive(
    *,
    tenant_id: int,
    item_id: int,
    location_id: int,
    quantity: int,
    reason: str = "receiving",
    actor_id: int | None = None,
) -> int:
    """Stock arriving from a supplier. Quantity must be positive."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", code=INVALID_CART)
    return adjust(
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        delta=quantity,
        reason=reason,
        actor_id=actor_id,
    )


def transfer(
    *,
    tenant_id: int,
    item_id: int,
    from_location_id: int,
    to_location_id: int,
    quantity: int,
    reason: str = "",
    actor_id: int | None = None,
) -> tuple[int, int]:
    """
    Move stock between locations atomically.

    Returns (source_quantity, destination_quantity). If the source is short
    neither side is applied.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", code=INVALID_CART)
    if from_location_id == to_location_id:
        raise ValidationError("Source and destination locations must differ", code=INVALID_CART)

    suffix = f": {reason}" if reason else ""

    def _op():
        begin_write()
        with atomic():
            _require_refs(tenant_id, item_id, from_location_id, to_location_id)
            source_qty = apply_adjustment(
                tenant_id=tenant_id,
                item_id=item_id,
                location_id=from_location_id,
                delta=-quantity,
                reason=f"Transfer to location {to_location_id}{suffix}",
                actor_id=actor_id,
            )
            dest_qty = apply_adjustment(
                tenant_id=tenant_id,
                item_id=item_id,
                location_id=to_location_id,
                delta=quantity,
                reason=f"Transfer from location {from_location_id}{suffix}",
                actor_id=actor_id,
            )
            return source_qty, dest_qty

    return run_with_retry(_op)


def list_transactions(
    *,
    tenant_id: int,
    item_id: int,
    location_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 200,
) -> list[InventoryTransaction]:
    """Audit trail for an item, newest first. Date bounds are inclusive."""
    q = InventoryTransaction.query.filter_by(tenant_id=tenant_id, item_id=item_id)
    if location_id is not None:
        q = q.filter(InventoryTransaction.location_id == location_id)
    if since is not None:
        q = q.filter(InventoryTransaction.occurred_at >= since)
    if until is not None:
        q = q.filter(InventoryTransaction.occurred_at <= until)

    return q.order_by(
        InventoryTransaction.occurred_at.desc(),
        InventoryTransaction.id.desc(),
    ).limit(limit).all()
