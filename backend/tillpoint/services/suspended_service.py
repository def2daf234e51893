# Overview: Service-layer operations for suspended sales; list, fetch, claim and discard.

"""
Suspended Sale Store - parked carts

A suspended sale is a Sale row with status='suspended': lines but no invoice
number, no payments and no inventory effect. It stays until resumed or
discarded; there is no automatic expiry.

RESUME RACE: two registers can try to resume (or discard) the same parked sale.
claim() is a compare-and-swap on (status, version_id); exactly one caller wins
and the other gets ConflictError(SuspendedSaleConflict). The claimed row
moves to status='cancelled' with resumed_at set, so it leaves the suspended
list but stays in history.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Sale, SaleLine
from ..errors import (
    ConflictError,
    ValidationError,
    SALE_NOT_FOUND,
    SUSPENDED_SALE_CONFLICT,
)
from tillpoint.time_utils import utcnow
from .concurrency import atomic, begin_write, run_with_retry


def list_suspended(tenant_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter_by(tenant_id=tenant_id, status="suspended")
        .order_by(Sale.sale_time.desc(), Sale.id.desc())
        .all()
    )


def get_suspended(sale_id: int, tenant_id: int | None = None) -> Sale:
    q = db.session.query(Sale).filter_by(id=sale_id, status="suspended")
    if tenant_id is not None:
        q = q.filter(Sale.tenant_id == tenant_id)
    sale = q.first()
    if sale is None:
        raise ValidationError(
            "Suspended sale not found",
            code=SALE_NOT_FOUND,
            details={"sale_id": sale_id},
        )
    return sale


def _swap_out(sale_id: int, tenant_id: int | None, *, resumed: bool) -> Sale:
    q = db.session.query(Sale).filter_by(id=sale_id)
    if tenant_id is not None:
        q = q.filter(Sale.tenant_id == tenant_id)
    sale = q.first()
    if sale is None or sale.invoice_number is not None:
        raise ValidationError("Suspended sale not found", code=SALE_NOT_FOUND, details={"sale_id": sale_id})

    # Someone else already took it
    if sale.status != "suspended":
        raise ConflictError(
            "Suspended sale was already resumed or discarded",
            code=SUSPENDED_SALE_CONFLICT,
            details={"sale_id": sale_id, "status": sale.status},
        )
    seen_version = sale.version_id

    values = {"status": "cancelled", "version_id": seen_version + 1}
    if resumed:
        values["resumed_at"] = utcnow()

    result = db.session.execute(
        update(Sale)
        .where(
            Sale.id == sale_id,
            Sale.status == "suspended",
            Sale.version_id == seen_version,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise ConflictError(
            "Suspended sale was already resumed or discarded",
            code=SUSPENDED_SALE_CONFLICT,
            details={"sale_id": sale_id},
        )
    return sale


def claim(sale_id: int, tenant_id: int | None = None) -> tuple[Sale, list[SaleLine]]:
    """
    Take a suspended sale for resumption.

    Returns the sale (now cancelled/resumed) and its ordered lines.
    """
    def _op():
        begin_write()
        with atomic():
            sale = _swap_out(sale_id, tenant_id, resumed=True)
            lines = (
                db.session.query(SaleLine)
                .filter_by(sale_id=sale_id)
                .order_by(SaleLine.line_index)
                .all()
            )
        db.session.refresh(sale)
        return sale, lines

    return run_with_retry(_op)


def discard(sale_id: int, tenant_id: int | None = None) -> Sale:
    """Drop a parked sale without resuming it."""
    def _op():
        begin_write()
        with atomic():
            sale = _swap_out(sale_id, tenant_id, resumed=False)
        db.session.refresh(sale)
        return sale

    return run_with_retry(_op)
