# Overview: Service-layer operations for invoice numbers; per-tenant, per-day unique identifiers.

"""
Invoice Service - human-readable, tenant-unique invoice numbers

FORMAT: <PREFIX>-<YYYYMMDD>-<NNNN>, e.g. POS-20261019-0007
- YYYYMMDD is the tenant's local calendar day (Tenant.timezone).
- NNNN restarts at 0001 each local day.

ALLOCATION:
- One InvoiceSequence row per (tenant, business_date), advanced with a single
  atomic UPDATE next_number = next_number + 1. The database row lock
  serializes concurrent callers; nobody reads a count and then writes.
- The first allocation of a day inserts the row, seeded past any sales that
  already carry numbers for that day. Two callers racing that insert are
  resolved by the unique constraint; the loser falls back to the UPDATE.
- The increment runs inside the caller's transaction. A committed number is
  never proposed again; if the checkout rolls back (e.g. InsufficientStock)
  the increment rolls back with it and the same number is proposed next.
  Nothing was issued, so no gap or duplicate results.
- Every proposal is checked against existing sales. After INVOICE_MAX_ATTEMPTS
  collisions a random 3-digit suffix is appended as a last resort.

The uq_sales_tenant_invoice constraint remains the final authority;
sales_service retries a whole checkout when it fires.
"""

from __future__ import annotations

import random
from datetime import date, datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Sale, Tenant
from ..errors import ConflictError, INVOICE_COLLISION
from tillpoint.time_utils import local_date, utcnow
from .catalog_service import get_tenant
from .concurrency import atomic, begin_write, run_with_retry


DEFAULT_PREFIX = "POS"
DEFAULT_MAX_ATTEMPTS = 10
SEQUENCE_PAD = 4

_rng = random.SystemRandom()


def format_invoice_number(prefix: str, business_date: date, sequence: int, suffix: int | None = None) -> str:
    number = f"{prefix}-{business_date:%Y%m%d}-{sequence:0{SEQUENCE_PAD}d}"
    if suffix is not None:
        number = f"{number}-{suffix:03d}"
    return number


def business_date_for(tenant: Tenant, now: datetime | None = None) -> date:
    return local_date(now or utcnow(), tenant.timezone)


def _config_prefix() -> str:
    return current_app.config.get("INVOICE_PREFIX") or DEFAULT_PREFIX


def _config_max_attempts() -> int:
    return int(current_app.config.get("INVOICE_MAX_ATTEMPTS") or DEFAULT_MAX_ATTEMPTS)


def invoice_exists(tenant_id: int, invoice_number: str) -> bool:
    return db.session.query(
        db.session.query(Sale.id)
        .filter_by(tenant_id=tenant_id, invoice_number=invoice_number)
        .exists()
    ).scalar()


def _issued_today(tenant_id: int, prefix: str, business_date: date) -> int:
    """Sales already numbered for this day (pre-existing data seeds the counter)."""
    day_prefix = f"{prefix}-{business_date:%Y%m%d}-"
    return (
        db.session.query(Sale.id)
        .filter(
            Sale.tenant_id == tenant_id,
            Sale.invoice_number.like(f"{day_prefix}%"),
        )
        .count()
    )


def next_sequence(tenant_id: int, business_date: date, prefix: str) -> int:
    """
    Atomically take the next sequence number for (tenant, business_date).

    Runs inside the caller's transaction.
    """
    stmt = (
        update(InvoiceSequence)
        .where(
            InvoiceSequence.tenant_id == tenant_id,
            InvoiceSequence.business_date == business_date,
        )
        .values(next_number=InvoiceSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _current_next(tenant_id, business_date) - 1

    taken = _issued_today(tenant_id, prefix, business_date) + 1
    seq = InvoiceSequence(tenant_id=tenant_id, business_date=business_date, next_number=taken + 1)
    try:
        with db.session.begin_nested():
            db.session.add(seq)
        return taken
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        return _current_next(tenant_id, business_date) - 1


def _current_next(tenant_id: int, business_date: date) -> int:
    return (
        db.session.query(InvoiceSequence.next_number)
        .filter_by(tenant_id=tenant_id, business_date=business_date)
        .scalar()
    )


def allocate_invoice_number(
    tenant_id: int,
    *,
    now: datetime | None = None,
    force_suffix: bool = False,
) -> str:
    """
    Allocate a tenant-unique invoice number inside the current transaction.

    force_suffix skips straight to the suffixed fallback; sales_service uses
    it on its final retry after repeated constraint violations.
    """
    tenant = get_tenant(tenant_id)
    prefix = _config_prefix()
    business_date = business_date_for(tenant, now)
    max_attempts = _config_max_attempts()

    last = None
    attempts = 0 if force_suffix else max_attempts
    for _ in range(attempts):
        sequence = next_sequence(tenant_id, business_date, prefix)
        candidate = format_invoice_number(prefix, business_date, sequence)
        if not invoice_exists(tenant_id, candidate):
            return candidate
        last = candidate

    if last is None:
        last = format_invoice_number(prefix, business_date, next_sequence(tenant_id, business_date, prefix))

    # Last resort
    for _ in range(max_attempts):
        candidate = f"{last}-{_rng.randrange(1000):03d}"
        if not invoice_exists(tenant_id, candidate):
            current_app.logger.warning(
                "Invoice sequence exhausted for tenant %s on %s; issued %s",
                tenant_id, business_date, candidate,
            )
            return candidate

    raise ConflictError(
        "Could not allocate a unique invoice number",
        code=INVOICE_COLLISION,
        details={"tenant_id": tenant_id, "business_date": business_date.isoformat()},
    )


def issue_invoice_number(tenant_id: int, *, now: datetime | None = None) -> str:
    """Allocate and commit a number on its own (e.g. for pre-printed paperwork)."""
    def _op():
        begin_write()
        with atomic():
            return allocate_invoice_number(tenant_id, now=now)

    return run_with_retry(_op, attempts=5)
