# Overview: Service-layer operations for loyalty points and commissions; post-commit side effects.

"""
Rewards Service - loyalty points and employee commissions

WHY: Both are derived from a committed sale but are not part of it. They run
after the sale's transaction has committed, each in its own unit of work.
A failure here is logged and reported as a SideEffectWarning; the sale is
never rolled back or retried because of it.

POINTS:
- points = floor(sale_total * rate), rate defaults to 1 point per currency unit.
- Balances change through conditional atomic UPDATEs, each paired with one
  LoyaltyTransaction row. Balances never go negative.

COMMISSIONS:
- percentage: sale_total * rate / 100
- fixed: rate
- Recorded unpaid; paid later in bulk.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Commission,
    CustomerTier,
    Employee,
    LoyaltyAccount,
    LoyaltyTransaction,
    Sale,
)
from ..errors import (
    ConflictError,
    ValidationError,
    SideEffectWarning,
    INSUFFICIENT_POINTS,
    INVALID_CART,
)
from ..money import to_decimal
from tillpoint.time_utils import utcnow
from .concurrency import atomic, begin_write, run_with_retry


COMMISSION_TYPES = ("percentage", "fixed")
EXECUTOR_KEY = "tillpoint.side_effects"
DEFAULT_POINT_VALUE = Decimal("0.01")


# =============================================================================
# Loyalty points
# =============================================================================

def calculate_points(sale_total, rate=1) -> int:
    """Whole points earned for a sale total. Never negative."""
    amount = to_decimal(sale_total, "sale_total") * to_decimal(rate, "rate")
    if amount <= 0:
        return 0
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))


def calculate_discount_from_points(points: int, point_value=DEFAULT_POINT_VALUE) -> Decimal:
    """Currency value of a number of points (0.01 per point unless configured)."""
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError("points must be a non-negative integer", code=INVALID_CART)
    return Decimal(points) * to_decimal(point_value, "point_value")


def _ensure_account(customer_id: int, tenant_id: int) -> LoyaltyAccount:
    account = db.session.query(LoyaltyAccount).filter_by(customer_id=customer_id).first()
    if account:
        return account

    account = LoyaltyAccount(customer_id=customer_id, tenant_id=tenant_id)
    try:
        with db.session.begin_nested():
            db.session.add(account)
    except IntegrityError:
        account = db.session.query(LoyaltyAccount).filter_by(customer_id=customer_id).one()
    return account


def get_points(customer_id: int) -> int:
    balance = (
        db.session.query(LoyaltyAccount.points_balance)
        .filter_by(customer_id=customer_id)
        .scalar()
    )
    return int(balance or 0)


def accrue_points(
    *,
    customer_id: int,
    tenant_id: int,
    sale_total,
    rate=1,
    sale_id: int | None = None,
    comment: str | None = None,
) -> int:
    """Credit points for a sale. Returns the points credited (0 -> nothing written)."""
    points = calculate_points(sale_total, rate)
    if points == 0:
        return 0

    def _op():
        begin_write()
        with atomic():
            account = _ensure_account(customer_id, tenant_id)
            db.session.execute(
                update(LoyaltyAccount)
                .where(LoyaltyAccount.id == account.id)
                .values(
                    points_balance=LoyaltyAccount.points_balance + points,
                    lifetime_points_earned=LoyaltyAccount.lifetime_points_earned + points,
                )
                .execution_options(synchronize_session=False)
            )
            db.session.add(LoyaltyTransaction(
                loyalty_account_id=account.id,
                transaction_type="earn",
                points=points,
                sale_id=sale_id,
                comment=comment,
                occurred_at=utcnow(),
            ))
        return points

    return run_with_retry(_op)


def redeem_points(
    *,
    customer_id: int,
    points: int,
    sale_id: int | None = None,
    comment: str | None = None,
) -> int:
    """Spend points. Returns the remaining balance."""
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise ValidationError("points must be a positive integer", code=INVALID_CART)

    def _op():
        begin_write()
        with atomic():
            result = db.session.execute(
                update(LoyaltyAccount)
                .where(
                    LoyaltyAccount.customer_id == customer_id,
                    LoyaltyAccount.points_balance >= points,
                )
                .values(
                    points_balance=LoyaltyAccount.points_balance - points,
                    lifetime_points_redeemed=LoyaltyAccount.lifetime_points_redeemed + points,
                )
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                raise ConflictError(
                    "Insufficient points",
                    code=INSUFFICIENT_POINTS,
                    details={"customer_id": customer_id, "requested": points, "available": get_points(customer_id)},
                )
            account_id = (
                db.session.query(LoyaltyAccount.id).filter_by(customer_id=customer_id).scalar()
            )
            db.session.add(LoyaltyTransaction(
                loyalty_account_id=account_id,
                transaction_type="redeem",
                points=-points,
                sale_id=sale_id,
                comment=comment,
                occurred_at=utcnow(),
            ))
        return get_points(customer_id)

    return run_with_retry(_op)


def list_loyalty_transactions(customer_id: int, limit: int = 200) -> list[LoyaltyTransaction]:
    return (
        db.session.query(LoyaltyTransaction)
        .join(LoyaltyAccount, LoyaltyTransaction.loyalty_account_id == LoyaltyAccount.id)
        .filter(LoyaltyAccount.customer_id == customer_id)
        .order_by(LoyaltyTransaction.occurred_at.desc(), LoyaltyTransaction.id.desc())
        .limit(limit)
        .all()
    )


def list_tiers(tenant_id: int) -> list[CustomerTier]:
    return (
        db.session.query(CustomerTier)
        .filter_by(tenant_id=tenant_id)
        .order_by(CustomerTier.min_points.asc())
        .all()
    )


def create_tier(
    *,
    tenant_id: int,
    name: str,
    min_points: int,
    discount_percent=0,
    color: str | None = None,
) -> CustomerTier:
    if not name:
        raise ValidationError("name required", code=INVALID_CART)
    if isinstance(min_points, bool) or not isinstance(min_points, int) or min_points < 0:
        raise ValidationError("min_points must be a non-negative integer", code=INVALID_CART)

    tier = CustomerTier(
        tenant_id=tenant_id,
        name=name,
        min_points=min_points,
        discount_percent=to_decimal(discount_percent, "discount_percent"),
        color=color,
    )
    db.session.add(tier)
    db.session.commit()
    return tier


def get_customer_tier(customer_id: int, tenant_id: int) -> CustomerTier | None:
    """Highest tier whose threshold the customer's balance meets."""
    points = get_points(customer_id)
    return (
        db.session.query(CustomerTier)
        .filter(CustomerTier.tenant_id == tenant_id, CustomerTier.min_points <= points)
        .order_by(CustomerTier.min_points.desc())
        .first()
    )


TIER_FIELDS = ("name", "min_points", "discount_percent", "color")


def _get_tier(tier_id: int, tenant_id: int | None = None) -> CustomerTier:
    tier = db.session.get(CustomerTier, tier_id)
    if tier is None or (tenant_id is not None and tier.tenant_id != tenant_id):
        raise ValidationError("Tier not found", code="TierNotFound", details={"tier_id": tier_id})
    return tier


def update_tier(tier_id: int, *, tenant_id: int | None = None, **changes) -> CustomerTier:
    """Change a tier's name, threshold, discount or color."""
    unknown = set(changes) - set(TIER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown tier fields: {', '.join(sorted(unknown))}", code=INVALID_CART)

    tier = _get_tier(tier_id, tenant_id)
    if "name" in changes and not changes["name"]:
        raise ValidationError("name required", code=INVALID_CART)
    if "min_points" in changes:
        min_points = changes["min_points"]
        if isinstance(min_points, bool) or not isinstance(min_points, int) or min_points < 0:
            raise ValidationError("min_points must be a non-negative integer", code=INVALID_CART)
    if "discount_percent" in changes:
        changes["discount_percent"] = to_decimal(changes["discount_percent"], "discount_percent")

    for key, value in changes.items():
        setattr(tier, key, value)
    db.session.commit()
    return tier


def delete_tier(tier_id: int, *, tenant_id: int | None = None) -> None:
    tier = _get_tier(tier_id, tenant_id)
    db.session.delete(tier)
    db.session.commit()


# =============================================================================
# Commissions
# =============================================================================

def calculate_commission(sale_amount, rate, commission_type: str = "percentage") -> Decimal:
    if commission_type not in COMMISSION_TYPES:
        raise ValidationError(f"Unknown commission type '{commission_type}'", code=INVALID_CART)
    rate = to_decimal(rate, "rate")
    if commission_type == "percentage":
        return to_decimal(sale_amount, "sale_amount") * rate / Decimal(100)
    return rate


def set_commission_rate(
    employee_id: int,
    rate,
    commission_type: str = "percentage",
    *,
    tenant_id: int | None = None,
) -> Employee:
    """
    Configure how an employee earns commission.

    rate=None turns commission off; the post-commit hook skips such employees.
    """
    if commission_type not in COMMISSION_TYPES:
        raise ValidationError(f"Unknown commission type '{commission_type}'", code=INVALID_CART)
    if rate is not None:
        rate = to_decimal(rate, "rate")
        if rate < 0:
            raise ValidationError("rate must not be negative", code=INVALID_CART)

    employee = db.session.get(Employee, employee_id)
    if employee is None or employee.deleted or (tenant_id is not None and employee.tenant_id != tenant_id):
        raise ValidationError("Employee not found", code=INVALID_CART, details={"employee_id": employee_id})

    employee.commission_rate = rate
    employee.commission_type = commission_type
    db.session.commit()
    return employee


def record_commission(
    *,
    employee_id: int,
    sale: Sale,
    rate,
    commission_type: str = "percentage",
) -> Commission:
    """Store an unpaid commission for one sale."""
    amount = calculate_commission(sale.sale_total, rate, commission_type)

    def _op():
        begin_write()
        with atomic():
            commission = Commission(
                employee_id=employee_id,
                sale_id=sale.id,
                sale_amount=sale.sale_total,
                commission_amount=amount,
                commission_rate=to_decimal(rate, "rate"),
                commission_type=commission_type,
                paid=False,
                created_at=utcnow(),
            )
            db.session.add(commission)
        return commission

    return run_with_retry(_op)


def list_commissions(
    employee_id: int,
    *,
    paid: bool | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[Commission]:
    q = db.session.query(Commission).filter_by(employee_id=employee_id)
    if paid is not None:
        q = q.filter(Commission.paid == paid)
    if since is not None:
        q = q.filter(Commission.created_at >= since)
    if until is not None:
        q = q.filter(Commission.created_at <= until)
    return q.order_by(Commission.created_at.desc(), Commission.id.desc()).all()


def mark_commissions_paid(commission_ids) -> int:
    """Mark unpaid commissions paid. Returns the number updated."""
    ids = list(commission_ids)
    if not ids:
        return 0

    def _op():
        begin_write()
        with atomic():
            result = db.session.execute(
                update(Commission)
                .where(Commission.id.in_(ids), Commission.paid.is_(False))
                .values(paid=True, paid_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    return run_with_retry(_op)


def commission_summary(employee_id: int, since: datetime, until: datetime) -> dict:
    row = (
        db.session.query(
            func.count(Commission.id).label("count"),
            func.coalesce(func.sum(Commission.commission_amount), 0).label("total"),
        )
        .filter(
            Commission.employee_id == employee_id,
            Commission.created_at >= since,
            Commission.created_at <= until,
        )
        .one()
    )
    paid_total = (
        db.session.query(func.coalesce(func.sum(Commission.commission_amount), 0))
        .filter(
            Commission.employee_id == employee_id,
            Commission.paid.is_(True),
            Commission.created_at >= since,
            Commission.created_at <= until,
        )
        .scalar()
    )
    total = to_decimal(row.total or 0)
    paid = to_decimal(paid_total or 0)
    return {
        "total_commissions": total,
        "paid_commissions": paid,
        "unpaid_commissions": total - paid,
        "sales_count": int(row.count or 0),
    }


def employee_performance(employee_id: int, since: datetime, until: datetime) -> dict:
    """Completed sales, revenue and commissions for an employee over a window."""
    row = (
        db.session.query(
            func.count(Sale.id).label("count"),
            func.coalesce(func.sum(Sale.sale_total), 0).label("revenue"),
        )
        .filter(
            Sale.employee_id == employee_id,
            Sale.status == "completed",
            Sale.sale_type == "sale",
            Sale.sale_time >= since,
            Sale.sale_time <= until,
        )
        .one()
    )
    count = int(row.count or 0)
    revenue = to_decimal(row.revenue or 0)
    return {
        "total_sales": count,
        "total_revenue": revenue,
        "average_sale": revenue / count if count else Decimal(0),
        "total_commissions": commission_summary(employee_id, since, until)["total_commissions"],
    }


# =============================================================================
# Post-commit hooks
# =============================================================================

def _points_rate():
    return current_app.config.get("LOYALTY_POINTS_PER_UNIT", 1)


def run_post_commit_hooks(sale_id: int) -> list[SideEffectWarning]:
    """
    Apply loyalty and commission side effects for a committed sale.

    Each hook is independent; one failing does not stop the other.
    Never raises for hook failures.
    """
    warnings: list[SideEffectWarning] = []

    sale = db.session.get(Sale, sale_id)
    if sale is None or sale.status != "completed" or sale.sale_type != "sale":
        return warnings

    if sale.customer_id is not None:
        try:
            accrue_points(
                customer_id=sale.customer_id,
                tenant_id=sale.tenant_id,
                sale_total=sale.sale_total,
                rate=_points_rate(),
                sale_id=sale.id,
                comment=f"Sale #{sale.invoice_number}",
            )
        except Exception as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Loyalty accrual failed for sale %s (customer %s): %s",
                sale_id, sale.customer_id, exc,
            )
            warnings.append(SideEffectWarning(
                hook="loyalty",
                message="Loyalty points could not be credited",
                details={"sale_id": sale_id, "customer_id": sale.customer_id, "error": str(exc)},
            ))

    employee = db.session.get(Employee, sale.employee_id)
    if employee is not None and employee.commission_rate is not None:
        try:
            record_commission(
                employee_id=employee.id,
                sale=sale,
                rate=employee.commission_rate,
                commission_type=employee.commission_type or "percentage",
            )
        except Exception as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Commission recording failed for sale %s (employee %s): %s",
                sale_id, sale.employee_id, exc,
            )
            warnings.append(SideEffectWarning(
                hook="commission",
                message="Commission could not be recorded",
                details={"sale_id": sale_id, "employee_id": sale.employee_id, "error": str(exc)},
            ))

    return warnings


def _run_in_app_context(app, sale_id: int) -> list[SideEffectWarning]:
    with app.app_context():
        try:
            return run_post_commit_hooks(sale_id)
        except Exception as exc:
            app.logger.warning("Post-commit hooks crashed for sale %s: %s", sale_id, exc)
            return [SideEffectWarning(hook="post_commit", message=str(exc), details={"sale_id": sale_id})]
        finally:
            db.session.remove()


def get_executor(app) -> ThreadPoolExecutor:
    executor = app.extensions.get(EXECUTOR_KEY)
    if executor is None:
        executor = ThreadPoolExecutor(
            max_workers=int(app.config.get("SIDE_EFFECT_WORKERS") or 4),
            thread_name_prefix="tillpoint-hooks",
        )
        app.extensions[EXECUTOR_KEY] = executor
    return executor


def dispatch_post_commit(sale_id: int) -> tuple[list[SideEffectWarning], Future | None]:
    """
    Schedule hooks for a committed sale.

    Async mode returns ([], future); the future resolves to the warnings.
    Sync mode runs inline and returns (warnings, None).
    """
    app = current_app._get_current_object()
    if app.config.get("SIDE_EFFECTS_ASYNC"):
        return [], get_executor(app).submit(_run_in_app_context, app, sale_id)

    try:
        return run_post_commit_hooks(sale_id), None
    except Exception as exc:
        db.session.rollback()
        app.logger.warning("Post-commit hooks crashed for sale %s: %s", sale_id, exc)
        return [SideEffectWarning(hook="post_commit", message=str(exc), details={"sale_id": sale_id})], None
