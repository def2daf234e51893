# Overview: Service-layer operations for sales; checkout commit, suspend/resume and void.

"""
Sales Service - cart to durable sale

WHY: A checkout writes a sale header, its lines, its payments and one
inventory adjustment (plus audit row) per line. Those writes are one atomic
unit: all of them become visible together or none do. Continuing past a
failed inventory update is never acceptable.

STATE MACHINE (per checkout attempt):
    DRAFT -> VALIDATING -> COMMITTING -> COMMITTED
                 \\              \\
                  -> FAILED       -> FAILED

- VALIDATING: EmptyCart, NonPositiveQuantity, InsufficientPayment and unknown
  references are rejected before anything is written.
- COMMITTING: invoice number, header, lines, payments, inventory. Once the
  unit is submitted it cannot be cancelled; it commits or rolls back.
- After COMMITTED, loyalty/commission hooks are dispatched. They never roll
  the sale back.

Voiding is a new operation that writes compensating inventory rows; the
original audit trail is left untouched.
"""

from __future__ import annotations

from concurrent.futures import Future
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleLine, Payment
from ..errors import (
    CheckoutError,
    ConflictError,
    PersistenceError,
    SideEffectWarning,
    ValidationError,
    EMPTY_CART,
    INSUFFICIENT_PAYMENT,
    INVALID_CART,
    INVALID_STATUS,
    INVOICE_COLLISION,
    NON_POSITIVE_QUANTITY,
    SALE_NOT_FOUND,
)
from ..money import to_decimal
from tillpoint.time_utils import utcnow
from . import cart_service, catalog_service, inventory_service, invoice_service, rewards_service
from . import suspended_service
from .cart_service import (
    Cart,
    CartLine,
    FixedDiscount,
    PercentDiscount,
)
from .concurrency import begin_write, lock_for_update, run_with_retry


BALANCE_EPSILON = Decimal("0.005")


class CheckoutState(str, Enum):
    DRAFT = "draft"
    VALIDATING = "validating"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


_TRANSITIONS = {
    CheckoutState.DRAFT: {CheckoutState.VALIDATING},
    CheckoutState.VALIDATING: {CheckoutState.COMMITTING, CheckoutState.FAILED},
    CheckoutState.COMMITTING: {CheckoutState.COMMITTED, CheckoutState.FAILED},
    CheckoutState.COMMITTED: set(),
    CheckoutState.FAILED: set(),
}


@dataclass
class CheckoutAttempt:
    """Tracks one checkout through its states."""
    tenant_id: int
    employee_id: int
    state: CheckoutState = CheckoutState.DRAFT
    history: list[CheckoutState] = field(default_factory=lambda: [CheckoutState.DRAFT])
    error: CheckoutError | None = None

    def transition(self, state: CheckoutState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal checkout transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        current_app.logger.info(
            "Checkout tenant=%s employee=%s -> %s",
            self.tenant_id, self.employee_id, state.value,
        )

    def fail(self, error: CheckoutError) -> None:
        self.error = error
        self.transition(CheckoutState.FAILED)


@dataclass
class CommitResult:
    """A committed sale plus any non-fatal side-effect warnings."""
    sale: Sale
    warnings: list[SideEffectWarning] = field(default_factory=list)
    side_effects: Future | None = None
    attempt: CheckoutAttempt | None = None

    @property
    def invoice_number(self) -> str:
        return self.sale.invoice_number

    def wait_for_side_effects(self, timeout: float | None = None) -> list[SideEffectWarning]:
        """Block until async hooks finish and fold their warnings in."""
        if self.side_effects is not None:
            self.warnings.extend(self.side_effects.result(timeout=timeout))
            self.side_effects = None
        return self.warnings

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_lines=True),
            "warnings": [w.to_dict() for w in self.warnings],
            "side_effects_pending": self.side_effects is not None and not self.side_effects.done(),
        }


# =============================================================================
# Helpers
# =============================================================================

def tax_rate_for(tenant) -> Decimal:
    if tenant.tax_rate is not None:
        return to_decimal(tenant.tax_rate, "tax_rate")
    return to_decimal(current_app.config.get("TAX_RATE", cart_service.DEFAULT_TAX_RATE), "TAX_RATE")


def validate_cart(cart: Cart, tax_rate: Decimal = cart_service.DEFAULT_TAX_RATE) -> None:
    """Checks run before any write. Raises ValidationError."""
    if cart.is_empty():
        raise ValidationError("Cart is empty", code=EMPTY_CART)

    bad = [
        {"line": index, "item_id": line.item_id, "quantity": line.quantity}
        for index, line in enumerate(cart.lines)
        if line.quantity <= 0
    ]
    if bad:
        raise ValidationError("Quantities must be positive", code=NON_POSITIVE_QUANTITY, details={"lines": bad})

    outstanding = cart_service.balance(cart, tax_rate)
    if outstanding > BALANCE_EPSILON:
        raise ValidationError(
            "Payment does not cover the sale total",
            code=INSUFFICIENT_PAYMENT,
            details={
                "total": str(cart_service.quantize_money(cart_service.total(cart, tax_rate))),
                "paid": str(cart_service.quantize_money(cart_service.total_paid(cart))),
                "balance": str(cart_service.quantize_money(outstanding)),
            },
        )


def _check_identity(cart: Cart, tenant_id: int, employee_id: int):
    tenant = catalog_service.get_tenant(tenant_id)
    if catalog_service.get_employee(employee_id, tenant_id) is None:
        raise ValidationError(
            "Employee not found",
            code=INVALID_CART,
            details={"employee_id": employee_id},
        )
    catalog_service.require_references(cart, tenant_id)
    catalog_service.refresh_customer(cart, tenant_id)
    return tenant


@contextmanager
def _storage_errors(action: str):
    """Translate storage failures into PersistenceError after rollback."""
    try:
        yield
    except CheckoutError:
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Storage failure during %s", action)
        raise PersistenceError(f"Could not {action}; nothing was saved") from exc


def _is_invoice_collision(exc: IntegrityError) -> bool:
    """True when the violated constraint is the per-tenant invoice uniqueness."""
    message = str(exc.orig)
    return "uq_sales_tenant_invoice" in message or "sales.invoice_number" in message


def _sign(cart: Cart) -> int:
    return -1 if cart.mode == "return" else 1


def _snapshot_lines(sale: Sale, cart: Cart, items: dict) -> list[SaleLine]:
    sign = _sign(cart)
    lines = []
    for index, line in enumerate(cart.lines):
        item = items.get(line.item_id)
        unit_cost = line.cost_price
        if not unit_cost and item is not None:
            unit_cost = item.cost_price or 0

        if isinstance(line.discount, FixedDiscount):
            discount_type, discount_percent, discount_amount = "fixed", 0, line.discount.amount
        else:
            discount_type, discount_percent, discount_amount = "percent", line.discount.value, 0

        sale_line = SaleLine(
            sale_id=sale.id,
            item_id=line.item_id,
            location_id=line.location_id,
            line_index=index + 1,
            description=line.description or (item.description if item is not None else None),
            serial_number=line.serial_number,
            quantity=line.quantity,
            unit_cost=unit_cost,
            unit_price=line.unit_price,
            discount_type=discount_type,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            line_total=sign * cart_service.line_total(line),
        )
        db.session.add(sale_line)
        lines.append(sale_line)
    return lines


# =============================================================================
# Commit
# =============================================================================

def _commit_unit(
    cart: Cart,
    tenant_id: int,
    employee_id: int,
    tax_rate: Decimal,
    *,
    force_suffix: bool,
) -> int:
    """
    The atomic write unit. Returns the new sale id.

    Everything is flushed inside one transaction and committed once at the
    end; any exception rolls the whole unit back.
    """
    begin_write()
    try:
        invoice_number = invoice_service.allocate_invoice_number(tenant_id, force_suffix=force_suffix)
        now = utcnow()

        sale = Sale(
            tenant_id=tenant_id,
            customer_id=cart.customer.id if cart.customer else None,
            employee_id=employee_id,
            invoice_number=invoice_number,
            sale_type=cart.mode,
            status="completed",
            sale_time=now,
            comment=cart.comment or "",
            sale_total=cart_service.total(cart, tax_rate),
            tax=cart_service.tax(cart, tax_rate),
        )
        db.session.add(sale)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            if not _is_invoice_collision(exc):
                raise
            raise ConflictError(
                "Invoice number already used",
                code=INVOICE_COLLISION,
                details={"invoice_number": invoice_number},
            ) from exc

        items = catalog_service.get_items((line.item_id for line in cart.lines), tenant_id)
        lines = _snapshot_lines(sale, cart, items)

        for pending in cart.payments:
            db.session.add(Payment(
                sale_id=sale.id,
                payment_type=pending.payment_type,
                payment_amount=pending.amount,
            ))
        db.session.flush()

        if cart.mode == "return":
            reason = f"return #{invoice_number}"
        else:
            reason = f"sale #{invoice_number}"
        sign = _sign(cart)
        for sale_line in lines:
            inventory_service.apply_adjustment(
                tenant_id=tenant_id,
                item_id=sale_line.item_id,
                location_id=sale_line.location_id,
                delta=-sign * sale_line.quantity,
                reason=reason,
                actor_id=employee_id,
                sale_id=sale.id,
                occurred_at=now,
            )

        db.session.commit()
        return sale.id
    except BaseException:
        db.session.rollback()
        raise


def commit_sale(cart: Cart, tenant_id: int, employee_id: int) -> CommitResult:
    """
    Turn a cart into a completed sale.

    Blocks until the atomic unit has committed or failed. On success the cart
    is cleared (it has been consumed) and hooks are dispatched.
    """
    attempt = CheckoutAttempt(tenant_id=tenant_id, employee_id=employee_id)
    attempt.transition(CheckoutState.VALIDATING)
    try:
        with _storage_errors("validate the sale"):
            tenant = _check_identity(cart, tenant_id, employee_id)
            tax_rate = tax_rate_for(tenant)
        validate_cart(cart, tax_rate)
    except CheckoutError as exc:
        attempt.fail(exc)
        raise

    attempt.transition(CheckoutState.COMMITTING)
    max_attempts = int(current_app.config.get("INVOICE_MAX_ATTEMPTS") or invoice_service.DEFAULT_MAX_ATTEMPTS)
    sale_id = None
    try:
        with _storage_errors("complete the sale"):
            for n in range(max_attempts):
                try:
                    sale_id = run_with_retry(
                        lambda: _commit_unit(
                            cart,
                            tenant_id,
                            employee_id,
                            tax_rate,
                            force_suffix=(n == max_attempts - 1),
                        )
                    )
                    break
                except ConflictError as exc:
                    if exc.code != INVOICE_COLLISION or n == max_attempts - 1:
                        raise
                    current_app.logger.info("Invoice collision on checkout for tenant %s; retrying", tenant_id)
    except CheckoutError as exc:
        attempt.fail(exc)
        raise

    attempt.transition(CheckoutState.COMMITTED)
    sale = db.session.get(Sale, sale_id)
    current_app.logger.info(
        "Sale %s committed for tenant %s (total %s)",
        sale.invoice_number, tenant_id, cart_service.quantize_money(sale.sale_total),
    )
    cart.clear()

    warnings, future = rewards_service.dispatch_post_commit(sale_id)
    return CommitResult(sale=sale, warnings=warnings, side_effects=future, attempt=attempt)


# =============================================================================
# Suspend / resume
# =============================================================================

def suspend_sale(cart: Cart, tenant_id: int, employee_id: int) -> int:
    """
    Park a cart as a suspended sale.

    No invoice number, no payments, no inventory change. Returns the sale id.
    """
    if cart.is_empty():
        raise ValidationError("Cart is empty", code=EMPTY_CART)

    with _storage_errors("validate the sale"):
        tenant = _check_identity(cart, tenant_id, employee_id)
        tax_rate = tax_rate_for(tenant)

    def _op():
        begin_write()
        try:
            sale = Sale(
                tenant_id=tenant_id,
                customer_id=cart.customer.id if cart.customer else None,
                employee_id=employee_id,
                invoice_number=None,
                sale_type=cart.mode,
                status="suspended",
                sale_time=utcnow(),
                comment=cart.comment or "SUSPENDED",
                sale_total=cart_service.total(cart, tax_rate),
                tax=cart_service.tax(cart, tax_rate),
            )
            db.session.add(sale)
            db.session.flush()

            items = catalog_service.get_items((line.item_id for line in cart.lines), tenant_id)
            _snapshot_lines(sale, cart, items)

            db.session.commit()
            return sale.id
        except BaseException:
            db.session.rollback()
            raise

    with _storage_errors("suspend the sale"):
        sale_id = run_with_retry(_op)

    current_app.logger.info("Sale %s suspended for tenant %s", sale_id, tenant_id)
    cart.clear()
    return sale_id


def _discount_from_line(sale_line: SaleLine):
    if sale_line.discount_type == "fixed":
        return FixedDiscount(sale_line.discount_amount)
    return PercentDiscount(sale_line.discount_percent)


def resume_sale(sale_id: int, tenant_id: int | None = None) -> Cart:
    """
    Rebuild a cart from a suspended sale and retire the parked record.

    Prices and discounts come from the persisted snapshot so a paused
    transaction keeps its economics. Display fields (name, item number,
    serialized flag) are re-read from the catalog.
    """
    with _storage_errors("resume the sale"):
        sale, sale_lines = suspended_service.claim(sale_id, tenant_id)

        items = catalog_service.get_items((line.item_id for line in sale_lines), sale.tenant_id)
        cart = Cart(mode=sale.sale_type or "sale", comment=sale.comment or "")
        if cart.comment == "SUSPENDED":
            cart.comment = ""

        for sale_line in sale_lines:
            item = items.get(sale_line.item_id)
            cart.lines.append(CartLine(
                item_id=sale_line.item_id,
                unit_price=sale_line.unit_price,
                quantity=sale_line.quantity,
                location_id=sale_line.location_id,
                discount=_discount_from_line(sale_line),
                serial_number=sale_line.serial_number,
                description=sale_line.description,
                cost_price=sale_line.unit_cost or 0,
                name=item.name if item is not None else "",
                item_number=item.item_number if item is not None else None,
                is_serialized=bool(item.is_serialized) if item is not None else False,
            ))

        if sale.customer_id is not None:
            customer = catalog_service.get_customer(sale.customer_id, sale.tenant_id)
            if customer is not None:
                cart.customer = catalog_service.customer_ref(customer)

    current_app.logger.info("Suspended sale %s resumed", sale_id)
    return cart


# =============================================================================
# Void / queries
# =============================================================================

def void_sale(
    sale_id: int,
    employee_id: int,
    reason: str | None = None,
    tenant_id: int | None = None,
) -> Sale:
    """
    Cancel a completed sale and put its stock back.

    Writes one compensating adjustment per line with reason
    "void of sale #<invoice>". Original audit rows are never touched.
    """
    def _op():
        begin_write()
        try:
            q = db.session.query(Sale).filter_by(id=sale_id)
            if tenant_id is not None:
                q = q.filter(Sale.tenant_id == tenant_id)
            sale = lock_for_update(q).first()
            if not sale:
                raise ValidationError("Sale not found", code=SALE_NOT_FOUND, details={"sale_id": sale_id})

            if sale.status != "completed":
                raise ValidationError(
                    f"Only completed sales can be voided (status is {sale.status})",
                    code=INVALID_STATUS,
                    details={"sale_id": sale_id, "status": sale.status},
                )

            now = utcnow()
            sign = -1 if sale.sale_type == "return" else 1
            void_reason = f"void of sale #{sale.invoice_number}"
            for sale_line in sale.lines:
                inventory_service.apply_adjustment(
                    tenant_id=sale.tenant_id,
                    item_id=sale_line.item_id,
                    location_id=sale_line.location_id,
                    delta=sign * sale_line.quantity,
                    reason=void_reason,
                    actor_id=employee_id,
                    sale_id=sale.id,
                    occurred_at=now,
                )

            sale.status = "cancelled"
            sale.voided_by_employee_id = employee_id
            sale.voided_at = now
            sale.void_reason = reason

            db.session.commit()
            return sale
        except BaseException:
            db.session.rollback()
            raise

    with _storage_errors("void the sale"):
        sale = run_with_retry(_op)

    current_app.logger.info("Sale %s voided by employee %s", sale.invoice_number, employee_id)
    return sale


def get_sale(sale_id: int, tenant_id: int | None = None) -> Sale:
    q = db.session.query(Sale).filter_by(id=sale_id)
    if tenant_id is not None:
        q = q.filter(Sale.tenant_id == tenant_id)
    sale = q.first()
    if sale is None:
        raise ValidationError("Sale not found", code=SALE_NOT_FOUND, details={"sale_id": sale_id})
    return sale


def list_sales(tenant_id: int, status: str | None = None, limit: int = 100) -> list[Sale]:
    q = db.session.query(Sale).filter_by(tenant_id=tenant_id)
    if status:
        q = q.filter(Sale.status == status)
    return q.order_by(Sale.sale_time.desc(), Sale.id.desc()).limit(limit).all()
