# Overview: Service-layer operations for carts; pure arithmetic, no database work.

"""
Cart Service - in-memory cart and its totals

WHY: A cart belongs to exactly one checkout session. It is a plain value passed
explicitly to sales_service, never a process-wide singleton, so concurrent
sessions cannot see each other's lines.

ARITHMETIC:
- All amounts are Decimal at full precision.
- Rounding to cents happens only when presenting (quantize_money / to_dict).
- discount(line) = gross * pct / 100 for PercentDiscount,
  min(amount, gross) for FixedDiscount.
- Return-mode carts negate line totals.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal

from ..errors import (
    ValidationError,
    INVALID_CART,
    NON_POSITIVE_QUANTITY,
)
from ..money import ZERO, quantize_money, to_decimal, money_str


DEFAULT_TAX_RATE = Decimal("0.10")
HUNDRED = Decimal("100")
CART_MODES = ("sale", "return")


def _decimal(value, field_name: str) -> Decimal:
    try:
        return to_decimal(value, field_name)
    except ValueError as exc:
        raise ValidationError(str(exc), code=INVALID_CART)


def _int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", code=INVALID_CART)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field_name} must be an integer", code=INVALID_CART)


# =============================================================================
# Discounts
# =============================================================================

@dataclass(frozen=True)
class PercentDiscount:
    value: Decimal = ZERO

    def __post_init__(self):
        value = _decimal(self.value, "discount")
        if value < 0 or value > HUNDRED:
            raise ValidationError("Percent discount must be between 0 and 100", code=INVALID_CART)
        object.__setattr__(self, "value", value)

    kind = "percent"


@dataclass(frozen=True)
class FixedDiscount:
    amount: Decimal = ZERO

    def __post_init__(self):
        amount = _decimal(self.amount, "discount")
        if amount < 0:
            raise ValidationError("Fixed discount cannot be negative", code=INVALID_CART)
        object.__setattr__(self, "amount", amount)

    kind = "fixed"


Discount = PercentDiscount | FixedDiscount
NO_DISCOUNT = PercentDiscount(ZERO)


def discount_amount(discount: Discount, gross: Decimal) -> Decimal:
    """Money taken off a line with the given gross."""
    if isinstance(discount, PercentDiscount):
        return gross * discount.value / HUNDRED
    if isinstance(discount, FixedDiscount):
        return min(discount.amount, gross)
    raise TypeError(f"unknown discount type: {type(discount).__name__}")


def make_discount(kind: str, value) -> Discount:
    if kind == "percent":
        return PercentDiscount(value)
    if kind == "fixed":
        return FixedDiscount(value)
    raise ValidationError(f"Unknown discount type '{kind}'", code=INVALID_CART)


# =============================================================================
# Cart values
# =============================================================================

@dataclass(frozen=True)
class CartLine:
    item_id: int
    unit_price: Decimal
    quantity: int
    location_id: int
    discount: Discount = NO_DISCOUNT
    serial_number: str | None = None
    description: str | None = None
    cost_price: Decimal = ZERO
    # Display-only, re-read from the catalog
    name: str = ""
    item_number: str | None = None
    is_serialized: bool = False

    def __post_init__(self):
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValidationError("quantity must be an integer", code=INVALID_CART)
        if self.quantity <= 0:
            raise ValidationError(
                "Quantity must be positive",
                code=NON_POSITIVE_QUANTITY,
                details={"item_id": self.item_id, "quantity": self.quantity},
            )
        unit_price = _decimal(self.unit_price, "unit_price")
        if unit_price < 0:
            raise ValidationError(
                "Unit price cannot be negative",
                code=INVALID_CART,
                details={"item_id": self.item_id},
            )
        cost_price = _decimal(self.cost_price, "cost_price")
        if cost_price < 0:
            raise ValidationError("Cost price cannot be negative", code=INVALID_CART)
        if not isinstance(self.discount, (PercentDiscount, FixedDiscount)):
            raise ValidationError("discount must be a PercentDiscount or FixedDiscount", code=INVALID_CART)
        object.__setattr__(self, "unit_price", unit_price)
        object.__setattr__(self, "cost_price", cost_price)

    @property
    def gross(self) -> Decimal:
        return self.unit_price * self.quantity

    def merge_key(self) -> tuple:
        return (self.item_id, self.location_id)


@dataclass(frozen=True)
class CartCustomer:
    id: int
    taxable: bool = True
    discount_percent: Decimal = ZERO


@dataclass(frozen=True)
class PendingPayment:
    payment_type: str
    amount: Decimal

    def __post_init__(self):
        if not self.payment_type:
            raise ValidationError("payment_type required", code=INVALID_CART)
        object.__setattr__(self, "amount", _decimal(self.amount, "amount"))


@dataclass
class Cart:
    """Transient checkout state. One instance per session."""
    lines: list[CartLine] = field(default_factory=list)
    customer: CartCustomer | None = None
    mode: str = "sale"
    comment: str = ""
    payments: list[PendingPayment] = field(default_factory=list)

    def __post_init__(self):
        if self.mode not in CART_MODES:
            raise ValidationError(f"Unknown cart mode '{self.mode}'", code=INVALID_CART)

    # -- line mutators --------------------------------------------------------

    def add_line(self, line: CartLine) -> None:
        """Add a line; non-serialized items merge into an existing line."""
        if not line.is_serialized:
            for index, existing in enumerate(self.lines):
                if existing.merge_key() == line.merge_key() and not existing.is_serialized:
                    self.lines[index] = replace(existing, quantity=existing.quantity + line.quantity)
                    return
        self.lines.append(line)

    def remove_line(self, index: int) -> CartLine:
        self._check_index(index)
        return self.lines.pop(index)

    def update_quantity(self, index: int, quantity: int) -> None:
        self._check_index(index)
        self.lines[index] = replace(self.lines[index], quantity=quantity)

    def update_discount(self, index: int, discount: Discount) -> None:
        self._check_index(index)
        self.lines[index] = replace(self.lines[index], discount=discount)

    def set_customer(self, customer: CartCustomer | None) -> None:
        self.customer = customer

    def add_payment(self, payment: PendingPayment) -> None:
        self.payments.append(payment)

    def remove_payment(self, index: int) -> PendingPayment:
        if index < 0 or index >= len(self.payments):
            raise ValidationError("Payment index out of range", code=INVALID_CART)
        return self.payments.pop(index)

    def set_comment(self, comment: str) -> None:
        self.comment = comment or ""

    def set_mode(self, mode: str) -> None:
        if mode not in CART_MODES:
            raise ValidationError(f"Unknown cart mode '{mode}'", code=INVALID_CART)
        self.mode = mode

    def clear(self) -> None:
        self.lines = []
        self.customer = None
        self.payments = []
        self.comment = ""
        self.mode = "sale"

    def is_empty(self) -> bool:
        return not self.lines

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.lines):
            raise ValidationError("Line index out of range", code=INVALID_CART)


# =============================================================================
# Aggregation
# =============================================================================

def line_discount(line: CartLine) -> Decimal:
    return discount_amount(line.discount, line.gross)


def line_total(line: CartLine) -> Decimal:
    return line.gross - line_discount(line)


def _sign(cart: Cart) -> int:
    return -1 if cart.mode == "return" else 1


def subtotal(cart: Cart) -> Decimal:
    return _sign(cart) * sum((line_total(line) for line in cart.lines), ZERO)


def tax(cart: Cart, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    if cart.customer is not None and not cart.customer.taxable:
        return ZERO
    return subtotal(cart) * Decimal(tax_rate)


def total(cart: Cart, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    return subtotal(cart) + tax(cart, tax_rate)


def total_paid(cart: Cart) -> Decimal:
    return sum((payment.amount for payment in cart.payments), ZERO)


def balance(cart: Cart, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    return total(cart, tax_rate) - total_paid(cart)


def summarize(cart: Cart, tax_rate: Decimal = DEFAULT_TAX_RATE) -> dict:
    """Presentation totals, rounded to cents."""
    return {
        "subtotal": money_str(subtotal(cart)),
        "tax": money_str(tax(cart, tax_rate)),
        "total": money_str(total(cart, tax_rate)),
        "total_paid": money_str(total_paid(cart)),
        "balance": money_str(balance(cart, tax_rate)),
        "tax_rate": str(tax_rate),
        "line_count": len(cart.lines),
    }


# =============================================================================
# Request boundary
# =============================================================================

def cart_from_dict(payload: dict) -> Cart:
    """
    Build a Cart from its JSON shape.

    {
      "mode": "sale",
      "comment": "",
      "customer": {"id": 1, "taxable": true, "discount_percent": "0"},
      "lines": [{"item_id": 1, "location_id": 1, "unit_price": "29.99",
                 "quantity": 2, "discount": {"type": "percent", "value": "0"}}],
      "payments": [{"payment_type": "cash", "amount": "71.48"}]
    }
    """
    if not isinstance(payload, dict):
        raise ValidationError("cart must be an object", code=INVALID_CART)

    lines_raw = payload.get("lines") or []
    if not isinstance(lines_raw, list):
        raise ValidationError("lines must be a list", code=INVALID_CART)

    cart = Cart(mode=payload.get("mode") or "sale", comment=payload.get("comment") or "")

    for raw in lines_raw:
        cart.lines.append(_line_from_dict(raw))

    customer_raw = payload.get("customer")
    if customer_raw:
        if not isinstance(customer_raw, dict) or customer_raw.get("id") is None:
            raise ValidationError("customer.id required", code=INVALID_CART)
        cart.customer = CartCustomer(
            id=_int(customer_raw.get("id"), "customer.id"),
            taxable=bool(customer_raw.get("taxable", True)),
            discount_percent=_decimal(customer_raw.get("discount_percent", 0), "customer.discount_percent"),
        )

    for raw in payload.get("payments") or []:
        if not isinstance(raw, dict):
            raise ValidationError("payment must be an object", code=INVALID_CART)
        cart.payments.append(PendingPayment(
            payment_type=raw.get("payment_type") or "",
            amount=raw.get("amount", raw.get("payment_amount")),
        ))

    return cart


def _line_from_dict(raw) -> CartLine:
    if not isinstance(raw, dict):
        raise ValidationError("line must be an object", code=INVALID_CART)
    for key in ("item_id", "location_id", "unit_price", "quantity"):
        if raw.get(key) is None:
            raise ValidationError(f"line.{key} required", code=INVALID_CART)

    discount_raw = raw.get("discount") or {}
    if isinstance(discount_raw, dict):
        discount = make_discount(discount_raw.get("type", "percent"), discount_raw.get("value", 0))
    else:
        discount = PercentDiscount(discount_raw)

    return CartLine(
        item_id=_int(raw["item_id"], "item_id"),
        location_id=_int(raw["location_id"], "location_id"),
        unit_price=raw["unit_price"],
        quantity=_int(raw["quantity"], "quantity"),
        discount=discount,
        serial_number=raw.get("serial_number") or None,
        description=raw.get("description") or None,
        cost_price=raw.get("cost_price", 0),
        name=raw.get("name") or "",
        item_number=raw.get("item_number"),
        is_serialized=bool(raw.get("is_serialized", False)),
    )


def cart_to_dict(cart: Cart, tax_rate: Decimal = DEFAULT_TAX_RATE) -> dict:
    return {
        "mode": cart.mode,
        "comment": cart.comment,
        "customer": None if cart.customer is None else {
            "id": cart.customer.id,
            "taxable": cart.customer.taxable,
            "discount_percent": str(cart.customer.discount_percent),
        },
        "lines": [
            {
                "item_id": line.item_id,
                "location_id": line.location_id,
                "name": line.name,
                "item_number": line.item_number,
                "description": line.description,
                "serial_number": line.serial_number,
                "is_serialized": line.is_serialized,
                "quantity": line.quantity,
                "unit_price": str(line.unit_price),
                "cost_price": str(line.cost_price),
                "discount": _discount_to_dict(line.discount),
                "line_total": money_str(line_total(line)),
            }
            for line in cart.lines
        ],
        "payments": [
            {"payment_type": p.payment_type, "amount": str(p.amount)}
            for p in cart.payments
        ],
        "totals": summarize(cart, tax_rate),
    }


def _discount_to_dict(discount: Discount) -> dict:
    if isinstance(discount, FixedDiscount):
        return {"type": "fixed", "value": str(discount.amount)}
    return {"type": "percent", "value": str(discount.value)}


__all__ = [
    "Cart", "CartLine", "CartCustomer", "PendingPayment",
    "PercentDiscount", "FixedDiscount", "Discount", "NO_DISCOUNT",
    "DEFAULT_TAX_RATE",
    "discount_amount", "make_discount", "line_discount", "line_total",
    "subtotal", "tax", "total", "total_paid", "balance", "summarize",
    "cart_from_dict", "cart_to_dict", "quantize_money",
]
