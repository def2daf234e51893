# Overview: Checkout error taxonomy shared by services and routes.

"""
Error taxonomy for sale transaction processing.

- ValidationError: input/cart problems found before any write. Never retried.
- ConflictError: business-rule conflicts against current state (stock, invoice
  numbers, concurrent resume). InvoiceCollision is retried internally.
- PersistenceError: storage failure inside the atomic write unit. The unit is
  rolled back before this is raised.
- SideEffectWarning: not an exception. Attached to a successful commit when a
  post-commit hook fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class CheckoutError(Exception):
    """Base class for errors raised by the checkout core."""

    code = "CheckoutError"
    http_status = 400

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class ValidationError(CheckoutError):
    """400-level input problem."""

    code = "InvalidCart"
    http_status = 400


class ConflictError(CheckoutError):
    """409-level conflict with current stored state."""

    code = "Conflict"
    http_status = 409


class PersistenceError(CheckoutError):
    """Storage failure; nothing from the failed unit is visible."""

    code = "PersistenceError"
    http_status = 500


# Codes
EMPTY_CART = "EmptyCart"
INSUFFICIENT_PAYMENT = "InsufficientPayment"
NON_POSITIVE_QUANTITY = "NonPositiveQuantity"
INVALID_CART = "InvalidCart"
SALE_NOT_FOUND = "SaleNotFound"
INVALID_STATUS = "InvalidStatus"
INVOICE_COLLISION = "InvoiceCollision"
INSUFFICIENT_STOCK = "InsufficientStock"
SUSPENDED_SALE_CONFLICT = "SuspendedSaleConflict"
INSUFFICIENT_POINTS = "InsufficientPoints"


@dataclass(frozen=True)
class SideEffectWarning:
    """A post-commit hook failed; the sale itself stands."""
    hook: str
    message: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"hook": self.hook, "message": self.message, "details": dict(self.details)}
