# Overview: Read-only lookups against catalog, customer, employee and location data.

"""
Catalog Service - collaborator lookups consumed by checkout

Catalog/customer/location maintenance is owned elsewhere. Checkout only reads:
- item -> name, price, cost, serialized flag
- customer -> taxable flag, default discount
- stock location -> existence within the tenant

All lookups are tenant-scoped when a tenant_id is given and never lock.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Tenant, Item, Customer, Employee, StockLocation
from ..errors import ValidationError, INVALID_CART
from .cart_service import CartCustomer


def get_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None or not tenant.is_active:
        raise ValidationError("Tenant not found", code="TenantNotFound", details={"tenant_id": tenant_id})
    return tenant


def get_item(item_id: int, tenant_id: int | None = None) -> Item | None:
    item = db.session.get(Item, item_id)
    if item is None:
        return None
    if tenant_id is not None and item.tenant_id != tenant_id:
        return None
    return item


def get_items(item_ids, tenant_id: int | None = None) -> dict[int, Item]:
    ids = set(item_ids)
    if not ids:
        return {}
    q = db.session.query(Item).filter(Item.id.in_(ids))
    if tenant_id is not None:
        q = q.filter(Item.tenant_id == tenant_id)
    return {item.id: item for item in q.all()}


def get_customer(customer_id: int, tenant_id: int | None = None) -> Customer | None:
    customer = db.session.get(Customer, customer_id)
    if customer is None or customer.deleted:
        return None
    if tenant_id is not None and customer.tenant_id != tenant_id:
        return None
    return customer


def customer_ref(customer: Customer) -> CartCustomer:
    return CartCustomer(
        id=customer.id,
        taxable=bool(customer.taxable),
        discount_percent=customer.discount_percent,
    )


def get_employee(employee_id: int, tenant_id: int | None = None) -> Employee | None:
    employee = db.session.get(Employee, employee_id)
    if employee is None or employee.deleted:
        return None
    if tenant_id is not None and employee.tenant_id != tenant_id:
        return None
    return employee


def get_location(location_id: int, tenant_id: int | None = None) -> StockLocation | None:
    location = db.session.get(StockLocation, location_id)
    if location is None or location.deleted:
        return None
    if tenant_id is not None and location.tenant_id != tenant_id:
        return None
    return location


def list_locations(tenant_id: int) -> list[StockLocation]:
    return (
        db.session.query(StockLocation)
        .filter_by(tenant_id=tenant_id, deleted=False)
        .order_by(StockLocation.location_name)
        .all()
    )


def require_references(cart, tenant_id: int) -> None:
    """
    Reject carts pointing at items, locations or customers outside the tenant.

    Raises ValidationError listing every bad reference.
    """
    missing = []
    items = get_items((line.item_id for line in cart.lines), tenant_id)
    for index, line in enumerate(cart.lines):
        item = items.get(line.item_id)
        if item is None or item.deleted:
            missing.append({"line": index, "item_id": line.item_id})
        if get_location(line.location_id, tenant_id) is None:
            missing.append({"line": index, "location_id": line.location_id})

    if cart.customer is not None and get_customer(cart.customer.id, tenant_id) is None:
        missing.append({"customer_id": cart.customer.id})

    if missing:
        raise ValidationError(
            "Cart references unknown items, locations or customers",
            code=INVALID_CART,
            details={"missing": missing},
        )


def refresh_customer(cart, tenant_id: int) -> None:
    """
    Replace the cart's customer with the stored record.

    The taxable flag and default discount always come from the customer
    row, never from the client payload.
    """
    if cart.customer is None:
        return
    customer = get_customer(cart.customer.id, tenant_id)
    if customer is None:
        raise ValidationError(
            "Customer not found",
            code=INVALID_CART,
            details={"customer_id": cart.customer.id},
        )
    cart.customer = customer_ref(customer)
