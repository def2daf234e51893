# Overview: Shared pytest fixtures; app, tenants, catalog rows and a reference cart.

"""
Pytest fixtures for tillpoint backend tests.

Provides test database setup, a two-tenant world, stocked items and a test client.
"""

from decimal import Decimal

import pytest
from tillpoint import create_app
from tillpoint.config import TestConfig
from tillpoint.extensions import db
from tillpoint.models import Tenant, StockLocation, Item, Customer, Employee
from tillpoint.services import inventory_service
from tillpoint.services.cart_service import Cart, CartLine, CartCustomer, PendingPayment


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Tenant A (first tenant)."""
    tenant = Tenant(name="Tenant A - Corner Shop", slug="tenant-a", timezone="UTC")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Tenant B (second tenant)."""
    tenant = Tenant(name="Tenant B - Beta Goods", slug="tenant-b", timezone="UTC")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def location_a(db_session, tenant_a):
    location = StockLocation(tenant_id=tenant_a.id, location_name="Front Store")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def warehouse_a(db_session, tenant_a):
    location = StockLocation(tenant_id=tenant_a.id, location_name="Warehouse")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def location_b(db_session, tenant_b):
    location = StockLocation(tenant_id=tenant_b.id, location_name="Front Store")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def cashier_a(db_session, tenant_a):
    """Employee in tenant A earning 5% commission."""
    employee = Employee(
        tenant_id=tenant_a.id,
        username="cashier_a",
        commission_rate=Decimal("5"),
        commission_type="percentage",
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def customer_a(db_session, tenant_a):
    customer = Customer(tenant_id=tenant_a.id, first_name="Ada", last_name="Buyer", taxable=True)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def exempt_customer_a(db_session, tenant_a):
    customer = Customer(tenant_id=tenant_a.id, first_name="Tax", last_name="Exempt", taxable=False)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def beans(db_session, tenant_a):
    """Item priced 29.99."""
    item = Item(
        tenant_id=tenant_a.id,
        name="Coffee Beans 1kg",
        item_number="CB-1000",
        cost_price=Decimal("12.50"),
        unit_price=Decimal("29.99"),
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def filters(db_session, tenant_a):
    """Item priced 5.00."""
    item = Item(
        tenant_id=tenant_a.id,
        name="Paper Filters",
        item_number="PF-0100",
        cost_price=Decimal("1.00"),
        unit_price=Decimal("5.00"),
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_b(db_session, tenant_b):
    item = Item(tenant_id=tenant_b.id, name="Beta Widget", unit_price=Decimal("10.00"))
    db_session.add(item)
    db_session.commit()
    return item


def stock(tenant, item, location, quantity: int):
    """Helper to put stock on hand through the service (records an audit row)."""
    return inventory_service.receive(
        tenant_id=tenant.id,
        item_id=item.id,
        location_id=location.id,
        quantity=quantity,
        reason="Opening stock",
    )


def line_for(item, location, quantity: int, **kwargs) -> CartLine:
    """Helper to build a cart line from catalog rows."""
    return CartLine(
        item_id=item.id,
        unit_price=kwargs.pop("unit_price", item.unit_price),
        quantity=quantity,
        location_id=location.id,
        name=item.name,
        item_number=item.item_number,
        **kwargs,
    )


@pytest.fixture(scope='function')
def example_cart(tenant_a, location_a, beans, filters):
    """
    The reference cart: 2 x 29.99 + 1 x 5.00 = 64.98 subtotal,
    6.498 tax at 10%, 71.478 total, paid 71.48 cash.
    """
    stock(tenant_a, beans, location_a, 10)
    stock(tenant_a, filters, location_a, 10)
    cart = Cart()
    cart.add_line(line_for(beans, location_a, 2))
    cart.add_line(line_for(filters, location_a, 1))
    cart.add_payment(PendingPayment("cash", Decimal("71.48")))
    return cart


def customer_ref(customer) -> CartCustomer:
    return CartCustomer(id=customer.id, taxable=customer.taxable, discount_percent=Decimal("0"))


def identity_headers(tenant, employee=None) -> dict:
    """Helper to create register identity headers."""
    headers = {'X-Tenant-Id': str(tenant.id)}
    if employee is not None:
        headers['X-Employee-Id'] = str(employee.id)
    return headers
