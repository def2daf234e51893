# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tillpoint/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system seed-demo [--tenant "Demo Store"] [--timezone UTC]
#   Idempotent demo tenant with a location, two items, a customer and an employee.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sales inspection:
# - python -m flask sales suspended --tenant-id 1
#   List suspended (parked) sales.
# - python -m flask sales discard --tenant-id 1 --sale-id 42
#   Discard a suspended sale.
# - python -m flask sales void --sale-id 42 --employee-id 1 --reason "customer changed mind"
#   Void a completed sale and restore its stock.
#
# Inventory:
# - python -m flask inventory level --item-id 1 --location-id 1
# - python -m flask inventory adjust --tenant-id 1 --item-id 1 --location-id 1 --delta 10 --reason "count"
#
# Invoices:
# - python -m flask invoices next --tenant-id 1
#   Allocate (and consume) the next invoice number.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import CheckoutError
from .models import Tenant, StockLocation, Item, Customer, Employee
from .money import money_str
from .services import inventory_service, invoice_service, sales_service, suspended_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed-demo')
@click.option('--tenant', 'tenant_name', default='Demo Store', help='Tenant name')
@click.option('--timezone', 'tz_name', default='UTC', help='IANA timezone for invoice dates')
@with_appcontext
def seed_demo(tenant_name, tz_name):
    """Create a small demo tenant. Safe to run repeatedly."""
    slug = tenant_name.strip().lower().replace(" ", "-")
    tenant = db.session.query(Tenant).filter_by(slug=slug).first()
    if tenant:
        click.echo(f"PASS Using existing tenant: {tenant.name} (ID: {tenant.id})")
        return

    tenant = Tenant(name=tenant_name, slug=slug, timezone=tz_name)
    db.session.add(tenant)
    db.session.flush()

    location = StockLocation(tenant_id=tenant.id, location_name="Front Store")
    employee = Employee(tenant_id=tenant.id, username="cashier", commission_rate=5, commission_type="percentage")
    customer = Customer(tenant_id=tenant.id, first_name="Walk", last_name="In", taxable=True)
    items = [
        Item(tenant_id=tenant.id, name="Coffee Beans 1kg", item_number="CB-1000", cost_price=12, unit_price="29.99"),
        Item(tenant_id=tenant.id, name="Paper Filters", item_number="PF-0100", cost_price=1, unit_price="5.00"),
    ]
    db.session.add_all([location, employee, customer, *items])
    db.session.commit()

    for item in items:
        inventory_service.receive(
            tenant_id=tenant.id,
            item_id=item.id,
            location_id=location.id,
            quantity=50,
            reason="Opening stock",
            actor_id=employee.id,
        )

    click.echo(f"PASS Created tenant {tenant.name} (ID: {tenant.id})")
    click.echo(f"     location={location.id} employee={employee.id} customer={customer.id}")
    click.echo(f"     items={', '.join(str(item.id) for item in items)} (50 on hand each)")


@click.group('sales')
def sales_group():
    """Sale inspection and repair commands."""


@sales_group.command('suspended')
@click.option('--tenant-id', type=int, required=True)
@with_appcontext
def list_suspended(tenant_id):
    """List suspended sales for a tenant."""
    sales = suspended_service.list_suspended(tenant_id)
    if not sales:
        click.echo("No suspended sales")
        return
    click.echo(f"{'ID':<6} {'When':<22} {'Lines':<6} {'Total':>12}  Comment")
    for sale in sales:
        when = sale.sale_time.strftime("%Y-%m-%d %H:%M:%S") if sale.sale_time else ""
        click.echo(f"{sale.id:<6} {when:<22} {len(sale.lines):<6} {money_str(sale.sale_total):>12}  {sale.comment or ''}")


@sales_group.command('discard')
@click.option('--tenant-id', type=int, required=True)
@click.option('--sale-id', type=int, required=True)
@with_appcontext
def discard_suspended(tenant_id, sale_id):
    """Discard a suspended sale."""
    try:
        suspended_service.discard(sale_id, tenant_id)
    except CheckoutError as e:
        click.echo(f"FAIL {e} ({e.code})")
        raise SystemExit(1)
    click.echo(f"PASS Discarded suspended sale {sale_id}")


@sales_group.command('void')
@click.option('--sale-id', type=int, required=True)
@click.option('--employee-id', type=int, required=True)
@click.option('--reason', default=None)
@with_appcontext
def void_sale(sale_id, employee_id, reason):
    """Void a completed sale and put its stock back."""
    try:
        sale = sales_service.void_sale(sale_id, employee_id, reason=reason)
    except CheckoutError as e:
        click.echo(f"FAIL {e} ({e.code})")
        raise SystemExit(1)
    click.echo(f"PASS Voided sale {sale.invoice_number}")


@click.group('inventory')
def inventory_group():
    """Inventory inspection and adjustment commands."""


@inventory_group.command('level')
@click.option('--item-id', type=int, required=True)
@click.option('--location-id', type=int, required=True)
@with_appcontext
def stock_level(item_id, location_id):
    click.echo(str(inventory_service.get_stock_level(item_id, location_id)))


@inventory_group.command('adjust')
@click.option('--tenant-id', type=int, required=True)
@click.option('--item-id', type=int, required=True)
@click.option('--location-id', type=int, required=True)
@click.option('--delta', type=int, required=True)
@click.option('--reason', required=True)
@with_appcontext
def adjust_stock(tenant_id, item_id, location_id, delta, reason):
    try:
        quantity = inventory_service.adjust(
            tenant_id=tenant_id,
            item_id=item_id,
            location_id=location_id,
            delta=delta,
            reason=reason,
        )
    except CheckoutError as e:
        click.echo(f"FAIL {e} ({e.code})")
        raise SystemExit(1)
    click.echo(f"PASS New quantity: {quantity}")


@click.group('invoices')
def invoices_group():
    """Invoice number commands."""


@invoices_group.command('next')
@click.option('--tenant-id', type=int, required=True)
@with_appcontext
def next_invoice(tenant_id):
    """Allocate the next invoice number (it is consumed)."""
    click.echo(invoice_service.issue_invoice_number(tenant_id))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(invoices_group)
