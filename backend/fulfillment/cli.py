# Overview: Flask CLI command groups for bootstrap and master-data seeding.

# backend/fulfillment/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Master data:
# - python -m flask partners create --code C001 --name "Acme Ltd" --debt-limit 1000000
# - python -m flask partners set-status 1 locked
# - python -m flask warehouses create --code WH1 --name "Main Warehouse"
# - python -m flask products create --sku SKU-1 --name "Widget" --price 100 --stock 1:5
#
# Stock:
# - python -m flask stock receive --product-id 1 --warehouse-id 1 --quantity 10

import click
from flask.cli import with_appcontext

from .errors import FulfillmentError
from .extensions import db
from .money import format_cents, to_cents
from .services import catalog_service, inventory_service, partner_service
from .services.concurrency import atomic_unit


def _fail(e: FulfillmentError):
    raise click.ClickException(f"{e.message} ({e.kind})")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('partners')
def partners_group():
    """Partner management commands."""


@partners_group.command('create')
@click.option('--code', required=True, help='Partner code (unique)')
@click.option('--name', required=True, help='Partner name')
@click.option('--type', 'partner_type', type=click.Choice(['customer', 'supplier']), default='customer')
@click.option('--debt-limit', help='Debt ceiling as a decimal amount (default from config)')
@click.option('--phone', help='Phone number')
@with_appcontext
def create_partner_cli(code, name, partner_type, debt_limit, phone):
    patch = {"code": code, "name": name, "type": partner_type, "phone": phone}
    try:
        if debt_limit is not None:
            patch["debt_limit_cents"] = to_cents(debt_limit, "debt_limit")
        partner = partner_service.create_partner(patch=patch)
    except FulfillmentError as e:
        _fail(e)

    click.echo(
        f"PASS Partner {partner.code} created (id={partner.id}, "
        f"limit={format_cents(partner.debt_limit_cents)})"
    )


@partners_group.command('set-status')
@click.argument('partner_id', type=int)
@click.argument('status', type=click.Choice(['active', 'locked']))
@with_appcontext
def set_partner_status_cli(partner_id, status):
    """Lock or unlock a partner."""
    try:
        partner = partner_service.set_partner_status(partner_id, status)
    except FulfillmentError as e:
        _fail(e)
    click.echo(f"PASS Partner {partner.code} is now {partner.status}")


@click.group('warehouses')
def warehouses_group():
    """Warehouse management commands."""


@warehouses_group.command('create')
@click.option('--code', required=True, help='Warehouse code (unique)')
@click.option('--name', required=True, help='Warehouse name')
@click.option('--address', help='Street address')
@with_appcontext
def create_warehouse_cli(code, name, address):
    try:
        warehouse = catalog_service.create_warehouse(patch={"code": code, "name": name, "address": address})
    except FulfillmentError as e:
        _fail(e)
    click.echo(f"PASS Warehouse {warehouse.code} created (id={warehouse.id})")


def _parse_stock(values) -> list[tuple[int, int]]:
    rows = []
    for value in values:
        warehouse_id, sep, quantity = value.partition(":")
        if not sep or not warehouse_id.isdigit() or not quantity.isdigit():
            raise click.BadParameter(f"expected WAREHOUSE_ID:QUANTITY, got {value!r}", param_hint="--stock")
        rows.append((int(warehouse_id), int(quantity)))
    return rows


@click.group('products')
def products_group():
    """Product management commands."""


@products_group.command('create')
@click.option('--sku', required=True, help='SKU (unique)')
@click.option('--name', required=True, help='Product name')
@click.option('--price', help='Retail price as a decimal amount')
@click.option('--unit', help='Unit of measure')
@click.option('--stock', multiple=True, help='Initial stock as WAREHOUSE_ID:QUANTITY (repeatable)')
@with_appcontext
def create_product_cli(sku, name, price, unit, stock):
    inventory = _parse_stock(stock)
    patch = {"sku": sku, "name": name, "unit": unit}
    try:
        if price is not None:
            patch["retail_price_cents"] = to_cents(price, "price")
        product = catalog_service.create_product(patch=patch, inventory=inventory)
    except FulfillmentError as e:
        _fail(e)
    click.echo(f"PASS Product {product.sku} created (id={product.id})")


@click.group('stock')
def stock_group():
    """Inventory commands."""


@stock_group.command('receive')
@click.option('--product-id', type=int, required=True)
@click.option('--warehouse-id', type=int, required=True)
@click.option('--quantity', type=click.IntRange(min=1), required=True)
@with_appcontext
def receive_stock_cli(product_id, warehouse_id, quantity):
    """Add incoming stock to one warehouse."""
    try:
        with atomic_unit("receive_stock"):
            on_hand = inventory_service.receive_stock(product_id, warehouse_id, quantity)
    except FulfillmentError as e:
        _fail(e)
    click.echo(f"PASS Product {product_id} @ warehouse {warehouse_id}: {on_hand} on hand")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(partners_group)
    app.cli.add_command(warehouses_group)
    app.cli.add_command(products_group)
    app.cli.add_command(stock_group)
