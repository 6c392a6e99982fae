# Overview: Flask CLI command groups for bootstrap, order operations, stock, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/inspection:
# - python -m flask system init-db
#   Create any missing tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load the demo catalog (3 categories, 6 products, 2 customers) into an empty database.
# - python -m flask system check
#   Connection diagnostics: engine, SQLite version, foreign keys, tables.
#
# Orders (every command accepts --backend orm|sql, default ORDER_STORE_BACKEND):
# - python -m flask orders create --customer ana.souza@example.com --item 1:1 --item 5:1
# - python -m flask orders add-item 3 6 2
# - python -m flask orders status 3 IN_PROGRESS
# - python -m flask orders cancel 3
# - python -m flask orders return PED-20261019-0001
# - python -m flask orders show PED-20261019-0001
# - python -m flask orders list --status CONFIRMED
#
# Stock:
# - python -m flask stock batch --category-id 1 --set 1=30 --set 2=5
#
# Maintenance:
# - python -m flask maintenance purge-cancelled --months 6 --yes
#   Delete cancelled orders older than the window (items cascade).

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import StorefrontError, ValidationError
from .extensions import db
from .services import catalog_service, maintenance_service, order_service
from .services.diagnostics_service import connection_diagnostics
from .services.inventory_service import update_stock_batch
from .stores import BACKENDS, build_order_store

backend_option = click.option(
    "--backend",
    type=click.Choice(BACKENDS),
    default=None,
    help="Order store adapter (defaults to ORDER_STORE_BACKEND).",
)


def _store(backend):
    return build_order_store(backend or current_app.config["ORDER_STORE_BACKEND"])


def _fail(e: StorefrontError):
    click.echo(f"FAIL {e.message}")
    for key, value in e.details.items():
        click.echo(f"     {key}: {value}")
    raise click.exceptions.Exit(1)


def _pair(raw: str, sep: str, what: str) -> tuple[str, str]:
    left, found, right = raw.partition(sep)
    if not found or not left.strip() or not right.strip():
        raise ValidationError(f"{what} must look like A{sep}B, got {raw!r}")
    return left.strip(), right.strip()


def _echo_order(order) -> None:
    click.echo(
        f"{order.order_number}  [{order.status.name}]  customer={order.customer_id}  "
        f"total={order.total}  discount={order.discount}  net={order.net_total}"
    )
    for item in order.items:
        click.echo(
            f"   - product {item.product_id}: {item.quantity} x {item.unit_price}"
            f" - {item.discount} = {item.subtotal}"
        )
    if order.notes:
        click.echo(f"   notes: {order.notes}")


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and inspection commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables (existing data is kept)."""
    db.create_all()
    click.echo("PASS Tables ready.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for demo data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Load the demo catalog into an empty database."""
    try:
        counts = catalog_service.seed_demo_catalog()
    except StorefrontError as e:
        _fail(e)
    click.echo(
        f"PASS Loaded {counts['categories']} categories, {counts['products']} products, "
        f"{counts['customers']} customers."
    )


@system_group.command('check')
@with_appcontext
def check():
    """Connection diagnostics."""
    info = connection_diagnostics()
    click.echo(f"Engine:        {info['dialect']} ({info['driver']})")
    click.echo(f"Database:      {info['url']}")
    if "sqlite_version" in info:
        click.echo(f"SQLite:        {info['sqlite_version']}")
    click.echo(f"Foreign keys:  {'ON' if info['foreign_keys'] else 'OFF'}")
    click.echo(f"Tables ({info['table_count']}): {', '.join(info['tables']) or '-'}")
    click.echo(f"Latency:       {info['latency_ms']} ms")
    click.echo(f"Order store:   {current_app.config['ORDER_STORE_BACKEND']}")


# =============================================================================
# ORDERS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order lifecycle commands."""


@orders_group.command('create')
@click.option('--customer', required=True, help='Customer id or email')
@click.option('--item', 'items', multiple=True, help='PRODUCT_ID:QUANTITY (repeatable)')
@click.option('--discount', default=None, help='Order-level discount')
@click.option('--notes', default=None)
@backend_option
@with_appcontext
def create_order_cli(customer, items, discount, notes, backend):
    """Create an order with its items in one transaction."""
    store = _store(backend)
    try:
        lines = [_pair(raw, ":", "--item") for raw in items]
        order = order_service.create_order(store, customer, lines, discount=discount, notes=notes)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo("PASS Order created:")
    _echo_order(order)


@orders_group.command('add-item')
@click.argument('order_id', type=int)
@click.argument('product_id', type=int)
@click.argument('quantity')
@click.option('--discount', default=None)
@backend_option
@with_appcontext
def add_item_cli(order_id, product_id, quantity, discount, backend):
    """Append one item to an open order."""
    store = _store(backend)
    try:
        total = order_service.append_item(store, order_id, product_id, quantity, discount=discount)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"PASS Item added. Order total: {total}")


@orders_group.command('status')
@click.argument('order_id', type=int)
@click.argument('status')
@backend_option
@with_appcontext
def status_cli(order_id, status, backend):
    """Advance an order's status (PENDING, CONFIRMED, IN_PROGRESS, DELIVERED)."""
    store = _store(backend)
    try:
        order = order_service.update_status(store, order_id, status)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"PASS {order.order_number} is now {order.status.name}")


@orders_group.command('cancel')
@click.argument('order_id', type=int)
@backend_option
@with_appcontext
def cancel_cli(order_id, backend):
    """Cancel a PENDING/CONFIRMED order and restock its items."""
    store = _store(backend)
    try:
        order = order_service.cancel_order(store, order_id)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"PASS {order.order_number} cancelled; {sum(i.quantity for i in order.items)} units restocked.")


@orders_group.command('return')
@click.argument('order_number')
@backend_option
@with_appcontext
def return_cli(order_number, backend):
    """Return an order by number: restock its items and mark it cancelled."""
    store = _store(backend)
    try:
        order = order_service.return_order(store, order_number)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"PASS {order.order_number} returned; {sum(i.quantity for i in order.items)} units restocked.")


@orders_group.command('show')
@click.argument('ref')
@backend_option
@with_appcontext
def show_cli(ref, backend):
    """Show an order by id or order number."""
    store = _store(backend)
    try:
        if ref.isdigit():
            order = order_service.get_order(store, int(ref))
        else:
            order = order_service.get_order_by_number(store, ref)
        check = order_service.verify_total(store, order.id)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    _echo_order(order)
    click.echo(f"   total consistent with items: {'yes' if check['consistent'] else 'NO'}")


@orders_group.command('list')
@click.option('--status', default=None)
@click.option('--customer', default=None, help='Customer id or email')
@backend_option
@with_appcontext
def list_cli(status, customer, backend):
    """List orders, newest first."""
    store = _store(backend)
    try:
        orders = order_service.list_orders(store, status=status, customer=customer)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    if not orders:
        click.echo("No orders found.")
        return
    for order in orders:
        _echo_order(order)


# =============================================================================
# STOCK
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock maintenance commands."""


@stock_group.command('batch')
@click.option('--category-id', type=int, required=True)
@click.option('--set', 'levels', multiple=True, required=True, help='PRODUCT_ID=STOCK (repeatable)')
@backend_option
@with_appcontext
def stock_batch_cli(category_id, levels, backend):
    """Set absolute stock for products of one category, all or nothing."""
    store = _store(backend)
    try:
        pairs = [_pair(raw, "=", "--set") for raw in levels]
        updated = update_stock_batch(store, category_id, pairs)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"PASS Updated stock for {updated} products.")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-cancelled')
@click.option('--months', type=int, default=maintenance_service.DEFAULT_PURGE_MONTHS, show_default=True)
@click.option('--yes', is_flag=True, help='Skip confirmation')
@backend_option
@with_appcontext
def purge_cancelled_cli(months, yes, backend):
    """Delete cancelled orders older than --months months."""
    if not yes:
        click.confirm(f"WARN Delete cancelled orders older than {months} months?", abort=True)
    store = _store(backend)
    try:
        deleted = maintenance_service.purge_cancelled_orders(store, older_than_months=months)
    except StorefrontError as e:
        _fail(e)
    finally:
        store.close()
    click.echo(f"Deleted {deleted} cancelled orders older than {months} months.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(maintenance_group)
