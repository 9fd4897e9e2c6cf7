# Overview: Flask CLI command groups for bootstrap and stock inspection.

# backend/stockpro/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated databases).
#
# Stock inspection:
# - python -m flask stock balance --store-id 1 --item-id 7
#   Print every balance component and the total for one store/item.
#
# Counts:
# - python -m flask counts post 12
#   Post a PENDING count (creates its settlement vouchers).

import click
from flask.cli import with_appcontext

from .errors import StockError
from .extensions import db
from .services import count_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('stock')
def stock_group():
    """Stock balance inspection."""


@stock_group.command('balance')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--item-id', type=int, required=True, help='Item ID')
@with_appcontext
def show_balance(store_id, item_id):
    """Show the balance breakdown of an item in a store."""
    try:
        breakdown = stock_service.get_balance_breakdown(store_id, item_id)
        exists = stock_service.item_exists_in_store(store_id, item_id)
    except StockError as e:
        raise click.ClickException(str(e))

    click.echo(f"Store {store_id} / Item {item_id} (exists in store: {'yes' if exists else 'no'})")
    for key in (
        "opening_balance",
        "receipts",
        "issues",
        "transfers_in",
        "transfers_out",
        "purchase_invoices",
        "purchase_returns",
        "sales_invoices",
        "sales_returns",
    ):
        click.echo(f"  {key:<18} {breakdown[key]:>10}")
    click.echo(f"  {'balance':<18} {breakdown['balance']:>10}")


@click.group('counts')
def counts_group():
    """Inventory count maintenance."""


@counts_group.command('post')
@click.argument('count_id', type=int)
@with_appcontext
def post_count(count_id):
    """Post a PENDING count."""
    try:
        count = count_service.post_count(count_id)
        db.session.commit()
    except StockError as e:
        db.session.rollback()
        raise click.ClickException(str(e))

    click.echo(f"PASS Posted count {count.code}")
    if count.receipt_voucher_id:
        click.echo(f"  Surplus receipt voucher: {count.receipt_voucher_id}")
    if count.issue_voucher_id:
        click.echo(f"  Shortage issue voucher: {count.issue_voucher_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(counts_group)
