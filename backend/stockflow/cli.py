# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (bash: export FLASK_APP=wsgi.py).
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db [--org "Org Name"] [--warehouse-code MAIN]
#   Create tables if missing, then ensure a default organization and default warehouse.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management:
# - python -m flask orgs list
# - python -m flask orgs create --name "Acme Corp" [--slug acme]
#
# Stock inspection:
# - python -m flask stock low [--warehouse-id 1]
#   List active products at or below their min_stock_level.
#
# Schema migrations are handled by Flask-Migrate: python -m flask db upgrade

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, User, Warehouse
from .services import stock_service
from .services.crud import slugify


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--warehouse-code', default='MAIN', help='Code for the default warehouse')
@with_appcontext
def init_db(org_name, warehouse_code):
    """
    Idempotent bootstrap.

    Creates any missing tables, a default organization (if none exists) and
    a default warehouse for it (if it has none).
    """
    click.echo("START Initializing database...")
    db.create_all()

    org = db.session.query(Organization).order_by(Organization.id).first()
    if not org:
        org = Organization(name=org_name, slug=slugify(org_name), is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created default organization: {org.name} (ID: {org.id}, Slug: {org.slug})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    warehouse = db.session.query(Warehouse).filter_by(organization_id=org.id, is_default=True).first()
    if not warehouse:
        warehouse = Warehouse(
            organization_id=org.id,
            code=warehouse_code.upper(),
            name="Main Warehouse",
            is_default=True,
        )
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created default warehouse: {warehouse.code} (ID: {warehouse.id})")
    else:
        click.echo(f"PASS Using existing default warehouse: {warehouse.code} (ID: {warehouse.id})")

    click.echo("DONE Database initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to bootstrap.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<20} {'Active':<8} {'Users':<8} {'Warehouses'}")
    click.echo("="*80)

    for org in orgs:
        user_count = db.session.query(User).filter_by(organization_id=org.id).count()
        warehouse_count = db.session.query(Warehouse).filter_by(organization_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"

        click.echo(f"{org.id:<5} {org.name:<30} {org.slug:<20} {active_str:<8} {user_count:<8} {warehouse_count}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--slug', help='Unique slug (default: derived from name)')
@with_appcontext
def create_org_cli(name, slug):
    """Create a new organization (tenant)."""
    slug = slugify(slug or name)
    existing = db.session.query(Organization).filter_by(slug=slug).first()
    if existing:
        click.echo(f"FAIL Organization with slug '{slug}' already exists")
        return

    org = Organization(name=name, slug=slug, is_active=True)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Slug: {org.slug})")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--warehouse-id', type=int, help='Only this warehouse')
@with_appcontext
def low_stock(warehouse_id):
    """List stock rows at or below the product's min_stock_level."""
    rows = stock_service.low_stock_report(warehouse_id=warehouse_id)

    if not rows:
        click.echo("No low stock.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'SKU':<20} {'Product':<30} {'Warehouse':<12} {'Qty':<6} {'Min'}")
    click.echo("="*80)

    for row in rows:
        click.echo(
            f"{row.product.sku:<20} {row.product.name[:30]:<30} {row.warehouse.code:<12} "
            f"{row.quantity:<6} {row.product.min_stock_level}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(stock_group)
