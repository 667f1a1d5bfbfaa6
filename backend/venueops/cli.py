# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/venueops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to venueops (PowerShell: $env:FLASK_APP="venueops").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management (MULTI-TENANT):
# - python -m flask tenants list
#   List all tenants.
# - python -m flask tenants create --name "Villa Rosa" --code "ROSA"
#   Create a new tenant.
#
# Directory bootstrap:
# - python -m flask directory add-client --tenant-id 1 --name "Ana Smith" --email ana@example.com
# - python -m flask directory add-resource --tenant-id 1 --kind space --name "Garden Hall" --capacity 180
# - python -m flask directory add-partner --tenant-id 1 --name "DJ Max" --price-type hourly --rate-cents 9000
#
# Inspection:
# - python -m flask supplies low-stock --tenant-id 1
#   List supplies at or below their minimum stock.
# - python -m flask events stranded --tenant-id 1
#   List archived events that still hold supplies.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Tenant, Client, Partner, Resource
from .models.directory import PARTNER_PRICE_FIXED, PARTNER_PRICE_HOURLY
from .resource_ref import KIND_SPACE, KIND_VEHICLE
from .services.event_service import find_stranded_allocations
from .services.stock_service import list_low_stock


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active'}")
    click.echo("="*70)

    for tenant in tenants:
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code or '-':<15} {active_str}")

    click.echo("="*70 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_tenant_cli(name, code):
    """Create a new tenant."""
    existing = db.session.query(Tenant).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Tenant with code '{code}' already exists")
        return

    tenant = Tenant(name=name, code=code, is_active=True)
    db.session.add(tenant)
    db.session.commit()

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


@click.group('directory')
def directory_group():
    """Clients, bookable resources and partners."""


def _require_tenant_cli(tenant_id: int) -> Tenant | None:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None:
        click.echo(f"FAIL Tenant {tenant_id} not found")
    return tenant


@directory_group.command('add-client')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Client name')
@click.option('--email', help='Email address')
@click.option('--phone', help='Phone number')
@with_appcontext
def add_client_cli(tenant_id, name, email, phone):
    if _require_tenant_cli(tenant_id) is None:
        return
    client = Client(tenant_id=tenant_id, name=name, email=email, phone=phone, is_active=True)
    db.session.add(client)
    db.session.commit()
    click.echo(f"PASS Created client: {client.name} (ID: {client.id})")


@directory_group.command('add-resource')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--kind', type=click.Choice([KIND_SPACE, KIND_VEHICLE]), required=True, help='Resource kind')
@click.option('--name', required=True, help='Resource name (unique per kind)')
@click.option('--capacity', type=int, help='Guest or seat capacity')
@with_appcontext
def add_resource_cli(tenant_id, kind, name, capacity):
    if _require_tenant_cli(tenant_id) is None:
        return
    existing = db.session.query(Resource).filter_by(tenant_id=tenant_id, kind=kind, name=name).first()
    if existing:
        click.echo(f"FAIL {kind} '{name}' already exists (ID: {existing.id})")
        return
    resource = Resource(tenant_id=tenant_id, kind=kind, name=name, capacity=capacity, is_active=True)
    db.session.add(resource)
    db.session.commit()
    click.echo(f"PASS Created {kind}: {resource.name} (ID: {resource.id})")


@directory_group.command('add-partner')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Partner name')
@click.option('--category', help='Service category (catering, music, ...)')
@click.option('--price-type', type=click.Choice([PARTNER_PRICE_HOURLY, PARTNER_PRICE_FIXED]),
              default=PARTNER_PRICE_FIXED, show_default=True)
@click.option('--rate-cents', type=int, default=0, show_default=True, help='Hourly or fixed rate in cents')
@with_appcontext
def add_partner_cli(tenant_id, name, category, price_type, rate_cents):
    if _require_tenant_cli(tenant_id) is None:
        return
    partner = Partner(tenant_id=tenant_id, name=name, category=category, price_type=price_type, is_active=True)
    if price_type == PARTNER_PRICE_HOURLY:
        partner.hourly_rate_cents = rate_cents
        partner.fixed_rate_cents = 0
    else:
        partner.fixed_rate_cents = rate_cents
        partner.hourly_rate_cents = 0
    db.session.add(partner)
    db.session.commit()
    click.echo(f"PASS Created partner: {partner.name} (ID: {partner.id})")


@click.group('supplies')
def supplies_group():
    """Supply inspection commands."""


@supplies_group.command('low-stock')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def low_stock_cli(tenant_id):
    """List supplies at or below their minimum stock."""
    supplies = list_low_stock(tenant_id)
    if not supplies:
        click.echo("No supplies below minimum stock.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<6} {'Name':<30} {'Stock':>8} {'Minimum':>8}  {'Status'}")
    click.echo("="*70)
    for supply in supplies:
        click.echo(
            f"{supply.id:<6} {supply.name:<30} {supply.current_stock:>8} {supply.minimum_stock:>8}  {supply.status}"
        )
    click.echo("="*70 + "\n")


@click.group('events')
def events_group():
    """Event inspection commands."""


@events_group.command('stranded')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def stranded_cli(tenant_id):
    """List archived events that still hold allocated or delivered supplies."""
    events = find_stranded_allocations(tenant_id)
    if not events:
        click.echo("No stranded allocations.")
        return

    for event in events:
        held = [line for line in event.supply_lines if line.quantity_allocated > 0]
        click.echo(f"WARN Event {event.id} '{event.title}' (archived) holds {len(held)} supply lines:")
        for line in held:
            click.echo(f"     - {line.supply_name}: {line.quantity_allocated} {line.unit} ({line.status})")
    click.echo("Release with POST /api/events/<id>/supplies/return")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)  # Multi-tenant tenant management
    app.cli.add_command(directory_group)
    app.cli.add_command(supplies_group)
    app.cli.add_command(events_group)
