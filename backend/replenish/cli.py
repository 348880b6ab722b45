# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/replenish/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates the schema and the default branches.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Branch directory:
# - python -m flask branches list
# - python -m flask branches create --name "Uptown" --code UP
#
# Inventory inspection:
# - python -m flask inventory verify-ledger [--branch Main]
#   Compare every inventory record against its ledger; exit code 1 on mismatch.
#
# Request inspection:
# - python -m flask requests list [--branch Downtown] [--status pending]
# - python -m flask requests show REQ-2026-0001
#
# Permission inspection:
# - python -m flask perms list [--role staff]

import click
from flask.cli import with_appcontext

from .errors import ReplenishError
from .extensions import db
from .models import Branch
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    KNOWN_ROLES,
    PERMISSION_CATEGORIES,
    get_all_permission_codes,
    get_permission_codes_in_category,
    get_permission_definition,
)
from .services import branch_service, ledger_service, request_service

DEFAULT_BRANCHES = [
    ("Main", "MAIN"),
    ("Downtown", "DT"),
    ("Uptown", "UP"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the replenishment system: schema and default branches.

    Safe to run repeatedly; existing branches are left untouched.
    """
    click.echo("START Initializing replenishment system...")

    db.create_all()
    click.echo("PASS Schema ready")

    for name, code in DEFAULT_BRANCHES:
        existing = db.session.query(Branch).filter_by(name=name).first()
        if existing:
            click.echo(f"PASS Using existing branch: {existing.name} (ID: {existing.id})")
            continue
        branch = branch_service.create_branch(name, code)
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}, Code: {branch.code})")

    click.echo("\nDONE System initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('branches')
def branches_group():
    """Branch directory commands."""


@branches_group.command('list')
@with_appcontext
def list_branches_cli():
    """List all branches."""
    branches = branch_service.list_branches()
    if not branches:
        click.echo("No branches found. Run 'python -m flask system init'.")
        return

    click.echo(f"\n{'ID':<5} {'Name':<25} {'Code':<10} {'Address'}")
    click.echo("-" * 70)
    for branch in branches:
        click.echo(f"{branch.id:<5} {branch.name:<25} {branch.code or '-':<10} {branch.address or '-'}")


@branches_group.command('create')
@click.option('--name', required=True, help='Branch name')
@click.option('--code', default=None, help='Short branch code')
@click.option('--address', default=None)
@click.option('--phone', default=None)
@with_appcontext
def create_branch_cli(name, code, address, phone):
    """Register a new branch."""
    try:
        branch = branch_service.create_branch(name, code, address=address, phone=phone)
    except ReplenishError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('verify-ledger')
@click.option('--branch', default=None, help='Branch id, name or code (default: all)')
@with_appcontext
def verify_ledger_cli(branch):
    """Check that every inventory quantity equals SUM(in) - SUM(out) of its ledger."""
    try:
        branch_id = branch_service.resolve_branch(branch).id if branch else None
    except ReplenishError as e:
        raise click.ClickException(str(e))

    discrepancies = ledger_service.find_ledger_discrepancies(branch_id)
    if not discrepancies:
        click.echo("PASS Ledger and inventory agree")
        return

    click.echo(f"FAIL {len(discrepancies)} discrepancies found")
    click.echo(f"\n{'Branch':<8} {'Item':<20} {'Record':>8} {'Ledger':>8}")
    click.echo("-" * 48)
    for d in discrepancies:
        record_quantity = "-" if d.record_quantity is None else d.record_quantity
        click.echo(f"{d.branch_id:<8} {d.item_id:<20} {record_quantity:>8} {d.ledger_quantity:>8}")
    raise click.exceptions.Exit(1)


@click.group('requests')
def requests_group():
    """Item request inspection commands."""


@requests_group.command('list')
@click.option('--branch', default=None, help='Branch id, name or code')
@click.option('--status', default=None, type=click.Choice(list(request_service.REQUEST_STATUSES)))
@with_appcontext
def list_requests_cli(branch, status):
    """List item requests, newest first."""
    try:
        branch_id = branch_service.resolve_branch(branch).id if branch else None
    except ReplenishError as e:
        raise click.ClickException(str(e))

    requests = request_service.list_requests(branch_id=branch_id, status=status)
    if not requests:
        click.echo("No item requests found.")
        return

    click.echo(f"\n{'Number':<16} {'Branch':<15} {'Status':<10} {'Priority':<9} {'Fulfillment':<12} {'Total'}")
    click.echo("-" * 78)
    for r in requests:
        click.echo(
            f"{r.request_number:<16} {r.branch.name if r.branch else r.branch_id:<15} {r.status:<10} "
            f"{request_service.request_priority(r):<9} {r.fulfillment_status:<12} "
            f"{r.total_amount_cents / 100:.2f}"
        )


@requests_group.command('show')
@click.argument('request_number')
@with_appcontext
def show_request_cli(request_number):
    """Show one request with its lines and fulfillment outcome."""
    r = request_service.get_request_by_number(request_number)
    if not r:
        raise click.ClickException(f"Request {request_number} not found")

    click.echo(f"{r.request_number}  {r.branch.name if r.branch else r.branch_id}  {r.status}")
    click.echo(f"Requested by {r.requested_by}; reviewed by {r.reviewed_by or '-'}")
    click.echo(f"Fulfillment: {r.fulfillment_status}")
    if r.rejection_reason:
        click.echo(f"Rejection reason: {r.rejection_reason}")
    for line in r.lines:
        click.echo(f"  {line.item_id:<12} {line.item_name:<25} x{line.requested_quantity:<5} {line.reason or ''}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', default=None, type=click.Choice(list(KNOWN_ROLES)), help='Only permissions granted to this role')
@click.option('--category', default=None, type=click.Choice(list(PERMISSION_CATEGORIES)), help='Only permissions in this category')
@with_appcontext
def list_permissions_cli(role, category):
    """List permissions (optionally filtered by role and category)."""
    codes = DEFAULT_ROLE_PERMISSIONS[role] if role else get_all_permission_codes()
    if category:
        in_category = set(get_permission_codes_in_category(category))
        codes = [code for code in codes if code in in_category]

    click.echo(f"\n{'Code':<25} {'Category':<12} {'Name'}")
    click.echo("-" * 60)
    for code in codes:
        definition = get_permission_definition(code)
        click.echo(f"{code:<25} {definition['category']:<12} {definition['name']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(requests_group)
    app.cli.add_command(perms_group)
