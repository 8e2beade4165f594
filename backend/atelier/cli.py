# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/atelier/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@atelier.local] [--admin-password ...]
#   Idempotent bootstrap: creates all tables and the default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Asha" --email asha@atelier.local --password "secret1" --role manager
#   Create a user (prompts if options are omitted).
#
# Stock ledger:
# - python -m flask stock check
#   Verify every stock balance equals the sum of its ledger entries; exits 1 on mismatch.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLES, ROLE_ADMIN
from .services.auth_service import (
    AuthValidationError,
    DuplicateEmailError,
    PasswordValidationError,
    create_user,
    normalize_email,
)
from .services.stock_service import find_ledger_mismatches


DEFAULT_ADMIN_EMAIL = "admin@atelier.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=DEFAULT_ADMIN_EMAIL, help='Email of the seeded admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the seeded admin')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Create tables and seed the admin account.

    Safe to re-run: existing tables and users are left alone.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing atelier back office...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(email=normalize_email(admin_email)).first()
    if existing:
        click.echo(f"WARN  User '{existing.email}' already exists, skipping...")
        return

    try:
        user = create_user(
            name="Administrator",
            email=admin_email,
            password=admin_password,
            role=ROLE_ADMIN,
            otp_verified=True,
        )
    except (AuthValidationError, PasswordValidationError) as e:
        click.echo(f"FAIL Could not create admin: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
    click.echo("\nSECURITY WARNING: change the admin password immediately in production!")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables (deletes all data)."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return

    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<10} {'Active':<7} {'Verified'}")
    click.echo("-" * 70)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<35} {user.role:<10} "
            f"{'yes' if user.is_active else 'no':<7} {'yes' if user.otp_verified else 'no'}"
        )


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='customer', show_default=True)
@with_appcontext
def create_user_command(name, email, password, role):
    """Create a user (prompts if options are omitted)."""
    try:
        user = create_user(name=name, email=email, password=password, role=role, otp_verified=True)
    except (AuthValidationError, PasswordValidationError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    except DuplicateEmailError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance commands."""


@stock_group.command('check')
@with_appcontext
def check_stock():
    """Verify Stock.quantity == SUM(StockLog.change_amount) for every item."""
    mismatches = find_ledger_mismatches()
    if not mismatches:
        click.echo("PASS Stock balances match the ledger")
        return

    for row in mismatches:
        click.echo(
            f"FAIL {row['item_name']} (ID: {row['id']}): balance {row['quantity']} "
            f"!= ledger {row['ledger_total']}"
        )
    click.echo(f"FAIL {len(mismatches)} stock item(s) out of balance")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
