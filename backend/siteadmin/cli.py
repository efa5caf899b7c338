# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/siteadmin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--email admin@siteadmin.local] [--password "Password123!"]
#   Idempotent bootstrap: creates tables and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Admin accounts:
# - python -m flask users list
#   List all admin accounts with active status.
# - python -m flask users create --email ops@example.com --name "Ops" --password "Password123!"
#   Create an admin (prompts if options are omitted).
#
# Category counters:
# - python -m flask categories usage
#   Print stored usage counters next to live product counts.
# - python -m flask categories reconcile [--no-create-missing]
#   Recompute every product category counter from the products table.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import AdminUser
from .services.auth_service import create_admin, PasswordValidationError
from .services import category_service
from .services import category_usage_service

DEFAULT_ADMIN_EMAIL = "admin@siteadmin.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default=DEFAULT_ADMIN_EMAIL, help='Default admin email')
@click.option('--password', default=DEFAULT_ADMIN_PASSWORD, help='Default admin password')
@with_appcontext
def init_system(email, password):
    """
    Create all tables and the default admin account.

    Safe to re-run: existing tables and accounts are left alone.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing site admin...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(AdminUser).filter(AdminUser.email == email.strip().lower()).first()
    if existing:
        click.echo(f"WARN  Admin '{existing.email}' already exists, skipping...")
    else:
        try:
            user = create_admin(email, password, name="Admin")
            click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            return

    click.echo("\n" + "="*60)
    click.echo("DONE Site admin initialized")
    click.echo("="*60)
    click.echo(f"\nDefault credentials (CHANGE IN PRODUCTION!): {email} / {password}")
    click.echo("")


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


@click.group('users')
def users_group():
    """Admin account inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', default='Admin', help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(email, name, password):
    """
    Create a new admin account.

    Password must be at least 8 characters.
    """
    try:
        user = create_admin(email, password, name=name)
        click.echo(f"PASS Created admin: {user.name} ({user.email})")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except ValueError as e:
        click.echo(f"FAIL Failed to create admin: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all admin accounts."""
    users = db.session.query(AdminUser).order_by(AdminUser.id.asc()).all()

    if not users:
        click.echo("No admins found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<35} {'Active':<8}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<35} {active_str:<8}")

    click.echo("="*80 + "\n")


@click.group('categories')
def categories_group():
    """Category usage counter inspection and repair."""


@categories_group.command('usage')
@with_appcontext
def category_usage():
    """Print stored usage counters next to live product counts."""
    report = category_service.usage_report()
    if not report:
        click.echo("No categories found.")
        return

    click.echo(f"{'Name':<30} {'Products':>10} {'Stored':>10}")
    for row in report:
        marker = "" if row["count"] == row["usageCount"] else "  DRIFT"
        click.echo(f"{row['name']:<30} {row['count']:>10} {row['usageCount']:>10}{marker}")


@categories_group.command('reconcile')
@click.option('--create-missing/--no-create-missing', default=True,
              help='Create categories for product labels that have no category row')
@with_appcontext
def reconcile_categories(create_missing):
    """Recompute every product category usage counter from the products table."""
    result = category_usage_service.reconcile_usage_counts(create_missing=create_missing)

    click.echo(f"PASS Checked {result['checked']} categories")
    for row in result["corrected"]:
        click.echo(f"FIX   {row['name']}: {row['from']} -> {row['to']}")
    for row in result["created"]:
        click.echo(f"NEW   {row['name']} (usage {row['usageCount']})")
    if not result["corrected"] and not result["created"]:
        click.echo("PASS All counters already consistent")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(categories_group)
