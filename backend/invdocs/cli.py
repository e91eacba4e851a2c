# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/invdocs/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all accounts.
# - python -m flask users create --username alice --password "longenough"
#   Create an account (prompts if options are omitted; no security code needed).
#
# Activity log:
# - python -m flask logs tail --limit 20
#   Show the most recent activity entries.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import activity_service
from .services.auth_service import create_user, ensure_default_admin, list_users
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables (if missing) and the default admin account (if no accounts exist).

    SECURITY: Change the default admin password immediately in production!
    """
    click.echo("START Initializing inventory system...")

    db.create_all()
    click.echo("PASS Tables ready")

    user = ensure_default_admin()
    if user is not None:
        click.echo(f"PASS Created default admin: {user.username}")
    else:
        click.echo("PASS Accounts already exist, default admin not created")

    current_app.logger.info("System initialized")
    click.echo("DONE Inventory system initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA! Stored blobs are not removed.
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
    """Account inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 50)
    click.echo(f"{'ID':<5} {'Username':<25} {'Created'}")
    click.echo("=" * 50)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M") if user.created_at else "-"
        click.echo(f"{user.id:<5} {user.username:<25} {created}")
    click.echo("=" * 50 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, password):
    try:
        user = create_user(username, password)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    activity_service.log_activity("System", f"Registered user: {user.username}")
    click.echo(f"PASS Created user: {user.username} (ID: {user.id})")


@click.group('logs')
def logs_group():
    """Activity log inspection."""


@logs_group.command('tail')
@click.option('--limit', type=int, default=20, show_default=True, help='Number of entries')
@with_appcontext
def tail_logs(limit):
    entries = activity_service.list_recent(limit)
    if not entries:
        click.echo("No activity recorded.")
        return
    for entry in reversed(entries):
        stamp = entry.time.strftime("%Y-%m-%d %H:%M:%S") if entry.time else "-"
        click.echo(f"{stamp}  {entry.user:<20} {entry.action}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(logs_group)
