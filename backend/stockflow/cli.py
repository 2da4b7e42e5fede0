# Overview: Flask CLI command groups for bootstrap, batch jobs and maintenance.

# backend/stockflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
#
# Users:
# - python -m flask users create --username owner --email owner@stockflow.local --password "Password123!"
#   Create an owner account (prompts if options are omitted).
# - python -m flask users list
#
# Sales batch jobs (schedule from cron):
# - python -m flask sales recalc-velocity [--owner-id 1]
#   Recompute daily_sales_avg for every product from its sale history.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than 30 days.
# - python -m flask maintenance cleanup-reset-tokens
#   Delete password reset tokens past their TTL.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, PasswordValidationError
from .services import velocity_service
from .services.session_service import cleanup_expired_sessions
from .services.password_reset_service import cleanup_expired_reset_tokens


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the model metadata."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('users')
def users_group():
    """Owner account commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, email, password):
    """
    Create a new owner account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(username, email, password)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all owner accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.email:<32} {status}  sales={user.total_sales_created}")


@click.group('sales')
def sales_group():
    """Sales batch jobs."""


@sales_group.command('recalc-velocity')
@click.option('--owner-id', type=int, default=None, help='Limit to one owner')
@with_appcontext
def recalc_velocity(owner_id):
    """Recompute daily_sales_avg from sale history."""
    count = velocity_service.recalculate_all(owner_id=owner_id)
    scope = f"owner {owner_id}" if owner_id else "all owners"
    click.echo(f"PASS Recalculated sales velocity for {count} product(s) ({scope})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired session(s)")


@maintenance_group.command('cleanup-reset-tokens')
@with_appcontext
def cleanup_reset_tokens():
    deleted = cleanup_expired_reset_tokens()
    click.echo(f"PASS Deleted {deleted} expired reset token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(maintenance_group)
