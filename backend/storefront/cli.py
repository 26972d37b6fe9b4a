# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--role admin]
#   List users with role and active status.
# - python -m flask users create-admin --email admin@example.com --name "Admin" --password "..."
#   Create an administrator, or promote an existing account (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than 30 days.
# - python -m flask maintenance cleanup-otps
#   Delete expired OTP codes.

import click
from flask.cli import with_appcontext

from .errors import InvalidInput
from .extensions import db
from .models import User
from .models.users import ROLE_ADMIN, ROLES
from .services import otp_service, session_service
from .services.auth_service import hash_password


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("OK Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True)
@click.option('--name', prompt=True, default='Administrator')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(email, name, password):
    """Create an administrator, or promote an existing account to admin."""
    email = email.strip().lower()
    try:
        password_hash = hash_password(password)
    except InvalidInput as exc:
        raise click.ClickException(exc.message)

    user = db.session.query(User).filter_by(email=email).first()
    if user:
        user.role = ROLE_ADMIN
        user.password_hash = password_hash
        user.is_active = True
        db.session.commit()
        click.echo(f"OK Promoted existing user {email} (id={user.id}) to admin.")
        return

    user = User(email=email, name=name, password_hash=password_hash, role=ROLE_ADMIN)
    db.session.add(user)
    db.session.commit()
    click.echo(f"OK Created admin {email} (id={user.id}).")


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User).order_by(User.id)

    if role:
        query = query.filter_by(role=role)

    users = query.all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.name:<25} {user.role:<10} {active_str}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} sessions.")


@maintenance_group.command('cleanup-otps')
@with_appcontext
def cleanup_otps_cli():
    """Delete expired OTP codes."""
    deleted = otp_service.cleanup_expired_otps()
    click.echo(f"Deleted {deleted} expired OTP codes.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
