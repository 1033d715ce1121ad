# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Users:
# - python -m flask users create --name "Ana Cruz" --email ana@example.com --password "Password123!"
#   Create a dashboard user (prompts if options are omitted).
# - python -m flask users list
#   List users with active status and last login.
#
# Reference data (POS terminals must reference existing names):
# - python -m flask reference add-store --name "STORE1" [--description "..."]
# - python -m flask reference add-branch --name "BRANCH1" --store "STORE1" [--description "..."]
# - python -m flask reference list
#
# Sessions:
# - python -m flask sessions list
#   Show the active session row of every user.
# - python -m flask sessions clear [--user 3]
#   Force logout of one user, or of everyone.
# - python -m flask sessions prune
#   Delete rows idle longer than SESSION_IDLE_TIMEOUT_MINUTES.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Store, User
from .services.auth_service import create_user, PasswordValidationError
from .services.session_service import StorageFailure
from .time_utils import to_utc_z


def _store():
    return current_app.extensions["session_store"]


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@click.group('users')
def users_group():
    """Dashboard user management."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address (login)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(name, email, password):
    """
    Create a new dashboard user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name, email, password)
        click.echo(f"PASS Created user: {user.name} <{user.email}> (ID: {user.id})")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Active':<8} {'Last login'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        last_login = to_utc_z(user.last_login_at) or "-"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {active_str:<8} {last_login}")

    click.echo("="*90 + "\n")


# =============================================================================
# REFERENCE DATA
# =============================================================================

@click.group('reference')
def reference_group():
    """Stores and branches referenced by POS payloads."""


@reference_group.command('add-store')
@click.option('--name', required=True, help='Store name (as sent by terminals)')
@click.option('--description', default=None, help='Store description')
@with_appcontext
def add_store_cli(name, description):
    name = name.strip()
    if db.session.query(Store).filter_by(store_name=name).first():
        click.echo(f"FAIL Store '{name}' already exists")
        return

    store = Store(store_name=name, store_description=description, active="yes")
    db.session.add(store)
    db.session.commit()
    click.echo(f"PASS Created store: {store.store_name} (ID: {store.id})")


@reference_group.command('add-branch')
@click.option('--name', required=True, help='Branch name (as sent by terminals)')
@click.option('--store', 'store_name', required=True, help='Owning store name')
@click.option('--description', default=None, help='Branch description')
@with_appcontext
def add_branch_cli(name, store_name, description):
    name = name.strip()
    store = db.session.query(Store).filter_by(store_name=store_name.strip()).first()
    if not store:
        click.echo(f"FAIL Store '{store_name}' not found")
        return
    if db.session.query(Branch).filter_by(branch_name=name).first():
        click.echo(f"FAIL Branch '{name}' already exists")
        return

    branch = Branch(branch_name=name, branch_description=description, store_name=store.store_name, status="active")
    db.session.add(branch)
    db.session.commit()
    click.echo(f"PASS Created branch: {branch.branch_name} (ID: {branch.id}, Store: {store.store_name})")


@reference_group.command('list')
@with_appcontext
def list_reference():
    """List stores and their branches."""
    stores = db.session.query(Store).order_by(Store.store_name).all()
    if not stores:
        click.echo("No stores found.")
        return

    for store in stores:
        click.echo(f"{store.store_name} (ID: {store.id}, active: {store.active})")
        branches = db.session.query(Branch).filter_by(store_name=store.store_name).order_by(Branch.branch_name).all()
        for branch in branches:
            click.echo(f"   - {branch.branch_name} (ID: {branch.id}, status: {branch.status})")


# =============================================================================
# SESSIONS
# =============================================================================

@click.group('sessions')
def sessions_group():
    """Single-session store maintenance."""


@sessions_group.command('list')
@with_appcontext
def list_sessions():
    """Show the active session of every user."""
    try:
        rows = _store().list_sessions()
    except StorageFailure as e:
        raise click.ClickException(f"Session store unavailable: {e}")

    if not rows:
        click.echo("No active sessions.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'User':<6} {'Email':<35} {'IP':<16} {'Last activity'}")
    click.echo("="*90)
    for row in rows:
        email = row.user.email if row.user else "-"
        click.echo(f"{row.user_id:<6} {email:<35} {row.ip_address or '-':<16} {to_utc_z(row.last_activity)}")
    click.echo("="*90 + "\n")


@sessions_group.command('clear')
@click.option('--user', 'user_id', type=int, default=None, help='Only clear this user id')
@with_appcontext
def clear_sessions(user_id):
    """Force logout by deleting session rows."""
    try:
        if user_id is not None:
            deleted = _store().clear(user_id)
            click.echo(f"PASS Cleared {deleted} session(s) for user {user_id}")
        else:
            deleted = _store().clear_all()
            click.echo(f"PASS Cleared {deleted} session(s)")
    except StorageFailure as e:
        raise click.ClickException(f"Session store unavailable: {e}")


@sessions_group.command('prune')
@with_appcontext
def prune_sessions():
    """Delete sessions idle longer than the configured window."""
    store = _store()
    if store.idle_timeout is None:
        click.echo("Idle expiry is disabled (SESSION_IDLE_TIMEOUT_MINUTES=0); nothing to prune.")
        return
    try:
        deleted = store.prune_expired()
    except StorageFailure as e:
        raise click.ClickException(f"Session store unavailable: {e}")
    click.echo(f"PASS Pruned {deleted} idle session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(users_group)
    app.cli.add_command(reference_group)
    app.cli.add_command(sessions_group)
