# Overview: Flask CLI command groups for bootstrap, catalog seeding, and user management.

# backend/factures/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and seeds the catalog when it is empty.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask products seed [--replace]
#   Insert the default restaurant catalog (--replace deletes existing products first).
#
# Users:
# - python -m flask users list
#   List all accounts with their role.
# - python -m flask users create --name "Awa" --email awa@example.com --password "motdepasse"
#   Create an account (prompts if options are omitted).
# - python -m flask users set-role awa@example.com admin
#   Promote or demote an account.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .models.auth import ROLES
from .services import products_service
from .services.auth_service import create_user, normalize_email
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the invoicing database.

    Creates missing tables and, if the catalog is empty, inserts the default
    products. Safe to run more than once.
    """
    click.echo("START Initializing invoicing system...")

    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.query(Product).count() == 0:
        count = products_service.seed_default_catalog()
        click.echo(f"PASS Seeded {count} default products")
    else:
        click.echo("PASS Catalog already populated, skipping seed")

    admin_email = current_app.config.get("ADMIN_EMAIL")
    if admin_email:
        click.echo(f"INFO Accounts registered as {admin_email} become admin")
    else:
        click.echo("WARN ADMIN_EMAIL is not set; use 'flask users set-role' to promote an admin")

    click.echo("DONE System initialization complete")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, invoices and the numbering counter included.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('products')
def products_group():
    """Catalog commands."""


@products_group.command('seed')
@click.option('--replace', is_flag=True, help='Delete existing products before seeding')
@with_appcontext
def seed_products(replace):
    """Insert the default restaurant catalog."""
    existing = db.session.query(Product).count()
    if existing and not replace:
        click.echo(f"WARN Catalog already has {existing} products; seeding adds duplicates")

    count = products_service.seed_default_catalog(replace=replace)
    click.echo(f"PASS Inserted {count} products")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo(f"\n{'ID':<5} {'Email':<35} {'Name':<25} {'Role':<8}")
    click.echo("-" * 76)
    for user in users:
        click.echo(f"{user.id:<5} {user.email:<35} {user.name:<25} {user.role:<8}")
    click.echo(f"\nTotal: {len(users)} users")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default=None, help='Role (defaults to ADMIN_EMAIL rule)')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a new account. Password must be at least 8 characters."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice(list(ROLES)))
@with_appcontext
def set_role_cli(email, role):
    """
    Change an account's role.

    Unlike the HTTP endpoint this may change any account, which is how the
    first admin is appointed when ADMIN_EMAIL was not set.
    """
    try:
        email = normalize_email(email)
    except ValidationError as e:
        raise click.ClickException(str(e))

    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise click.ClickException(f"User {email} not found")

    previous = user.role
    user.role = role
    db.session.commit()
    current_app.logger.info("User %s role changed %s -> %s from CLI", user.id, previous, role)
    click.echo(f"PASS {user.email}: {previous} -> {role}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(users_group)
