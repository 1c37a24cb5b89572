# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-roles
#   Create the Staff, Manager and Administrator role rows (idempotent).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with their roles.
# - python -m flask users create --first-name Ada --last-name Admin --email admin@stockroom.local --password "Password123!" --role 3
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLE_NAMES
from .services.auth_service import create_user, create_default_roles, PasswordValidationError
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-roles')
@with_appcontext
def init_roles():
    """Create the three role rows if they are missing."""
    created = create_default_roles()
    click.echo(f"PASS Roles ready ({created} created): {', '.join(ROLE_NAMES.values())}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.user_id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    for user in users:
        role_name = ROLE_NAMES.get(user.role_id, "?")
        click.echo(f"{user.user_id:>4}  {user.email:<40} {role_name:<14} {user.first_name} {user.last_name}")


@users_group.command('create')
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--designation', default=None)
@click.option('--role', 'role_id', type=click.IntRange(1, 3), default=1, show_default=True,
              help='1=Staff, 2=Manager, 3=Administrator')
@with_appcontext
def create_user_command(first_name, last_name, email, password, designation, role_id):
    """Create a user."""
    create_default_roles()
    try:
        user = create_user(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            designation=designation,
            role_id=role_id,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.user_id}) with role '{ROLE_NAMES[user.role_id]}'")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
