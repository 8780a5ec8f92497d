# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/painperdu/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default administrator.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-sample
#   Add demo categories, products and two sellers.
# - python -m flask system cleanup-sessions --retention-days 30
#   Delete expired or revoked session tokens older than the retention window.
#
# User inspection/bootstrap:
# - python -m flask users list [--role seller]
#   List all users with role and active status.
# - python -m flask users create --username marie --email marie@painperdu.local --password "Password123!" --role seller
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .errors import PainPerduError
from .extensions import db
from .models import Category, Product, User, ROLE_ADMIN, ROLE_SELLER
from .services.auth_service import create_user
from .services.session_service import cleanup_expired_sessions
from .validation import USER_ROLES


# Default password meets requirements:
# - Minimum 8 characters
# - Uppercase, lowercase, digit, special char
DEFAULT_PASSWORD = "Password123!"

SAMPLE_CATEGORIES = [
    ("Pain Perdu Classique", "#FF6B6B"),
    ("Pain Perdu Sucré", "#4ECDC4"),
    ("Pain Perdu Salé", "#45B7D1"),
    ("Accompagnements", "#96CEB4"),
    ("Boissons", "#FFEAA7"),
]

# (name, category index, price in cents, unit, description)
SAMPLE_PRODUCTS = [
    ("Pain Perdu Nature", 0, 350, "piece", "Pain perdu traditionnel"),
    ("Pain Perdu aux Fruits", 1, 400, "piece", "Avec fruits de saison"),
    ("Pain Perdu Chocolat", 1, 450, "piece", "Avec pépites de chocolat"),
    ("Pain Perdu Fromage", 2, 500, "piece", "Version salée au fromage"),
    ("Confiture Maison", 3, 200, "package", "Pot de confiture artisanale"),
    ("Café", 4, 150, "piece", "Café filtre"),
    ("Thé", 4, 120, "piece", "Thé varié"),
]

SAMPLE_SELLERS = [
    ("marie", "marie@painperdu.local", "Marie", "Dupont"),
    ("sophie", "sophie@painperdu.local", "Sophie", "Martin"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Administrator username')
@click.option('--admin-email', default='admin@painperdu.local', help='Administrator e-mail')
@with_appcontext
def init_system(admin_username, admin_email):
    """
    Create the schema (if missing) and a default administrator.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing PainPerdu...")
    db.create_all()
    click.echo("PASS Schema ready")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
        return

    try:
        create_user(
            username=admin_username,
            email=admin_email,
            password=DEFAULT_PASSWORD,
            role=ROLE_ADMIN,
            first_name="Admin",
        )
        db.session.commit()
    except PainPerduError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create administrator: {e.message}")
        return

    click.echo(f"PASS Created administrator: {admin_username} ({admin_email}) / {DEFAULT_PASSWORD}")
    click.echo("WARN  Change this password immediately in production!")


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


@system_group.command('seed-sample')
@with_appcontext
def seed_sample():
    """Add demo categories, products and sellers (existing names are skipped)."""
    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).order_by(User.id.asc()).first()
    admin_id = admin.id if admin else None

    categories = []
    for name, color in SAMPLE_CATEGORIES:
        category = db.session.query(Category).filter_by(name=name).first()
        if category is None:
            category = Category(name=name, color=color, created_by_user_id=admin_id)
            db.session.add(category)
            click.echo(f"PASS Created category: {name}")
        categories.append(category)
    db.session.flush()

    for name, category_index, price_cents, unit, description in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(name=name).first() is not None:
            continue
        db.session.add(Product(
            name=name,
            description=description,
            price_cents=price_cents,
            unit=unit,
            category_id=categories[category_index].id,
            created_by_user_id=admin_id,
        ))
        click.echo(f"PASS Created product: {name}")

    for username, email, first_name, last_name in SAMPLE_SELLERS:
        if db.session.query(User).filter_by(username=username).first() is not None:
            continue
        create_user(
            username=username,
            email=email,
            password=DEFAULT_PASSWORD,
            role=ROLE_SELLER,
            first_name=first_name,
            last_name=last_name,
        )
        click.echo(f"PASS Created seller: {username} / {DEFAULT_PASSWORD}")

    db.session.commit()
    click.echo("DONE Sample data ready")


@system_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired or revoked session tokens older than the retention window."""
    deleted = cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session token(s)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), default=ROLE_SELLER, show_default=True, help='Role')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@with_appcontext
def create_user_cli(username, email, password, role, first_name, last_name):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
        db.session.commit()
    except PainPerduError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        raise click.Abort()

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), default=None, help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
