# Overview: Flask CLI command groups for bootstrap, inspection, and demo data.

# backend/chaintrack/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables (if missing) and the default profiles.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Profile inspection/bootstrap:
# - python -m flask users list
#   List all profiles with role and active status.
# - python -m flask users create --username admin --email admin@chaintrack.local --password "Password123!" --role Administrator
#   Create a profile (prompts if options are omitted).
#
# Demo data:
# - python -m flask demo seed
#   Locations, products, lineages and logistics readings for the dashboard.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Location, LogisticsDetail, Product, Profile
from .models.auth import PROFILE_ROLES, ROLE_ADMINISTRATOR, ROLE_MANAGER, ROLE_OPERATOR, ROLE_VIEWER
from .services.auth_service import create_profile, PasswordValidationError
from .services.lineage_service import append_transaction
from .validation import ConflictError, ValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_PROFILES = [
    ("admin", "admin@chaintrack.local", ROLE_ADMINISTRATOR),
    ("manager", "manager@chaintrack.local", ROLE_MANAGER),
    ("operator", "operator@chaintrack.local", ROLE_OPERATOR),
    ("viewer", "viewer@chaintrack.local", ROLE_VIEWER),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database and the default profiles.

    Creates:
    - All tables that do not exist yet
    - Profiles: admin, manager, operator, viewer (one per role)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing ChainTrack...")

    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default profiles...")
    for username, email, role in DEFAULT_PROFILES:
        existing = db.session.query(Profile).filter_by(username=username).first()
        if existing:
            click.echo(f"WARN  Profile '{username}' already exists, skipping...")
            continue
        try:
            create_profile(username=username, email=email, password=DEFAULT_PASSWORD, role=role)
            click.echo(f"PASS Created profile: {username} ({email}) with role '{role}'")
        except (PasswordValidationError, ConflictError, ValidationError) as e:
            click.echo(f"FAIL Failed to create profile '{username}': {str(e)}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE ChainTrack initialized")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, email, _ in DEFAULT_PROFILES:
        click.echo(f"   {username:<9} -> {email:<27} / {DEFAULT_PASSWORD}")
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


# =============================================================================
# PROFILE MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """Profile inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(PROFILE_ROLES)), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@click.option('--company', 'company_name', default=None, help='Company name')
@with_appcontext
def create_user_cli(username, email, password, role, full_name, company_name):
    """
    Create a new profile.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        profile = create_profile(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            company_name=company_name,
            role=role,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except (ConflictError, ValidationError) as e:
        click.echo(f"FAIL Failed to create profile: {str(e)}")
        return

    click.echo(f"PASS Created profile: {profile.username} ({profile.email}) with role '{profile.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all profiles with their roles."""
    profiles = db.session.query(Profile).order_by(Profile.id.asc()).all()

    if not profiles:
        click.echo("No profiles found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<32} {'Active':<8} {'Role'}")
    click.echo("=" * 90)

    for profile in profiles:
        active_str = "Yes" if profile.is_active else "No"
        click.echo(f"{profile.id:<5} {profile.username:<20} {profile.email:<32} {active_str:<8} {profile.role}")


# =============================================================================
# DEMO DATA
# =============================================================================

DEMO_LOCATIONS = [
    ("North Plant", "1 Foundry Rd, Springfield", "warehouse", 39.78, -89.65),
    ("Central DC", "200 Logistics Way, Columbus", "distribution_center", 39.96, -83.00),
    ("Downtown Store", "45 Main St, Chicago", "retail", 41.88, -87.63),
]

DEMO_PRODUCTS = [
    ("DEMO-001", "Organic Coffee Beans", "Food & Beverage"),
    ("DEMO-002", "Insulin Pens (10 pack)", "Pharmaceuticals"),
    ("DEMO-003", "Wireless Earbuds", "Electronics"),
]

# (type, from index, to index, status, temperature, humidity, duration, vehicle, storage)
DEMO_JOURNEY = [
    ("production", None, 0, "completed", 21.0, 45.0, None, None, "Room Temperature"),
    ("transport", 0, 1, "completed", 6.5, 60.0, "14 hours", "Truck", "Refrigerated"),
    ("storage", 1, 1, "completed", 4.0, 55.0, "48 hours", None, "Refrigerated"),
    ("delivery", 1, 2, "in_progress", 7.5, 58.0, "6 hours", "Van", "Refrigerated"),
]


@click.group('demo')
def demo_group():
    """Demo data commands."""


@demo_group.command('seed')
@click.option('--username', default='admin', help='Profile recorded as creator of the demo rows')
@with_appcontext
def seed_demo(username):
    """
    Seed locations, products and one full lineage per product.

    Skips products whose SKU already exists, so it can be re-run.
    """
    actor = db.session.query(Profile).filter_by(username=username).first()
    if not actor:
        click.echo(f"FAIL Profile '{username}' not found. Run 'python -m flask system init' first.")
        return

    locations = []
    for name, address, loc_type, lat, lon in DEMO_LOCATIONS:
        loc = db.session.query(Location).filter_by(name=name).first()
        if not loc:
            loc = Location(name=name, address=address, type=loc_type, latitude=lat, longitude=lon)
            db.session.add(loc)
            db.session.commit()
        locations.append(loc)
    click.echo(f"PASS {len(locations)} locations ready")

    for sku, name, category in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"WARN  Product {sku} already exists, skipping...")
            continue

        product = Product(sku=sku, name=name, category=category, status="active", created_by=actor.id)
        db.session.add(product)
        db.session.commit()

        for txn_type, src, dst, status, temp, hum, duration, vehicle, storage in DEMO_JOURNEY:
            txn = append_transaction(
                actor=actor,
                patch={
                    "product_id": product.id,
                    "transaction_type": txn_type,
                    "from_location_id": locations[src].id if src is not None else None,
                    "to_location_id": locations[dst].id if dst is not None else None,
                    "status": status,
                },
            )
            db.session.add(LogisticsDetail(
                transaction_id=txn.id,
                temperature=temp,
                humidity=hum,
                transport_duration=duration,
                transport_vehicle=vehicle,
                storage_conditions=storage,
                quality_checks={"visual_inspection": True},
            ))
            db.session.commit()

        click.echo(f"PASS Seeded {sku} with {len(DEMO_JOURNEY)} transactions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(demo_group)
