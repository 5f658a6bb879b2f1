"""
Pytest fixtures for ChainTrack backend tests.

Provides test database setup, profile/catalogue fixtures, and test client.
"""

import pytest
from chaintrack import create_app
from chaintrack.extensions import db
from chaintrack.models import Location, Product
from chaintrack.models.auth import ROLE_ADMINISTRATOR, ROLE_OPERATOR, ROLE_VIEWER
from chaintrack.services.auth_service import create_profile


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LINEAGE_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    """Administrator profile."""
    return create_profile(
        username="admin_user",
        email="admin@chaintrack.test",
        password=PASSWORD,
        full_name="Ada Admin",
        role=ROLE_ADMINISTRATOR,
    )


@pytest.fixture(scope='function')
def operator(db_session):
    """Operator profile (may write, may not administer profiles)."""
    return create_profile(
        username="operator_user",
        email="operator@chaintrack.test",
        password=PASSWORD,
        role=ROLE_OPERATOR,
    )


@pytest.fixture(scope='function')
def viewer(db_session):
    """Read-only profile."""
    return create_profile(
        username="viewer_user",
        email="viewer@chaintrack.test",
        password=PASSWORD,
        role=ROLE_VIEWER,
    )


@pytest.fixture(scope='function')
def product(db_session, operator):
    """Product with no transactions yet."""
    p = Product(
        sku="COF-001",
        name="Organic Coffee Beans",
        category="Food & Beverage",
        status="active",
        created_by=operator.id,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def warehouse(db_session):
    loc = Location(
        name="North Plant",
        address="1 Foundry Rd",
        type="warehouse",
        latitude=39.78,
        longitude=-89.65,
    )
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def store(db_session):
    loc = Location(name="Downtown Store", address="45 Main St", type="retail")
    db_session.add(loc)
    db_session.commit()
    return loc


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a profile."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def operator_headers(client, operator):
    return auth_headers(get_auth_token(client, operator.username))


@pytest.fixture(scope='function')
def viewer_headers(client, viewer):
    return auth_headers(get_auth_token(client, viewer.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))
