"""
Pytest fixtures for the invoicing backend tests.

Provides an in-memory database, a per-test wipe, the test client and
signed-in users.
"""

import pytest

from factures import create_app
from factures.extensions import db
from factures.models import Product


ADMIN_EMAIL = "admin@resto.test"
PASSWORD = "motdepasse123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'ADMIN_EMAIL': ADMIN_EMAIL,
        'SEED_CATALOG_ON_EMPTY': False,
        'RESTAURANT_NAME': 'Chez Awa',
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
def ketchup(db_session):
    product = Product(name="Ketchup", price=4000, unit="bouteille")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def mayonnaise(db_session):
    product = Product(name="Mayonnaise", price=7000, unit="pot")
    db_session.add(product)
    db_session.commit()
    return product


def register(client, email: str, name: str = "Awa", password: str = PASSWORD):
    return client.post('/api/auth/register', json={
        'name': name,
        'email': email,
        'password': password,
    })


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, db_session):
    """Signed-in admin (registered with ADMIN_EMAIL)."""
    resp = register(client, ADMIN_EMAIL, name="Patronne")
    assert resp.status_code == 201
    return auth_headers(resp.get_json()['token'])


@pytest.fixture(scope='function')
def user_headers(client, db_session):
    """Signed-in plain user."""
    resp = register(client, "serveur@resto.test", name="Moussa")
    assert resp.status_code == 201
    return auth_headers(resp.get_json()['token'])
