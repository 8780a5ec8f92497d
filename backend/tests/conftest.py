"""
Pytest fixtures for PainPerdu backend tests.

Provides an in-memory database, users for both roles, a small catalog and
token helpers for the Flask test client.
"""

import pytest

from painperdu import create_app
from painperdu.config import TestConfig
from painperdu.extensions import db
from painperdu.models import Category, Product, User, ROLE_ADMIN, ROLE_SELLER
from painperdu.services.auth_service import hash_password
from painperdu.services.session_service import create_session


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


def _make_user(db_session, username: str, role: str, **extra) -> User:
    user = User(
        username=username,
        email=f"{username}@painperdu.test",
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=extra.pop("is_active", True),
        **extra,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", ROLE_ADMIN, first_name="Admin")


@pytest.fixture(scope='function')
def seller_user(db_session):
    """Seller "alice"."""
    return _make_user(db_session, "alice", ROLE_SELLER, first_name="Alice", last_name="Martin")


@pytest.fixture(scope='function')
def other_seller(db_session):
    """Seller "bob"."""
    return _make_user(db_session, "bob", ROLE_SELLER, first_name="Bob", last_name="Durand")


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Viennoiseries", color="#e27d28")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product(db_session, category):
    """P1, priced 2.50."""
    product = Product(name="Croissant", price_cents=250, category_id=category.id)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product2(db_session, category):
    product = Product(name="Pain au chocolat", price_cents=120, category_id=category.id)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def inactive_product(db_session, category):
    product = Product(name="Chausson", price_cents=300, category_id=category.id, is_active=False)
    db_session.add(product)
    db_session.commit()
    return product


def token_for(user: User) -> str:
    """Open a session for `user` without going through the login endpoint."""
    _, token = create_session(user_id=user.id)
    return token


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
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
def admin_headers(admin_user):
    return auth_headers(token_for(admin_user))


@pytest.fixture(scope='function')
def seller_headers(seller_user):
    return auth_headers(token_for(seller_user))


@pytest.fixture(scope='function')
def other_headers(other_seller):
    return auth_headers(token_for(other_seller))
