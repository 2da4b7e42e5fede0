"""
Pytest fixtures for StockFlow backend tests.

Provides an in-memory database, owner accounts, products and auth helpers.
External collaborators are offline by default: Cloudinary is unconfigured (so
uploads fail with StorageError) and mail goes through Flask-Mail with sending
suppressed (TESTING=True), which mail.record_messages() can observe.
"""

import pytest
from stockflow import create_app
from stockflow.extensions import db
from stockflow.models import User, Product
from stockflow.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MAIL_TRANSPORT': 'smtp',
        'MAIL_DEFAULT_SENDER': 'billing@stockflow.test',
        'BREVO_API_KEY': None,
        'CLOUDINARY_CLOUD_NAME': None,
        'BILL_UPLOAD_ATTEMPTS': 1,
        'BILL_DISPATCH_MODE': 'inline',
        'SALES_VELOCITY_MODE': 'deferred',
        'LOW_STOCK_THRESHOLD': 10,
        'FORECAST_WARNING_DAYS': 7,
        'FRONTEND_URL': 'http://localhost:5173',
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


def _make_user(db_session, username: str, email: str) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(PASSWORD),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Owner A (first account)."""
    return _make_user(db_session, "owner_a", "owner_a@stockflow.test")


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Owner B (second account)."""
    return _make_user(db_session, "owner_b", "owner_b@stockflow.test")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(owner, name, inventory, price_cents, ...)."""
    def _make(owner, name="Widget", inventory=10, price_cents=10000, cp_cents=6000, **extra):
        product = Product(
            owner_id=owner.id,
            name=name,
            inventory=inventory,
            price_cents=price_cents,
            cp_cents=cp_cents,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def get_auth_token(client, identifier: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': identifier,
        'password': password,
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Create authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(client, owner_a):
    return auth_headers(get_auth_token(client, owner_a.username))


@pytest.fixture(scope='function')
def headers_b(client, owner_b):
    return auth_headers(get_auth_token(client, owner_b.username))
