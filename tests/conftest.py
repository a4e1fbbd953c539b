"""Shared test fixtures for the storefront test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: admin user, an active product and an inactive product
- pending_transaction: a PENDING transaction with a gateway reference
- sign: helper producing a valid X-OY-Signature for a raw body
- admin_client: test client logged in as the seeded admin
"""

import json

import pytest
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.extensions import db as _db
from storefront.models.product import Product
from storefront.models.transaction import Transaction
from storefront.models.user import User
from storefront.services.oy_service import compute_signature


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(app, db_session):
    """Seed an admin user plus one active and one inactive product.

    Returns a dict of plain IDs so tests can use them across contexts.
    """
    admin = User(
        email="admin@storefront.local",
        password_hash=generate_password_hash("admin123"),
        full_name="Admin User",
        is_admin=True,
    )
    _db.session.add(admin)

    product = Product(
        title="Python Ebook",
        description="A practical guide.",
        price=50000,
        file_url="https://files.example.com/python-ebook.pdf",
        is_active=True,
    )
    _db.session.add(product)

    inactive = Product(
        title="Retired Template",
        description="No longer sold.",
        price=75000,
        file_url="https://files.example.com/retired.zip",
        is_active=False,
    )
    _db.session.add(inactive)
    _db.session.commit()

    return {
        "admin_id": admin.id,
        "admin_email": admin.email,
        "admin_password": "admin123",
        "product_id": product.id,
        "inactive_product_id": inactive.id,
    }


@pytest.fixture
def pending_transaction(app, seed_data):
    """A PENDING transaction that already has an OY! payment-link id."""
    transaction = Transaction(
        product_id=seed_data["product_id"],
        buyer_email="buyer@example.com",
        buyer_name="Budi",
        price=50000,
        status=Transaction.STATUS_PENDING,
        gateway_reference_id="oy-link-123",
    )
    _db.session.add(transaction)
    _db.session.commit()
    return transaction.id


@pytest.fixture
def sign(app):
    """Return a function that signs a body with the test callback secret."""

    def _sign(body):
        return compute_signature(body, app.config["OY_CALLBACK_SECRET"])

    return _sign


@pytest.fixture
def post_callback(client, sign):
    """POST a signed JSON callback and return the response."""

    def _post(payload, signature=None):
        body = json.dumps(payload)
        return client.post(
            "/api/payments/oy/callback",
            data=body,
            content_type="application/json",
            headers={"X-OY-Signature": signature or sign(body)},
        )

    return _post


@pytest.fixture
def admin_client(client, seed_data):
    """Test client with an authenticated admin session."""
    resp = client.post(
        "/auth/login",
        json={"email": seed_data["admin_email"], "password": seed_data["admin_password"]},
    )
    assert resp.status_code == 200
    return client
