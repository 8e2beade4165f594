"""
Pytest fixtures for atelier backend tests.

Provides test database setup, role fixtures, and test client.
"""

import pytest

from atelier import create_app
from atelier.extensions import db
from atelier.models import Supplier, Design
from atelier.services import token_service
from atelier.services.auth_service import create_user


TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_dir = tmp_path_factory.mktemp("uploads")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'MAIL_SUPPRESS_SEND': True,
        'MAIL_DEFAULT_SENDER': 'no-reply@atelier.test',
        'UPLOAD_FOLDER': str(upload_dir),
        'STABILITY_API_KEY': None,
        'OPENAI_API_KEY': None,
        'IMAGE_PROVIDERS': ['pollinations'],
        'JWT_SECRET': 'test-jwt-secret',
        'CLIENT_URL': 'http://localhost:5173',
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


def make_user(role: str, email: str, name: str | None = None, **kwargs):
    return create_user(
        name=name or role.title(),
        email=email,
        password=kwargs.pop("password", TEST_PASSWORD),
        role=role,
        otp_verified=True,
        **kwargs,
    )


def auth_headers(user) -> dict:
    """Helper to create Authorization headers for an already-verified user."""
    return {'Authorization': f'Bearer {token_service.issue_token(user)}'}


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user("admin", "admin@atelier.test")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user("manager", "manager@atelier.test")


@pytest.fixture(scope='function')
def supplier_user(db_session):
    return make_user("supplier", "supplier@atelier.test")


@pytest.fixture(scope='function')
def customer_user(db_session):
    return make_user("customer", "customer@atelier.test", name="Nimali Perera")


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture(scope='function')
def supplier_headers(supplier_user):
    return auth_headers(supplier_user)


@pytest.fixture(scope='function')
def customer_headers(customer_user):
    return auth_headers(customer_user)


@pytest.fixture(scope='function')
def supplier(db_session, admin_user):
    """A supplier record (the business, not the supplier login)."""
    s = Supplier(name="Lanka Gems", company="Lanka Gems Ltd", email="sales@lankagems.lk",
                 created_by_user_id=admin_user.id)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def customer_design(db_session, customer_user):
    design = Design(
        user_id=customer_user.id,
        title="Rose gold ring",
        prompt="rose gold ring with a single emerald",
        type="ring",
        image_url="/uploads/designs/design_test.png",
        materials=["rose gold"],
        gemstones=["emerald"],
        customizations={},
        estimated_cost_cents=10_000_000,
    )
    db_session.add(design)
    db_session.commit()
    return design
