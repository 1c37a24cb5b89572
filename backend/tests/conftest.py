"""
Pytest fixtures for Stockroom backend tests.

Provides test database setup, role users, auth helpers, and fakes for the
language model and the SQL procedure.
"""

from decimal import Decimal

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import User, Product, Vendor, Category
from stockroom.models.auth import ROLE_STAFF, ROLE_MANAGER, ROLE_ADMINISTRATOR
from stockroom.services.auth_service import hash_password, create_default_roles
from stockroom.services import ask_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key-that-is-long-enough-for-hs256',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'MEDIA_ROOT': str(tmp_path_factory.mktemp('media')),
        'OPENAI_API_KEY': '',
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

        create_default_roles()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, *, email: str, role_id: int, first_name: str = "Test", last_name: str = "User") -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        role_id=role_id,
        password_hash=hash_password(TEST_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def staff_user(db_session):
    return make_user(db_session, email="staff@stockroom.test", role_id=ROLE_STAFF, first_name="Sam")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user(db_session, email="manager@stockroom.test", role_id=ROLE_MANAGER, first_name="Morgan")


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, email="admin@stockroom.test", role_id=ROLE_ADMINISTRATOR, first_name="Alex")


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(category_name="Beverages", is_active=True)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def product(db_session, category):
    p = Product(
        product_name="Cold Brew",
        sku="CB-001",
        price=Decimal("4.50"),
        stock=10,
        category_id=category.category_id,
        is_active=True,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def vendor(db_session):
    v = Vendor(vendor_name="Bean Supply Co", contact_email="orders@bean.test", is_active=True)
    db_session.add(v)
    db_session.commit()
    return v


# =============================================================================
# LANGUAGE MODEL / PROCEDURE FAKES
# =============================================================================


class FakeCompletionClient:
    """Returns canned replies and records prompts."""

    def __init__(self, reply="```sql\nSELECT 1\n```", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeProcedureRunner:
    """Stands in for the execute_raw_sql procedure, which SQLite does not have."""

    def __init__(self, rows=None, error=None):
        self.rows = rows if rows is not None else [{"result": []}]
        self.error = error
        self.statements = []

    def run(self, sql_text):
        self.statements.append(sql_text)
        if self.error is not None:
            raise self.error
        return ask_service.unwrap_result(self.rows)


@pytest.fixture(scope='function')
def fake_ask(app):
    """Install a fake bridge for the duration of one test."""
    original = app.extensions[ask_service.EXTENSION_KEY]
    completion = FakeCompletionClient()
    runner = FakeProcedureRunner()
    app.extensions[ask_service.EXTENSION_KEY] = ask_service.AskBridge(completion, runner)
    yield completion, runner
    app.extensions[ask_service.EXTENSION_KEY] = original
