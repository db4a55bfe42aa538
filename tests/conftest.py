"""
Shared test fixtures.

Provides an in-memory SQLite database per test, transactional sessions,
identity-token minting and an HTTP client wired to a fake payment processor.
"""
import os
from datetime import datetime, timedelta, timezone

TEST_SECRET = "knowloop-test-secret-0123456789abcdef"
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Keep tests away from real credentials and databases
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("IDENTITY_SECRET", TEST_SECRET)
os.environ.setdefault("STRIPE_SECRET_KEY", "")

import httpx
import jwt
import pytest

from knowloop.config import Settings
from knowloop.database import Database
from knowloop.models import User
from knowloop.services.identity import Identity


class FakePaymentProcessor:
    """Records requested intents instead of calling Stripe"""

    def __init__(self):
        self.calls = []

    async def create_payment_intent(self, amount_minor, currency="usd"):
        self.calls.append((amount_minor, currency))
        return f"pi_test_{amount_minor}_secret"


def mint_token(email, secret=TEST_SECRET, expires_in=timedelta(hours=1)):
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"email": email, "iat": now, "exp": now + expires_in},
        secret,
        algorithm="HS256",
    )


def auth_header(email):
    return {"Authorization": f"Bearer {mint_token(email)}"}


def make_identity(email):
    return Identity(email=email)


@pytest.fixture
async def database():
    """Fresh in-memory database with all tables"""
    db = Database(TEST_DATABASE_URL)
    await db.open()
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
async def db(database):
    """Session committed when the test finishes"""
    async with database.session() as session:
        yield session


@pytest.fixture
def add_user(database):
    """Insert a user with a role in its own committed transaction"""

    async def _add_user(email, role="student", name=None):
        async with database.session() as session:
            user = User(email=email, role=role, name=name or email.split("@")[0])
            session.add(user)
        return user

    return _add_user


@pytest.fixture
def payment_processor():
    return FakePaymentProcessor()


@pytest.fixture
async def client(database, payment_processor):
    """HTTP client bound to an app using the test database"""
    from main import create_app

    app = create_app(
        settings=Settings(database_url=TEST_DATABASE_URL, identity_secret=TEST_SECRET),
        database=database,
        payment_processor=payment_processor,
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
