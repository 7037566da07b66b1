import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from backoffice.main import app
from backoffice.auth.jwt import TokenIssuer, get_token_issuer
from backoffice.auth.passwords import PasswordHasher
from backoffice.database.store import InMemoryRecordStore
from backoffice.dependencies import (
    get_password_hasher, get_service_records, get_user_records
)

TEST_SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def hasher():
    # Lowest bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer():
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def user_records():
    return InMemoryRecordStore(unique_fields=("email",))


@pytest.fixture
def service_records():
    return InMemoryRecordStore()


@pytest.fixture
def test_app(hasher, issuer, user_records, service_records):
    """The main app with in-memory stores instead of a database."""
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_issuer] = lambda: issuer
    app.dependency_overrides[get_user_records] = lambda: user_records
    app.dependency_overrides[get_service_records] = lambda: service_records
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac


@pytest.fixture
def auth_headers(issuer):
    return {"Authorization": f"Bearer {issuer.issue(1)}"}


class BrokenRecordStore(InMemoryRecordStore):
    """Raises a raw driver-style fault on every operation."""

    async def find(self, record_id):
        raise RuntimeError("connection reset")

    async def find_all(self):
        raise RuntimeError("connection reset")

    async def find_one_by(self, field, value):
        raise RuntimeError("connection reset")

    async def insert(self, values):
        raise RuntimeError("connection reset")

    async def update(self, record_id, values):
        raise RuntimeError("connection reset")

    async def delete(self, record_id):
        raise RuntimeError("connection reset")


@pytest.fixture
def broken_records():
    return BrokenRecordStore()
