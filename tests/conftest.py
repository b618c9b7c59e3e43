"""
Global pytest configuration and fixtures for the WorkHub Access API test suite.
"""

import os
from typing import Any, Dict, Generator

import jwt
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before the settings object is built
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["LEGAL_CURRENT_VERSION"] = "v1"

from workhub.core.cache import AccessCache, get_access_cache  # noqa: E402
from workhub.core.database import get_db  # noqa: E402
from workhub.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.access_fixtures import *  # noqa: E402, F403, F401
from tests.fixtures.auth_fixtures import *  # noqa: E402, F403, F401
from tests.helpers.fake_prisma import FakePrisma  # noqa: E402


@pytest.fixture
def fake_db() -> FakePrisma:
    """In-memory Prisma stand-in; each test starts with empty collections."""
    return FakePrisma()


@pytest.fixture
def cache() -> AccessCache:
    """Fresh access cache so cached resolutions never leak between tests."""
    return AccessCache(maxsize=128, ttl=60)


@pytest.fixture
def test_jwt_secret() -> str:
    """JWT secret for generating test tokens."""
    return "test-secret-key-for-testing-only-32-chars"


@pytest.fixture
def test_user_id() -> str:
    """Standard test user ID (the `sub` of the valid token)."""
    return "test-user-id-123"


@pytest.fixture
def test_organization_id() -> str:
    """Standard test organization ID."""
    return "42f929b1-8fdb-45b1-a7cf-34fae2314561"


@pytest.fixture
def valid_jwt_payload(test_user_id: str) -> Dict[str, Any]:
    """Valid JWT payload for testing."""
    return {
        "sub": test_user_id,
        "email": "test@example.com",
        "aud": "authenticated",
        "iss": "supabase",
    }


@pytest.fixture
def valid_jwt_token(test_jwt_secret: str, valid_jwt_payload: Dict[str, Any]) -> str:
    """Generate a valid JWT token for testing."""
    return jwt.encode(valid_jwt_payload, test_jwt_secret, algorithm="HS256")


@pytest.fixture
def invalid_jwt_token() -> str:
    """Token signed with the wrong secret."""
    return jwt.encode({"sub": "someone"}, "wrong-secret-wrong-secret-wrong!", algorithm="HS256")


@pytest.fixture
def auth_headers(valid_jwt_token: str) -> Dict[str, str]:
    """Generate authentication headers with valid JWT token."""
    return {"Authorization": f"Bearer {valid_jwt_token}"}


@pytest.fixture
def client(fake_db: FakePrisma, cache: AccessCache) -> Generator[TestClient, None, None]:
    """
    FastAPI test client wired to the in-memory database and a fresh cache.

    Authentication runs for real: requests carrying `auth_headers` resolve the
    token subject against the `user` collection of `fake_db`.
    """
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_access_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
