"""Shared test configuration and fixtures.

Environment is set before anything under studyai is imported, because
settings are read once at import time.
"""
import os
import tempfile
import time
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="studyai-tests-")

os.environ["STUDYAI_ENV_FILE"] = os.path.join(_DB_DIR, "missing.env")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/studyai.db"
os.environ["SERVICE_DATABASE_URL"] = ""
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["AUTH_JWT_AUDIENCE"] = "authenticated"
os.environ["AUTH_URL"] = ""
os.environ["UPSTREAM_MOCK"] = "true"
os.environ["DAILY_LIMIT"] = "15"

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

TEST_JWT_SECRET = os.environ["AUTH_JWT_SECRET"]


def make_token(user_id: str, expires_in: int = 3600, secret: str = TEST_JWT_SECRET) -> str:
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": f"{user_id}@example.com",
        "aud": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def user_id() -> str:
    """A fresh account id, so tests sharing the database never collide."""
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path}/accounts.db"


@pytest.fixture
def mock_provider():
    from studyai.app.providers.mock import MockProvider

    return MockProvider()


@pytest.fixture
def client(mock_provider):
    """TestClient with lifespan running and the upstream replaced by a mock."""
    from studyai.app.api.deps import get_upstream_provider
    from studyai.app.main import app

    app.dependency_overrides[get_upstream_provider] = lambda: mock_provider
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        app.state.account_store = None
