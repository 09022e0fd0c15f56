import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Point the app at a throwaway SQLite file before `qa_admin` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="qa_admin_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"

from fastapi.testclient import TestClient  # noqa: E402

from qa_admin.main import app, login_rate_limiter  # noqa: E402


@pytest.fixture(autouse=True)
def reset_login_rate_limiter():
    """Each test starts with an empty login rate-limit window."""
    login_rate_limiter.reset()
    yield


@pytest.fixture(scope="session")
def auth_headers():
    client = TestClient(app)
    client.post('/auth/register', json={'username': 'admin', 'password': 'admin-pass'})
    r = client.post('/auth/login', json={'username': 'admin', 'password': 'admin-pass'})
    assert r.status_code == 200
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def unique_name():
    """Return a factory for names that do not collide across tests."""
    return lambda prefix="item": f"{prefix}-{uuid.uuid4().hex[:8]}"
