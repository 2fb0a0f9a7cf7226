"""
pytest configuration – point the portal at a throwaway SQLite file and
initialise tables before tests run. Provides a shared session-scoped
admin token and resets the login lockout between tests.
"""
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="exam-portal-tests-")
os.environ.setdefault("EXAMPORTAL_DATABASE_URL", f"sqlite:///{_tmp_dir}/test.db")
os.environ.setdefault("EXAMPORTAL_UPLOAD_DIR", os.path.join(_tmp_dir, "uploads"))
os.environ.setdefault("EXAMPORTAL_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EXAMPORTAL_LOG_FORMAT", "text")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from exam_portal.database import Base, engine  # noqa: E402
from exam_portal import models  # noqa: E402,F401 – registers ORM mappings with Base.metadata
from exam_portal.main import app  # noqa: E402
from exam_portal.rate_limit import login_attempts  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_login_attempts():
    login_attempts.reset()
    yield
    login_attempts.reset()


# Session-scoped admin token — login happens ONCE per test run
_session_token: str | None = None


@pytest.fixture(scope="session")
def admin_token() -> str:
    global _session_token
    if _session_token is None:
        client = TestClient(app)
        resp = client.post("/admin/login", json={"username": "admin", "password": "admin123"})
        assert resp.status_code == 200, f"Login failed: {resp.text}"
        _session_token = resp.json()["access_token"]
    return _session_token
