import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ADMIN_USERNAME", "chefe")
os.environ.setdefault("ADMIN_PASSWORD", "test-admin-password")
os.environ.setdefault("ADMIN_SESSION_SECRET", "test-session-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_URL", "http://poker.test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database.supabase_client import get_supabase, get_supabase_auth, get_supabase_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.modules.auth.service import clear_auth_cache  # noqa: E402
from tests.fake_supabase import FakeSupabase  # noqa: E402
from tests.helpers import make_user  # noqa: E402


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def client(db):
    clear_auth_cache()
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_supabase_auth] = lambda: db
    app.dependency_overrides[get_supabase_session_factory] = lambda: db.new_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    clear_auth_cache()


@pytest.fixture
def alice(db):
    return make_user(db, "Alice")


@pytest.fixture
def bob(db):
    return make_user(db, "Bob")


@pytest.fixture
def carol(db):
    return make_user(db, "Carol")


@pytest.fixture
def dave(db):
    return make_user(db, "Dave")
