import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
# Force dev mode for default test app; production validation tests patch settings
os.environ["APP_ENV"] = "dev"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("WHATSAPP_VERIFY_TOKEN", "test_token")
os.environ.setdefault("WHATSAPP_ACCESS_TOKEN", "test_token")
os.environ.setdefault("WHATSAPP_PHONE_NUMBER_ID", "test_id")
# Note: WHATSAPP_APP_SECRET not set by default - allows tests without signature verification
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-not-for-production-use-0123456789")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+14155238886")
os.environ.setdefault("WHATSAPP_DRY_RUN", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")  # Disable rate limiting in tests
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from app.db.base import Base
from app.db.deps import get_db
# Import all models so Base.metadata includes every table
import app.db.models as _models  # noqa: F401
from app.main import app
from app.middleware.rate_limit import reset_rate_limits

SQLALCHEMY_DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///:memory:")


def is_sqlite() -> bool:
    """Return True if the test database is SQLite (e.g. in-memory tests)."""
    url = SQLALCHEMY_DATABASE_URL or ""
    return url.startswith("sqlite")


# SQLite needs check_same_thread=False and StaticPool; Postgres does not support check_same_thread
if is_sqlite():
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Scheduler jobs and CLI runs open their own sessions through app.db.session
import app.db.session as _db_session

_db_session.engine = engine
_db_session.SessionLocal = TestingSessionLocal


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def admin_user(db):
    from tests.helpers.factories import make_admin

    return make_admin(db, username="ops_admin", role="admin")


@pytest.fixture
def super_admin_user(db):
    from tests.helpers.factories import make_admin

    return make_admin(db, username="root_admin", role="super_admin")


@pytest.fixture
def admin_headers(admin_user):
    from tests.helpers.factories import auth_headers

    return auth_headers(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user):
    from tests.helpers.factories import auth_headers

    return auth_headers(super_admin_user)
