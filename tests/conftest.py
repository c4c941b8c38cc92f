"""
Shared fixtures and configuration for all tests.
"""
import pytest
import os
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from jose import jwt

# Override environment settings for testing
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "testsecretkey"
os.environ["BACKEND_CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["FRONTEND_INTEGRATION_URL"] = "http://frontend.test/app/integrations"
os.environ["GOOGLE_CLIENT_ID"] = "google-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "google-client-secret"
os.environ["ZOOM_CLIENT_ID"] = "zoom-client-id"
os.environ["ZOOM_CLIENT_SECRET"] = "zoom-client-secret"
os.environ["MS_CLIENT_ID"] = "ms-client-id"
os.environ["MS_CLIENT_SECRET"] = "ms-client-secret"

from app.main import app
from app.core.config import settings
from app.core.constants import AppType
from app.db.base import Base
from app.db.session import get_db
from app.api.deps import get_current_user_id
from app.integrations import registry
from app.integrations.oauth.base import now_ms
from app.repositories.integration_repository import IntegrationRepository


# In-memory SQLite shared by every connection of a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Test fixtures for the database
@pytest.fixture
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_user_id():
    return "user-123"


@pytest.fixture
def create_integration(db):
    """Factory inserting an integration row directly through the repository."""

    def _create(user_id="user-123", app_type=AppType.GOOGLE_MEET_AND_CALENDAR, **overrides):
        data = {
            "user_id": user_id,
            "provider": registry.get_provider(app_type),
            "category": registry.get_category(app_type),
            "app_type": app_type,
            "access_token": "stored-access-token",
            "refresh_token": "stored-refresh-token",
            # Valid for another hour
            "expiry_date": now_ms() + 3600 * 1000,
        }
        data.update(overrides)
        return IntegrationRepository(db).create(data)

    return _create


@pytest.fixture
def auth_headers(test_user_id):
    """Authorization header carrying a bearer token for the test user."""
    claims = {
        "sub": test_user_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


# Test client bound to the test database
@pytest.fixture
def client(db):
    """Return a TestClient for making requests to the app."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides = {}


@pytest.fixture
def authorized_client(client, test_user_id):
    """Return a TestClient that skips the authentication."""
    app.dependency_overrides[get_current_user_id] = lambda: test_user_id

    yield client

    app.dependency_overrides.pop(get_current_user_id, None)
