"""
Pytest configuration for the Project Tracker tests.

This module provides:
1. Isolated data directories and document stores per test
2. A controllable clock for timestamp assertions
3. Lifecycle service, identity provider and HTTP client fixtures
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from tracker.config import TrackerConfig
from tracker.document_store import DocumentStore
from tracker.identity import IdentityProvider
from tracker.lifecycle_service import LifecycleService
from tracker.main import create_app
from tracker.models import AuthenticatedIdentity
from tracker.project_store import ProjectStore
from tracker.task_store import TaskStore


# -----------------------------------------------------------------------------
# Test Constants
# -----------------------------------------------------------------------------
TEST_USER_ID = "test-user-123"
OTHER_USER_ID = "test-user-456"
TEST_PASSWORD = "s3cret-pass"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# -----------------------------------------------------------------------------
# Store / Service Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def data_dir(tmp_path):
    """Create a temporary data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def document_store(data_dir):
    return DocumentStore(data_dir, timeout_seconds=5.0)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def project_store(document_store):
    return ProjectStore(document_store)


@pytest.fixture
def task_store(document_store):
    return TaskStore(document_store)


@pytest.fixture
def lifecycle_service(project_store, task_store, clock):
    return LifecycleService(project_store, task_store, clock=clock)


@pytest.fixture
def identity_provider(document_store, clock):
    return IdentityProvider(document_store, session_expiry_hours=1, clock=clock)


@pytest.fixture
def owner():
    return AuthenticatedIdentity(user_id=TEST_USER_ID, email="owner@example.com")


@pytest.fixture
def other_owner():
    return AuthenticatedIdentity(user_id=OTHER_USER_ID, email="other@example.com")


# -----------------------------------------------------------------------------
# HTTP Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def app(tmp_path):
    """Create an app with an isolated data directory."""
    return create_app(TrackerConfig(data_dir=tmp_path / "api-data"))


@pytest.fixture
def client(app):
    """Create test client for FastAPI app."""
    return TestClient(app)


def _signup_and_login(client, email: str, name: str = "Test User") -> dict:
    """Register an account and return Authorization headers for it."""
    response = client.post("/api/auth/signup", json={
        "name": name,
        "email": email,
        "password": TEST_PASSWORD,
    })
    assert response.status_code == 201, response.text

    response = client.post("/api/auth/login", json={
        "email": email,
        "password": TEST_PASSWORD,
    })
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return _signup_and_login(client, "alice@example.com", name="Alice")


@pytest.fixture
def other_auth_headers(client):
    return _signup_and_login(client, "bob@example.com", name="Bob")


@pytest.fixture
def login_as(client):
    """Factory fixture: login_as(email) -> Authorization headers."""
    def _login(email: str, name: str = "Test User") -> dict:
        return _signup_and_login(client, email, name=name)
    return _login
