"""
Test configuration and fixtures for Memri.

- Function-scoped engine with fresh tables per test (SQLite file by default,
  TEST_DATABASE_URL to run against PostgreSQL)
- Factories commit, because the session store opens its own transactions
- TestClient built through create_app with test settings
- Authenticated client fixtures
"""

import io
import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from memri.config import Settings
from memri.database import Base
from memri.main import create_app
from memri.models import User
from memri.services.sessions import SessionService, SqlSessionBackend
from tests.factories import create_user


# =============================================================================
# Database Fixtures
# =============================================================================


def get_test_database_url(tmp_path) -> str:
    """
    Get the test database URL.

    Priority:
    1. TEST_DATABASE_URL environment variable
    2. A throwaway SQLite file in the test's tmp directory
    """
    if os.environ.get("TEST_DATABASE_URL"):
        return os.environ["TEST_DATABASE_URL"]
    return f"sqlite:///{tmp_path / 'memri-test.db'}"


@pytest.fixture
def test_engine(tmp_path):
    """Engine with all tables created; dropped again after the test."""
    database_url = get_test_database_url(tmp_path)

    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False})

        @event.listens_for(engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    else:
        engine = create_engine(database_url)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Database session for arranging and checking test data."""
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        upload_dir=str(tmp_path / "uploads"),
        bcrypt_rounds=4,
        session_sweep_enabled=False,
        session_cookie_name="sessionId",
        db_retry_base_delay=0.01,
        db_retry_max_delay=0.02,
    )


@pytest.fixture
def app(test_settings, session_factory):
    return create_app(test_settings, session_factory=session_factory)


@pytest.fixture
def session_service(app) -> SessionService:
    return app.state.sessions


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """
    Unauthenticated client.

    Sends a same-origin Referer so state-changing requests pass the CSRF check.
    """
    with_referer = {"Referer": "http://testserver/"}
    yield TestClient(app, headers=with_referer)


@pytest.fixture
def test_user(db: Session) -> User:
    return create_user(db, username="alice", password="testpassword123", display_name="Alice")


@pytest.fixture
def other_user(db: Session) -> User:
    return create_user(db, username="bob", password="testpassword123", display_name="Bob")


@pytest.fixture
def test_session(session_service: SessionService, test_user: User) -> str:
    """Token of a live session for test_user."""
    return session_service.create(test_user.id, test_user.username)


@pytest.fixture
def auth_client(app, test_session: str) -> Generator[TestClient, None, None]:
    """Client logged in as test_user through the session cookie."""
    client = TestClient(app, headers={"Referer": "http://testserver/"})
    client.cookies.set("sessionId", test_session)
    yield client


@pytest.fixture
def other_client(app, session_service: SessionService, other_user: User) -> Generator[TestClient, None, None]:
    """Client logged in as other_user."""
    client = TestClient(app, headers={"Referer": "http://testserver/"})
    client.cookies.set("sessionId", session_service.create(other_user.id, other_user.username))
    yield client


@pytest.fixture
def auth_headers(test_session: str) -> dict:
    return {"Authorization": f"Bearer {test_session}"}


@pytest.fixture
def sql_backend(session_factory) -> SqlSessionBackend:
    return SqlSessionBackend(session_factory)


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


# =============================================================================
# pytest markers
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "security: marks tests as security tests (deselect with '-m not security')",
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m not slow')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
