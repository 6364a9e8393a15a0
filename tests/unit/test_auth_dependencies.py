"""
Unit tests for the authentication dependencies.

Tests token extraction and the required/optional resolution variants.
"""
from typing import Optional

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from memri.services.auth.base import AuthContext
from memri.services.auth.dependencies import get_optional_user


@pytest.fixture
def whoami_client(app) -> TestClient:
    """App with an extra route that only optionally needs a user."""

    @app.get("/whoami")
    async def whoami(auth: Optional[AuthContext] = Depends(get_optional_user)):
        return {"user": auth.display_label if auth else None}

    return TestClient(app)


class TestOptionalAuth:
    """Tests for get_optional_user."""

    def test_anonymous(self, whoami_client):
        assert whoami_client.get("/whoami").json() == {"user": None}

    def test_valid_cookie(self, whoami_client, test_session):
        whoami_client.cookies.set("sessionId", test_session)

        assert whoami_client.get("/whoami").json() == {"user": "alice"}

    def test_invalid_token_stays_anonymous(self, whoami_client):
        response = whoami_client.get("/whoami", headers={"Authorization": "Bearer bogus"})

        assert response.status_code == 200
        assert response.json() == {"user": None}


class TestTokenExtraction:
    """Tests for header/cookie precedence."""

    def test_empty_bearer_falls_back_to_cookie(self, whoami_client, test_session):
        whoami_client.cookies.set("sessionId", test_session)

        response = whoami_client.get("/whoami", headers={"Authorization": "Bearer   "})

        assert response.json() == {"user": "alice"}

    def test_custom_cookie_name(self, test_settings, session_factory, test_user):
        from memri.main import create_app

        test_settings.session_cookie_name = "memri_session"
        app = create_app(test_settings, session_factory=session_factory)
        token = app.state.sessions.create(test_user.id, test_user.username)
        client = TestClient(app)

        client.cookies.set("memri_session", token)
        assert client.get("/auth/me").status_code == 200

        client.cookies.clear()
        client.cookies.set("sessionId", token)
        assert client.get("/auth/me").status_code == 401
