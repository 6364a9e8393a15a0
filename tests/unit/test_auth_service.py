"""
Unit tests for LocalAuthProvider.

Tests authentication functionality including:
- Credential verification
- Login and logout through the session store
- Token resolution
- User creation and password changes
"""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from memri.errors import AuthenticationError, StoreError, StoreErrorKind
from memri.models import User
from memri.services.auth import LocalAuthProvider, PasswordHasher
from memri.services.sessions import InMemorySessionBackend, SessionService
from tests.factories import create_user


@pytest.fixture
def sessions() -> SessionService:
    return SessionService(InMemorySessionBackend())


@pytest.fixture
def provider(sessions) -> LocalAuthProvider:
    return LocalAuthProvider(sessions, PasswordHasher(rounds=4))


class TestAuthenticate:
    """Tests for credential checks."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, provider, db: Session):
        user = create_user(db, username="alice", password="password123")

        result = await provider.authenticate(db, "alice", "password123")

        assert result is not None
        assert result.id == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, provider, db: Session):
        create_user(db, username="alice", password="password123")

        assert await provider.authenticate(db, "alice", "wrong-password") is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, provider, db: Session):
        assert await provider.authenticate(db, "nobody", "password123") is None

    @pytest.mark.asyncio
    async def test_username_is_case_sensitive(self, provider, db: Session):
        create_user(db, username="alice", password="password123")

        assert await provider.authenticate(db, "ALICE", "password123") is None


class TestLogin:
    """Tests for login/logout."""

    @pytest.mark.asyncio
    async def test_login_opens_session(self, provider, sessions, db: Session):
        user = create_user(db, username="alice", password="password123", display_name="Alice")

        result = await provider.login(db, "alice", "password123")

        assert result is not None
        assert result.user.id == user.id
        assert result.user.display_name == "Alice"
        record = sessions.get(result.session_token)
        assert record.identity_id == user.id
        assert record.display_label == "alice"

    @pytest.mark.asyncio
    async def test_login_result_has_no_password_hash(self, provider, db: Session):
        create_user(db, username="alice", password="password123")

        result = await provider.login(db, "alice", "password123")

        dumped = result.user.model_dump()
        assert "password_hash" not in dumped
        assert "password" not in dumped

    @pytest.mark.asyncio
    async def test_bad_credentials_create_no_session(self, provider, sessions, db: Session):
        create_user(db, username="alice", password="password123")

        assert await provider.login(db, "alice", "nope") is None
        assert len(sessions.backend) == 0

    @pytest.mark.asyncio
    async def test_login_fails_when_session_cannot_be_stored(self, db: Session):
        backend = MagicMock()
        backend.set.side_effect = StoreError(StoreErrorKind.TIMEOUT)
        provider = LocalAuthProvider(SessionService(backend), PasswordHasher(rounds=4))
        create_user(db, username="alice", password="password123")

        with pytest.raises(StoreError):
            await provider.login(db, "alice", "password123")

    @pytest.mark.asyncio
    async def test_logout_deletes_session(self, provider, sessions, db: Session):
        create_user(db, username="alice", password="password123")
        result = await provider.login(db, "alice", "password123")

        await provider.logout(result.session_token)

        assert sessions.get(result.session_token) is None

    @pytest.mark.asyncio
    async def test_logout_unknown_token(self, provider):
        await provider.logout("not-a-session")


class TestResolveToken:
    """Tests for resolving a token to an AuthContext."""

    @pytest.mark.asyncio
    async def test_resolves_live_session(self, provider, sessions, db: Session):
        user = create_user(db, username="alice")
        token = sessions.create(user.id, user.username)

        context = await provider.resolve_token(db, token)

        assert context.identity_id == user.id
        assert context.display_label == "alice"
        assert context.account.username == "alice"
        assert context.token == token

    @pytest.mark.asyncio
    async def test_missing_token(self, provider, db: Session):
        with pytest.raises(AuthenticationError, match="Authentication required"):
            await provider.resolve_token(db, None)

    @pytest.mark.asyncio
    async def test_unknown_token(self, provider, db: Session):
        with pytest.raises(AuthenticationError, match="Invalid or expired session"):
            await provider.resolve_token(db, "forged-token")

    @pytest.mark.asyncio
    async def test_deleted_account(self, provider, sessions, db: Session):
        token = sessions.create(424242, "ghost")

        with pytest.raises(AuthenticationError, match="User not found"):
            await provider.resolve_token(db, token)


class TestUserManagement:
    """Tests for create_user and change_password."""

    @pytest.mark.asyncio
    async def test_create_user_hashes_password(self, provider, db: Session):
        user = await provider.create_user(db, "carol", "password123", "Carol")

        assert user.id is not None
        assert user.display_name == "Carol"
        assert user.password_hash != "password123"
        assert await provider.authenticate(db, "carol", "password123") is not None

    @pytest.mark.asyncio
    async def test_display_name_defaults_to_username(self, provider, db: Session):
        user = await provider.create_user(db, "dave", "password123")

        assert user.display_name == "dave"

    @pytest.mark.asyncio
    async def test_change_password(self, provider, db: Session):
        user = create_user(db, username="alice", password="old-password")

        assert await provider.change_password(db, user, "old-password", "new-password") is True
        assert await provider.authenticate(db, "alice", "new-password") is not None
        assert await provider.authenticate(db, "alice", "old-password") is None

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, provider, db: Session):
        user = create_user(db, username="alice", password="old-password")

        assert await provider.change_password(db, user, "guess", "new-password") is False
        db.refresh(user)
        assert await provider.authenticate(db, "alice", "old-password") is not None
        assert db.query(User).count() == 1
