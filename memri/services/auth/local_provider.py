"""Local password-based authentication provider."""
import logging
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from memri.errors import AuthenticationError
from memri.models.user import User
from memri.schemas import UserOut
from memri.services.auth.base import AuthContext, AuthProvider, LoginResult
from memri.services.auth.passwords import PasswordHasher
from memri.services.sessions import SessionService

logger = logging.getLogger(__name__)


class LocalAuthProvider(AuthProvider):
    """
    Local authentication provider using bcrypt hashes and the session store.

    Sessions are opaque random tokens; the session record carries the
    account id and username so a lookup does not need a join.
    """

    def __init__(self, sessions: SessionService, hasher: Optional[PasswordHasher] = None):
        self.sessions = sessions
        self.hasher = hasher or PasswordHasher()

    def _hash_password(self, password: str) -> str:
        return self.hasher.hash(password)

    def _verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.hasher.verify(plain_password, hashed_password)

    async def authenticate(self, db: DBSession, username: str, password: str) -> Optional[User]:
        """Authenticate user with username and password."""
        user = db.query(User).filter(User.username == username).first()
        if not user or not user.password_hash:
            return None
        if not self._verify_password(password, user.password_hash):
            return None
        return user

    async def create_user(
        self,
        db: DBSession,
        username: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> User:
        """Create a new user with hashed password."""
        user = User(
            username=username,
            password_hash=self._hash_password(password),
            display_name=display_name or username,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    async def login(self, db: DBSession, username: str, password: str) -> Optional[LoginResult]:
        """Verify credentials and open a session for the user."""
        user = await self.authenticate(db, username, password)
        if not user:
            logger.info("Failed login attempt for %s", username)
            return None

        # Propagates StoreError: no login without a stored session
        token = self.sessions.create(user.id, user.username)

        return LoginResult(user=UserOut.model_validate(user), session_token=token)

    async def logout(self, token: str) -> None:
        """Delete the session from the store."""
        self.sessions.delete(token)

    async def resolve_token(self, db: DBSession, token: Optional[str]) -> AuthContext:
        """Resolve a session token to the account behind it."""
        if not token:
            raise AuthenticationError("Authentication required")

        session = self.sessions.get(token)
        if session is None:
            raise AuthenticationError("Invalid or expired session")

        # The account may have been deleted after the session was issued
        user = db.get(User, session.identity_id)
        if user is None:
            raise AuthenticationError("User not found")

        return AuthContext(
            identity_id=session.identity_id,
            display_label=session.display_label,
            account=UserOut.model_validate(user),
            token=token,
        )

    async def change_password(
        self,
        db: DBSession,
        user: User,
        current_password: str,
        new_password: str
    ) -> bool:
        """Change user's password after verifying current password."""
        if not self._verify_password(current_password, user.password_hash):
            return False
        user.password_hash = self._hash_password(new_password)
        db.commit()
        return True
