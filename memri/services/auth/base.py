"""Abstract base class for authentication providers."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from memri.models.user import User
from memri.schemas import UserOut


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved from a session token, attached to the request."""

    identity_id: int
    display_label: str
    account: UserOut
    token: str


@dataclass(frozen=True)
class LoginResult:
    user: UserOut
    session_token: str


class AuthProvider(ABC):
    """
    Abstract authentication provider interface.

    Route code depends on this interface only, so the local password
    provider can be swapped for an external identity provider.
    """

    @abstractmethod
    async def authenticate(self, db: DBSession, username: str, password: str) -> Optional[User]:
        """
        Check a username and password.

        Returns the User if the credentials are valid, None otherwise.
        """

    @abstractmethod
    async def create_user(
        self,
        db: DBSession,
        username: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> User:
        """Create a new account with the given credentials."""

    @abstractmethod
    async def login(self, db: DBSession, username: str, password: str) -> Optional[LoginResult]:
        """
        Authenticate and open a session.

        Returns None for bad credentials. Raises if the session cannot be
        stored.
        """

    @abstractmethod
    async def logout(self, token: str) -> None:
        """Close the session behind ``token``. Unknown tokens are ignored."""

    @abstractmethod
    async def resolve_token(self, db: DBSession, token: Optional[str]) -> AuthContext:
        """
        Resolve a session token to an identity.

        Raises AuthenticationError with a client-facing reason on failure.
        """

    @abstractmethod
    async def change_password(
        self,
        db: DBSession,
        user: User,
        current_password: str,
        new_password: str
    ) -> bool:
        """
        Change a user's password after validating the current one.

        Returns True if successful, False if the current password is wrong.
        """
