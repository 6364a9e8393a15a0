"""FastAPI dependencies for authentication."""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from memri.config import settings
from memri.database import get_db
from memri.errors import AuthenticationError
from memri.services.auth.base import AuthContext, AuthProvider


def get_auth_provider(request: Request) -> AuthProvider:
    """The provider configured on the application (see ``create_app``)."""
    return request.app.state.auth_provider


def extract_session_token(request: Request) -> Optional[str]:
    """
    Read the session token from the request.

    ``Authorization: Bearer <token>`` wins over the session cookie.
    """
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    cookie_name = getattr(request.app.state, "session_cookie_name", settings.session_cookie_name)
    return request.cookies.get(cookie_name) or None


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> AuthContext:
    """
    Resolve the caller's session, or reject the request.

    Raises 401 when there is no token, the session is invalid or expired, or
    the account behind it no longer exists.
    """
    token = extract_session_token(request)
    try:
        context = await auth_provider.resolve_token(db, token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.auth = context
    return context


async def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> Optional[AuthContext]:
    """
    Resolve the caller's session if there is one.

    Any failure leaves the request anonymous instead of rejecting it.
    """
    token = extract_session_token(request)
    if not token:
        return None
    try:
        context = await auth_provider.resolve_token(db, token)
    except AuthenticationError:
        return None

    request.state.auth = context
    return context
