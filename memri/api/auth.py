"""Authentication routes: login, logout, current identity and session management."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from memri.api.deps import get_session_service, get_settings
from memri.config import Settings
from memri.database import get_db
from memri.models.user import User
from memri.schemas import ChangePasswordRequest, LoginRequest, LoginResponse, SessionOut
from memri.services.auth.base import AuthContext, AuthProvider
from memri.services.auth.dependencies import get_auth_provider, get_current_user
from memri.services.sessions import SessionService


router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl,
        httponly=True,
        samesite="strict",
        secure=settings.session_cookie_secure,
    )


# =============================================================================
# Login / Logout
# =============================================================================


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
):
    """Check credentials, open a session and set the session cookie."""
    result = await auth_provider.login(db, credentials.username, credentials.password)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    _set_session_cookie(response, result.session_token, settings)
    return LoginResponse(user=result.user, session_token=result.session_token)


@router.post("/logout")
async def logout(
    response: Response,
    auth: AuthContext = Depends(get_current_user),
    auth_provider: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
):
    """Delete the current session and clear the cookie."""
    await auth_provider.logout(auth.token)

    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(auth: AuthContext = Depends(get_current_user)):
    """The account behind the current session."""
    return {"user": auth.account}


# =============================================================================
# Session Management
# =============================================================================


@router.get("/sessions", response_model=List[SessionOut])
async def list_sessions(
    auth: AuthContext = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """Live sessions of the current user. Tokens are only shown as a prefix."""
    return [
        SessionOut(
            token_prefix=record.token[:8],
            current=record.token == auth.token,
            expires_at=record.expires_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        for record in sessions.list_by_identity(auth.identity_id)
    ]


@router.post("/logout-all")
async def logout_everywhere(
    auth: AuthContext = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """Revoke every other session of the current user."""
    count = sessions.delete_all_by_identity(auth.identity_id, except_token=auth.token)
    return {"revoked": count}


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Change the current user's password."""
    user = db.get(User, auth.identity_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changed = await auth_provider.change_password(
        db, user, payload.current_password, payload.new_password
    )
    if not changed:
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    return {"message": "Password changed"}
