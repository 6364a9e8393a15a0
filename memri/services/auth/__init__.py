"""
Authentication service package.

Provides:
- Password hashing (bcrypt)
- Local username/password auth on top of the session store
- FastAPI dependencies for required and optional authentication

Usage:
    from memri.services.auth.dependencies import get_current_user

    # In routes:
    @router.get("/protected")
    async def protected_route(auth: AuthContext = Depends(get_current_user)):
        ...
"""
from memri.services.auth.base import AuthContext, AuthProvider, LoginResult
from memri.services.auth.local_provider import LocalAuthProvider
from memri.services.auth.passwords import PasswordHasher

__all__ = [
    "AuthContext",
    "AuthProvider",
    "LocalAuthProvider",
    "LoginResult",
    "PasswordHasher",
]
