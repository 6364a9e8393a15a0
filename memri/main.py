import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession
from starlette.middleware.base import BaseHTTPMiddleware

from memri.api import auth, collections, comments, photos, users
from memri.config import Settings, settings
from memri.database import SessionLocal
from memri.errors import StoreError
from memri.services.auth import LocalAuthProvider, PasswordHasher
from memri.services.file_service import FileService
from memri.services.retry import RetryPolicy
from memri.services.sessions import (
    SessionBackend,
    SessionService,
    SessionSweeper,
    SqlSessionBackend,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CSRF Origin Validation Middleware
# =============================================================================


class CSRFOriginMiddleware(BaseHTTPMiddleware):
    """
    Validate Origin/Referer headers on state-changing requests to prevent CSRF.

    - POST, PUT, PATCH, DELETE must include a matching Origin or Referer header
    - Requests authenticated with a bearer token carry no ambient credentials
      and are let through
    - The health check is exempt
    """

    SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
    EXEMPT_PATHS = {"/api/health"}

    async def dispatch(self, request: Request, call_next):
        if request.method in self.SAFE_METHODS or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        if request.headers.get("authorization", "").lower().startswith("bearer "):
            return await call_next(request)

        expected_host = request.headers.get("host", "")
        source = request.headers.get("origin") or request.headers.get("referer")

        if not source:
            logger.warning(
                "CSRF missing origin/referer: method=%s, path=%s",
                request.method,
                request.url.path,
            )
            return self._reject()

        if urlparse(source).netloc != expected_host:
            logger.warning(
                "CSRF origin mismatch: source=%s, expected=%s, path=%s",
                source,
                expected_host,
                request.url.path,
            )
            return self._reject()

        return await call_next(request)

    @staticmethod
    def _reject() -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": "Origin validation failed"})


# =============================================================================
# Application factory
# =============================================================================


def create_app(
    app_settings: Optional[Settings] = None,
    session_factory: Optional[Callable[[], DBSession]] = None,
    session_backend: Optional[SessionBackend] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to use instead of the environment-loaded ones
        session_factory: Database session factory (defaults to SessionLocal)
        session_backend: Session storage (defaults to the sessions table)
    """
    app_settings = app_settings or settings
    session_factory = session_factory or SessionLocal

    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sessions = SessionService.from_settings(
        session_backend or SqlSessionBackend(session_factory), app_settings
    )
    sweeper = SessionSweeper(sessions, app_settings.session_sweep_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app_settings.session_sweep_enabled:
            sweeper.start()
        yield
        await sweeper.stop()

    app = FastAPI(title="Memri", version="0.1.0", lifespan=lifespan)

    app.state.settings = app_settings
    app.state.session_factory = session_factory
    app.state.sessions = sessions
    app.state.sweeper = sweeper
    app.state.session_cookie_name = app_settings.session_cookie_name
    app.state.retry_policy = RetryPolicy.from_settings(app_settings)
    app.state.auth_provider = LocalAuthProvider(
        sessions, PasswordHasher(rounds=app_settings.bcrypt_rounds)
    )
    app.state.file_service = FileService(
        upload_dir=app_settings.upload_dir, max_bytes=app_settings.upload_max_bytes
    )

    app.add_middleware(CSRFOriginMiddleware)
    app.mount(
        "/uploads",
        StaticFiles(directory=str(app.state.file_service.upload_dir)),
        name="uploads",
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        return _store_error_response(request, exc)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        return _store_error_response(request, StoreError.from_exception(exc))

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(collections.router)
    app.include_router(photos.router)
    app.include_router(comments.router)

    @app.get("/api/health")
    async def health_check():
        try:
            with session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Health check failed")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "disconnected"},
            )
        return {"status": "healthy", "database": "connected"}

    return app


def _store_error_response(request: Request, exc: StoreError) -> JSONResponse:
    """503 for transient store failures, 500 otherwise. Driver details stay in the log."""
    logger.error(
        "Store failure on %s %s (%s): %s", request.method, request.url.path, exc.kind.value, exc
    )
    return JSONResponse(
        status_code=503 if exc.is_transient else 500,
        content={"detail": exc.public_message, "code": exc.code},
    )


app = create_app()
