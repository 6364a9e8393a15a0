"""Dependencies that hand application-scoped services to route handlers."""
from fastapi import Request

from memri.config import Settings
from memri.services.file_service import FileService
from memri.services.retry import RetryPolicy
from memri.services.sessions import SessionService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_service(request: Request) -> SessionService:
    return request.app.state.sessions


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_retry_policy(request: Request) -> RetryPolicy:
    return request.app.state.retry_policy
