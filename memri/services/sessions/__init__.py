"""
Session lifecycle package.

Usage:
    from memri.services.sessions import SessionService, SqlSessionBackend

    sessions = SessionService.from_settings(SqlSessionBackend(SessionLocal), settings)
    token = sessions.create(user.id, user.username)
    record = sessions.get(token)  # None once expired
"""
from memri.services.sessions.service import SessionService, utcnow
from memri.services.sessions.store import (
    InMemorySessionBackend,
    SessionBackend,
    SessionRecord,
    SqlSessionBackend,
)
from memri.services.sessions.sweeper import SessionSweeper

__all__ = [
    "InMemorySessionBackend",
    "SessionBackend",
    "SessionRecord",
    "SessionService",
    "SessionSweeper",
    "SqlSessionBackend",
    "utcnow",
]
