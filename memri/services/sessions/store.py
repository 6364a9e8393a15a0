"""
Session storage backends.

The session lifecycle logic lives in ``SessionService`` and talks to storage
only through ``SessionBackend``. Every backend method is a single atomic store
operation. The two conditional operations carry the concurrency guarantees:

- ``extend`` only moves ``expires_at`` forward and only for a live record, so
  two readers refreshing at the same time can never shorten a session.
- ``delete_if_expired`` only deletes a record that is still expired, so lazy
  expiry cannot remove a session another reader just extended.
"""
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from memri.errors import StoreError
from memri.models.session import Session


@dataclass(frozen=True)
class SessionRecord:
    """A login session as seen by the rest of the application."""

    token: str
    identity_id: int
    display_label: str
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on round trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionBackend(ABC):
    """Storage capability required by the session service."""

    @abstractmethod
    def get(self, token: str) -> Optional[SessionRecord]:
        """Return the stored record, expired or not, or None."""

    @abstractmethod
    def set(self, record: SessionRecord) -> None:
        """Insert or replace the record keyed by its token."""

    @abstractmethod
    def delete(self, token: str) -> bool:
        """Delete the record. Returns True if something was deleted."""

    @abstractmethod
    def delete_if_expired(self, token: str, now: datetime) -> bool:
        """Delete the record only if ``expires_at <= now``."""

    @abstractmethod
    def extend(
        self, token: str, expires_at: datetime, now: datetime
    ) -> Optional[SessionRecord]:
        """
        Move ``expires_at`` forward to ``expires_at`` if the record is live.

        Never shortens a record. Returns the record after the update, or None
        if it is missing or already expired.
        """

    @abstractmethod
    def sweep(self, now: datetime) -> int:
        """Delete every record with ``expires_at <= now``. Returns the count."""

    @abstractmethod
    def list_by_identity(self, identity_id: int, now: datetime) -> List[SessionRecord]:
        """Live records belonging to one identity."""

    @abstractmethod
    def delete_by_identity(
        self, identity_id: int, except_token: Optional[str] = None
    ) -> int:
        """Delete all records of an identity, optionally keeping one token."""


class InMemorySessionBackend(SessionBackend):
    """Process-local backend for single-worker deployments and tests."""

    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, token: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(token)

    def set(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.token] = record

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._records.pop(token, None) is not None

    def delete_if_expired(self, token: str, now: datetime) -> bool:
        with self._lock:
            record = self._records.get(token)
            if record is None or not record.is_expired(now):
                return False
            del self._records[token]
            return True

    def extend(
        self, token: str, expires_at: datetime, now: datetime
    ) -> Optional[SessionRecord]:
        with self._lock:
            record = self._records.get(token)
            if record is None or record.is_expired(now):
                return None
            if record.expires_at < expires_at:
                record = replace(record, expires_at=expires_at, updated_at=now)
                self._records[token] = record
            return record

    def sweep(self, now: datetime) -> int:
        with self._lock:
            expired = [t for t, r in self._records.items() if r.is_expired(now)]
            for token in expired:
                del self._records[token]
            return len(expired)

    def list_by_identity(self, identity_id: int, now: datetime) -> List[SessionRecord]:
        with self._lock:
            return [
                r
                for r in self._records.values()
                if r.identity_id == identity_id and not r.is_expired(now)
            ]

    def delete_by_identity(
        self, identity_id: int, except_token: Optional[str] = None
    ) -> int:
        with self._lock:
            doomed = [
                t
                for t, r in self._records.items()
                if r.identity_id == identity_id and t != except_token
            ]
            for token in doomed:
                del self._records[token]
            return len(doomed)


class SqlSessionBackend(SessionBackend):
    """
    Backend over the ``sessions`` table.

    Each call opens its own short transaction from ``session_factory`` so
    session bookkeeping never shares a unit of work with request handlers.
    SQLAlchemy failures are re-raised as ``StoreError`` with a structured kind.
    """

    def __init__(self, session_factory: Callable[[], DBSession]):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[DBSession]:
        try:
            with self._session_factory() as db, db.begin():
                yield db
        except SQLAlchemyError as e:
            raise StoreError.from_exception(e) from e

    @staticmethod
    def _to_record(row: Session) -> SessionRecord:
        return SessionRecord(
            token=row.token,
            identity_id=row.user_id,
            display_label=row.username,
            expires_at=as_utc(row.expires_at),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def get(self, token: str) -> Optional[SessionRecord]:
        with self._transaction() as db:
            row = db.get(Session, token)
            return self._to_record(row) if row else None

    def set(self, record: SessionRecord) -> None:
        with self._transaction() as db:
            db.merge(
                Session(
                    token=record.token,
                    user_id=record.identity_id,
                    username=record.display_label,
                    expires_at=record.expires_at,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )

    def delete(self, token: str) -> bool:
        with self._transaction() as db:
            result = db.execute(
                delete(Session)
                .where(Session.token == token)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def delete_if_expired(self, token: str, now: datetime) -> bool:
        with self._transaction() as db:
            result = db.execute(
                delete(Session)
                .where(Session.token == token, Session.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def extend(
        self, token: str, expires_at: datetime, now: datetime
    ) -> Optional[SessionRecord]:
        with self._transaction() as db:
            db.execute(
                update(Session)
                .where(
                    Session.token == token,
                    Session.expires_at > now,
                    Session.expires_at < expires_at,
                )
                .values(expires_at=expires_at, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            row = db.execute(
                select(Session).where(Session.token == token)
            ).scalar_one_or_none()
            if row is None:
                return None
            record = self._to_record(row)
            return None if record.is_expired(now) else record

    def sweep(self, now: datetime) -> int:
        with self._transaction() as db:
            result = db.execute(
                delete(Session)
                .where(Session.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    def list_by_identity(self, identity_id: int, now: datetime) -> List[SessionRecord]:
        with self._transaction() as db:
            rows = db.execute(
                select(Session)
                .where(Session.user_id == identity_id, Session.expires_at > now)
                .order_by(Session.created_at.desc())
            ).scalars()
            return [self._to_record(row) for row in rows]

    def delete_by_identity(
        self, identity_id: int, except_token: Optional[str] = None
    ) -> int:
        with self._transaction() as db:
            stmt = delete(Session).where(Session.user_id == identity_id)
            if except_token:
                stmt = stmt.where(Session.token != except_token)
            result = db.execute(stmt.execution_options(synchronize_session=False))
            return result.rowcount
