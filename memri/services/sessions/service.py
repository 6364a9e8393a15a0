"""Session lifecycle: creation, sliding expiration, invalidation and sweeping."""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from memri.config import Settings
from memri.errors import StoreError
from memri.services.sessions.store import SessionBackend, SessionRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionService:
    """
    Session store with sliding expiration over a pluggable backend.

    A session is valid while ``now < expires_at``. Reading a session that has
    less than ``refresh_threshold`` left extends it to ``now + ttl``. Expired
    sessions are removed lazily when read and eagerly by ``sweep``.

    Reads fail closed: a storage failure during ``get`` is logged and treated
    as "no session". Failures during ``create`` propagate so a login never
    succeeds without a stored session.
    """

    def __init__(
        self,
        backend: SessionBackend,
        ttl: timedelta = timedelta(days=7),
        refresh_threshold: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        if ttl <= timedelta(0):
            raise ValueError("Session TTL must be positive")
        if refresh_threshold < timedelta(0) or refresh_threshold > ttl:
            raise ValueError("Refresh threshold must be between zero and the TTL")

        self.backend = backend
        self.ttl = ttl
        self.refresh_threshold = refresh_threshold
        self._clock = clock

    @classmethod
    def from_settings(cls, backend: SessionBackend, settings: Settings) -> "SessionService":
        return cls(
            backend,
            ttl=timedelta(seconds=settings.session_ttl),
            refresh_threshold=timedelta(seconds=settings.session_refresh_threshold),
        )

    @staticmethod
    def generate_token() -> str:
        """Generate a cryptographically secure session token."""
        return secrets.token_urlsafe(32)

    def create(self, identity_id: int, display_label: str) -> str:
        """Persist a new session and return its token."""
        now = self._clock()
        record = SessionRecord(
            token=self.generate_token(),
            identity_id=identity_id,
            display_label=display_label,
            expires_at=now + self.ttl,
            created_at=now,
            updated_at=now,
        )
        try:
            self.backend.set(record)
        except StoreError:
            logger.exception("Error creating session for user %s", identity_id)
            raise

        logger.info("Created session for %s (expires %s)", display_label, record.expires_at)
        return record.token

    def get(self, token: str) -> Optional[SessionRecord]:
        """
        Resolve a token to a live session.

        Expired sessions are deleted and reported as missing. Sessions close
        to expiry are extended before being returned.
        """
        if not token:
            return None

        now = self._clock()
        try:
            record = self.backend.get(token)
            if record is None:
                return None

            if record.is_expired(now):
                self.backend.delete_if_expired(token, now)
                logger.debug("Session for %s expired at %s", record.display_label, record.expires_at)
                return None

            if record.expires_at - now < self.refresh_threshold:
                # None here means it expired or was deleted concurrently
                return self.backend.extend(token, now + self.ttl, now)

            return record
        except StoreError:
            logger.exception("Error getting session")
            return None

    def delete(self, token: str) -> bool:
        """Delete a session. Unknown tokens are not an error."""
        try:
            return self.backend.delete(token)
        except StoreError:
            logger.exception("Error deleting session")
            return False

    def sweep(self) -> int:
        """Delete every expired session. Returns how many were removed."""
        try:
            count = self.backend.sweep(self._clock())
        except StoreError:
            logger.exception("Error cleaning expired sessions")
            return 0

        if count > 0:
            logger.info("Cleaned %d expired sessions", count)
        return count

    def list_by_identity(self, identity_id: int) -> List[SessionRecord]:
        """Live sessions of one user."""
        try:
            return self.backend.list_by_identity(identity_id, self._clock())
        except StoreError:
            logger.exception("Error getting sessions for user %s", identity_id)
            return []

    def delete_all_by_identity(
        self, identity_id: int, except_token: Optional[str] = None
    ) -> int:
        """
        Log a user out everywhere, optionally keeping the current session.

        Storage failures propagate: the caller must not report success for a
        "log out everywhere" that did not happen.
        """
        try:
            count = self.backend.delete_by_identity(identity_id, except_token)
        except StoreError:
            logger.exception("Error deleting sessions for user %s", identity_id)
            raise

        logger.info("Revoked %d sessions for user %s", count, identity_id)
        return count
