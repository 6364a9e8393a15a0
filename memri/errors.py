"""
Error taxonomy for the data layer and authentication.

Store failures are classified into a structured kind so the retry wrapper and
the HTTP error handlers share one decision table:

    kind               retried   HTTP   code
    timeout            yes       503    DATABASE_TIMEOUT
    connection_reset   yes       503    CONNECTION_RESET
    permanent          no        500    STORE_FAILURE
"""
import enum
from typing import Optional

from sqlalchemy import exc as sa_exc

# PostgreSQL SQLSTATE values surfaced by the driver as ``pgcode``
_PG_QUERY_CANCELED = "57014"
_PG_CONNECTION_EXCEPTION_CLASS = "08"


class StoreErrorKind(str, enum.Enum):
    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection_reset"
    PERMANENT = "permanent"


_CODES = {
    StoreErrorKind.TIMEOUT: "DATABASE_TIMEOUT",
    StoreErrorKind.CONNECTION_RESET: "CONNECTION_RESET",
    StoreErrorKind.PERMANENT: "STORE_FAILURE",
}

_MESSAGES = {
    StoreErrorKind.TIMEOUT: "Database connection timeout. Please try again in a moment.",
    StoreErrorKind.CONNECTION_RESET: "Database connection was reset. Please try again.",
    StoreErrorKind.PERMANENT: "Database operation failed",
}


class StoreError(Exception):
    """A persistence failure with a structured kind."""

    def __init__(self, kind: StoreErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or _MESSAGES[kind])

    @property
    def code(self) -> str:
        return _CODES[self.kind]

    @property
    def public_message(self) -> str:
        """Client-safe description (never the driver message)."""
        return _MESSAGES[self.kind]

    @property
    def is_transient(self) -> bool:
        return self.kind is not StoreErrorKind.PERMANENT

    @classmethod
    def from_exception(cls, error: BaseException) -> "StoreError":
        """Wrap an arbitrary data-layer exception, keeping it as the cause."""
        if isinstance(error, StoreError):
            return error
        wrapped = cls(classify_error(error), str(error) or None)
        wrapped.__cause__ = error
        return wrapped


def classify_error(error: BaseException) -> StoreErrorKind:
    """
    Classify a data-layer exception as transient or permanent.

    Uses exception types and driver error codes rather than message text.
    """
    if isinstance(error, StoreError):
        return error.kind

    # Built-in socket level failures (also what most drivers wrap)
    if isinstance(error, TimeoutError):
        return StoreErrorKind.TIMEOUT
    if isinstance(error, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return StoreErrorKind.CONNECTION_RESET

    # Connection pool exhausted while waiting for a connection
    if isinstance(error, sa_exc.TimeoutError):
        return StoreErrorKind.TIMEOUT

    if isinstance(error, sa_exc.DBAPIError):
        if error.connection_invalidated:
            return StoreErrorKind.CONNECTION_RESET

        pgcode = getattr(error.orig, "pgcode", None)
        if pgcode == _PG_QUERY_CANCELED:
            return StoreErrorKind.TIMEOUT
        if pgcode and pgcode.startswith(_PG_CONNECTION_EXCEPTION_CLASS):
            return StoreErrorKind.CONNECTION_RESET

        if error.orig is not None and error.orig is not error:
            return classify_error(error.orig)

    return StoreErrorKind.PERMANENT


class AuthenticationError(Exception):
    """A request could not be tied to a live session and an existing account."""
