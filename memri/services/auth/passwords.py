"""Password hashing and verification."""
import bcrypt

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """Hash a password using bcrypt."""
        return bcrypt.hashpw(
            self._encode(plaintext), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Verify a password against its hash.

        Returns False for a wrong password. Raises ValueError only when
        ``hashed`` is not a bcrypt hash.
        """
        return bcrypt.checkpw(self._encode(plaintext), hashed.encode("utf-8"))
