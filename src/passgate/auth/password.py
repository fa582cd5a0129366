"""Password and reset-code hashing.

Learn: Uses bcrypt for both login passwords and reset challenge codes;
there is no algorithmic distinction between the two. bcrypt generates
a fresh salt per call and embeds it (with the cost factor) in the
"$2b$..." output, so nothing besides the hash string needs storing.
"""

from functools import lru_cache

import bcrypt

from passgate.config import settings
from passgate.errors import HashingError

# bcrypt only looks at the first 72 bytes
_MAX_SECRET_BYTES = 72


def _encode(secret: str) -> bytes:
    return secret.encode("utf-8")[:_MAX_SECRET_BYTES]


class CredentialHasher:
    """One-way salted hashing with a configurable bcrypt work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, secret: str) -> str:
        """Hash a secret. Raises HashingError if bcrypt fails."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(_encode(secret), salt).decode("utf-8")
        except (ValueError, TypeError) as e:
            raise HashingError(f"Hashing failed: {e}") from e

    def verify(self, secret: str, hashed: str) -> bool:
        """Check a secret against a bcrypt hash.

        Never raises: a mismatch or an unparseable hash is just False.
        """
        try:
            return bcrypt.checkpw(_encode(secret), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False


@lru_cache
def get_credential_hasher() -> CredentialHasher:
    """FastAPI dependency — one hasher per process, built from settings."""
    return CredentialHasher(rounds=settings.bcrypt_rounds)
