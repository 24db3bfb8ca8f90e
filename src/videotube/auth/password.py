"""Password hashing utilities.

Uses bcrypt for password hashing. bcrypt generates a random salt on every
call and embeds it (and the work factor) in the hash string, so the same
password never hashes to the same value twice. The work factor is tunable:
each +1 on `rounds` doubles the cost.

bcrypt is CPU-bound and blocks. PasswordHasher runs it in worker threads
behind a bounded semaphore so a burst of logins cannot pin every core.
"""

import asyncio
import threading

import bcrypt

from videotube.auth.errors import CryptoFailure

DEFAULT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of input.
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with a fresh random salt.

    Produces strings starting with "$2b$<rounds>$". Raises ValueError for
    an empty password; length/complexity policy is enforced by the caller.
    """
    if not password:
        raise ValueError("Password must not be empty")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash.

    A mismatch returns False. Raises CryptoFailure if the stored hash
    cannot be parsed as a bcrypt hash.
    """
    if not isinstance(password_hash, str) or not password_hash.startswith("$2"):
        raise CryptoFailure("Stored password hash is not a bcrypt hash")
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError as e:
        raise CryptoFailure(f"Stored password hash is malformed: {e}") from e


def hash_rounds(password_hash: str) -> int:
    """Extract the work factor from a bcrypt hash ("$2b$10$..." → 10)."""
    try:
        return int(password_hash.split("$")[2])
    except (IndexError, ValueError, AttributeError) as e:
        raise CryptoFailure("Stored password hash is malformed") from e


class PasswordHasher:
    """Bounded, non-blocking front end to hash_password/verify_password.

    One instance per process. The semaphore is a threading one because the
    work happens in worker threads, so the same hasher is usable from any
    event loop.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS, max_concurrent: int = 4):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.rounds = rounds
        self._slots = threading.BoundedSemaphore(max_concurrent)

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(
            self._bounded, hash_password, password, self.rounds
        )

    async def verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(
            self._bounded, verify_password, password, password_hash
        )

    def needs_rehash(self, password_hash: str) -> bool:
        """True when the stored hash was made with a different work factor."""
        return hash_rounds(password_hash) != self.rounds

    def _bounded(self, fn, *args):
        with self._slots:
            return fn(*args)
