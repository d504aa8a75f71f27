"""Password hashing: protocol, bcrypt (production), and simple SHA-256 (tests).

Only local accounts carry a password hash. Federated accounts store None,
and every verify call against a missing hash fails closed.

BcryptHasher is CPU-bound and runs off the event loop via
anyio.to_thread.run_sync() so concurrent logins do not stall each other.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

DEFAULT_BCRYPT_ROUNDS = 10


@runtime_checkable
class PasswordHasher(Protocol):
    """Hash and verify passwords."""

    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str | None) -> bool: ...


class BcryptHasher:
    """Production hasher using bcrypt (async, off-thread)."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return await to_thread.run_sync(lambda: bcrypt.hashpw(encoded, salt).decode("utf-8"))

    async def verify(self, plain: str, hashed: str | None) -> bool:
        """Return False for missing or malformed hashes instead of raising."""
        if not hashed:
            return False
        encoded_plain = plain.encode("utf-8")
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False


_SIMPLE_PREFIX = "simple$"


class SimpleHasher:
    """Fast SHA-256 hasher for tests. Not suitable for production use."""

    async def hash(self, plain: str) -> str:
        return _SIMPLE_PREFIX + hashlib.sha256(plain.encode("utf-8")).hexdigest()

    async def verify(self, plain: str, hashed: str | None) -> bool:
        if not hashed or not hashed.startswith(_SIMPLE_PREFIX):
            return False
        expected = _SIMPLE_PREFIX + hashlib.sha256(plain.encode("utf-8")).hexdigest()
        return hmac.compare_digest(hashed, expected)


def get_hasher(name: str = "bcrypt", *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    if name == "bcrypt":
        return BcryptHasher(rounds=rounds)
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
