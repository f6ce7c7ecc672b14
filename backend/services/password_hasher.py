# backend/services/password_hasher.py
from functools import cached_property
from typing import Protocol
import bcrypt

# bcrypt ignores everything past 72 bytes; newer releases raise instead.
MAX_PASSWORD_BYTES = 72


class PasswordHasher(Protocol):
    def hash(self, plain: str) -> str: ...
    def verify(self, plain: str, hashed: str) -> bool: ...

    @property
    def dummy_hash(self) -> str:
        """A valid hash of no real password, for equal-cost failed lookups."""
        ...


class BcryptHasher:
    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        pw_bytes = plain.encode("utf-8")[:MAX_PASSWORD_BYTES]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode("utf-8")[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        except (ValueError, TypeError):
            # Unparseable stored hash never matches.
            return False

    @cached_property
    def dummy_hash(self) -> str:
        return self.hash("no-such-account")
