"""Opaque password hashing service."""

from __future__ import annotations

from abc import ABC, abstractmethod

import bcrypt


class PasswordHasher(ABC):
    @abstractmethod
    def hash(self, password: str) -> str:
        """Return an encoded hash for storage."""

    @abstractmethod
    def verify(self, password: str, password_hash: str | None) -> bool:
        """Return whether ``password`` matches ``password_hash``."""


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def verify(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False


__all__ = ["BcryptPasswordHasher", "PasswordHasher"]
