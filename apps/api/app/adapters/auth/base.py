"""Authentication provider interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from app.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """Raised when authentication material cannot be produced or verified."""


class SigningKeyError(AuthVerificationError):
    """Signing key missing or unparsable. Raised at boot, never per request."""


class TokenIssuanceFailed(AuthVerificationError):
    """Raised when a token cannot be encoded or signed."""


class RejectionCode(str, Enum):
    TOKEN_MISSING = "token_missing"
    TOKEN_MALFORMED = "token_malformed"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    USER_NOT_FOUND = "user_not_found"
    USER_DELETED = "user_deleted"


@dataclass(frozen=True, slots=True)
class TokenDecision:
    """Outcome of running one Authorization header through the gate."""

    principal: AuthPrincipal | None = None
    code: RejectionCode | None = None
    message: str | None = None
    expired_seconds: int | None = None

    @property
    def accepted(self) -> bool:
        return self.principal is not None

    @classmethod
    def accept(cls, principal: AuthPrincipal) -> TokenDecision:
        return cls(principal=principal)

    @classmethod
    def reject(cls, code: RejectionCode, message: str, *, expired_seconds: int | None = None) -> TokenDecision:
        return cls(code=code, message=message, expired_seconds=expired_seconds)


class SignatureVerifier(ABC):
    """Checks a detached signature over the ``header.payload`` signing input."""

    algorithm: str

    @abstractmethod
    def verify(self, message: bytes, signature: bytes) -> bool:
        """Return whether ``signature`` is valid for ``message``; never raise on mismatch."""


class MessageSigner(ABC):
    algorithm: str

    @abstractmethod
    def sign(self, message: bytes) -> bytes:
        """Return a detached signature over ``message``."""


__all__ = [
    "AuthVerificationError",
    "MessageSigner",
    "RejectionCode",
    "SignatureVerifier",
    "SigningKeyError",
    "TokenDecision",
    "TokenIssuanceFailed",
]
