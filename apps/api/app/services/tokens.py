"""Bearer token issuance."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
import json
import logging

from app.adapters.auth.base import MessageSigner, TokenIssuanceFailed
from app.adapters.auth.codec import encode_segment
from app.core.logging_safety import safe_log_identifier
from app.repositories.records import PrincipalRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


def _utc_now() -> datetime:
    return datetime.now(UTC)


def compact_json(value: dict) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str
    expires_in: int
    expires_at: int


class TokenIssuer:
    """Builds and signs ``header.payload.signature`` tokens.

    The payload is deliberately minimal (``iss``, ``sub``, ``upn``, ``iat``,
    ``exp``). Role and profile data are never signed into the token, so a role
    change or a soft delete takes effect on the next request.
    """

    def __init__(
        self,
        signer: MessageSigner,
        *,
        issuer: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._signer = signer
        self._issuer = issuer
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, principal: PrincipalRecord) -> IssuedToken:
        safe_principal_id = safe_log_identifier(principal.id, prefix="pid")
        try:
            issued_at = int(self._clock().timestamp())
            expires_at = issued_at + self._ttl_seconds
            header = {"alg": self._signer.algorithm, "typ": "JWT"}
            payload = {
                "iss": self._issuer,
                "sub": str(principal.id),
                "upn": principal.email,
                "iat": issued_at,
                "exp": expires_at,
            }
            signing_input = f"{encode_segment(compact_json(header))}.{encode_segment(compact_json(payload))}"
            signature = self._signer.sign(signing_input.encode("ascii"))
            token = f"{signing_input}.{encode_segment(signature)}"
        except Exception as exc:
            logger.error("token.issue_failed principal_id=%s error=%s", safe_principal_id, type(exc).__name__)
            raise TokenIssuanceFailed("Could not issue authentication token") from exc

        logger.info("token.issued principal_id=%s expires_in=%s", safe_principal_id, self._ttl_seconds)
        return IssuedToken(token=token, expires_in=self._ttl_seconds, expires_at=expires_at)


__all__ = ["DEFAULT_TTL_SECONDS", "IssuedToken", "TokenIssuer", "compact_json"]
