"""Request-time bearer token validation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import json
import math
from typing import Any
from uuid import UUID

from app.adapters.auth.base import RejectionCode, SignatureVerifier, TokenDecision
from app.adapters.auth.codec import MalformedEncoding, MalformedToken, decode_segment, split_token
from app.repositories.base import PrincipalStore
from app.schemas.auth import AuthPrincipal

BEARER_SCHEME = "Bearer"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenValidator:
    """Turns an ``Authorization`` header into an accept/reject decision.

    Checks run cheapest first and the first failure wins:

    1. structural: header present, ``Bearer <token>`` shape, three segments,
       base64url segments, JSON objects, expected ``alg``
    2. integrity: RS256 signature over ``header.payload``
    3. semantic: issuer, expiry (``now > exp`` is expired, ``exp == now`` is
       not), required ``sub``/``upn`` claims, ``sub`` parsable as a UUID
    4. store-backed: principal still exists and is not soft-deleted

    The principal store is only consulted for a token that passed every
    earlier step. Store errors propagate; they are not rejections.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        principals: PrincipalStore,
        *,
        issuer: str | None = None,
        clock: Callable[[], datetime] = _utc_now,
        check_principal: bool = True,
    ) -> None:
        self._verifier = verifier
        self._principals = principals
        self._issuer = issuer
        self._clock = clock
        self._check_principal = check_principal

    def evaluate(self, authorization: str | None) -> TokenDecision:
        if authorization is None or not authorization.strip():
            return TokenDecision.reject(RejectionCode.TOKEN_MISSING, "Authentication token is required")

        header_value = authorization.strip()
        if header_value == BEARER_SCHEME:
            return TokenDecision.reject(RejectionCode.TOKEN_MISSING, "Token must not be empty after 'Bearer '")
        if not header_value.startswith(f"{BEARER_SCHEME} "):
            return TokenDecision.reject(
                RejectionCode.TOKEN_MALFORMED,
                "Authorization header must start with 'Bearer '",
            )

        token = header_value[len(BEARER_SCHEME) + 1 :].strip()
        if not token:
            return TokenDecision.reject(RejectionCode.TOKEN_MISSING, "Token must not be empty after 'Bearer '")

        try:
            encoded_header, encoded_payload, encoded_signature = split_token(token)
        except MalformedToken:
            return TokenDecision.reject(
                RejectionCode.TOKEN_MALFORMED,
                "Token must have 3 dot-separated segments",
            )

        try:
            raw_header = decode_segment(encoded_header)
            raw_payload = decode_segment(encoded_payload)
            signature = decode_segment(encoded_signature)
        except MalformedEncoding:
            return TokenDecision.reject(RejectionCode.TOKEN_MALFORMED, "Token has invalid base64url encoding")

        header = _json_object(raw_header)
        payload = _json_object(raw_payload)
        if header is None or payload is None:
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token segments are not JSON objects")
        if header.get("alg") != self._verifier.algorithm:
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token algorithm is not accepted")

        signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
        if not self._verifier.verify(signing_input, signature):
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token signature is invalid")

        if self._issuer is not None and "iss" in payload and payload["iss"] != self._issuer:
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token issuer is not trusted")

        expires_at = payload.get("exp")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token is missing a numeric 'exp' claim")
        now = int(self._clock().timestamp())
        if now > expires_at:
            expired_seconds = max(1, math.ceil(now - expires_at))
            return TokenDecision.reject(
                RejectionCode.TOKEN_EXPIRED,
                f"Token expired {expired_seconds} seconds ago. Please log in again",
                expired_seconds=expired_seconds,
            )

        subject = payload.get("sub")
        handle = payload.get("upn")
        if not _non_empty_string(subject) or not _non_empty_string(handle):
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token is missing required claims (sub, upn)")

        try:
            principal_id = UUID(subject)
        except ValueError:
            return TokenDecision.reject(RejectionCode.TOKEN_INVALID, "Token subject is not a valid user id")

        if self._check_principal:
            principal = self._principals.get_principal(principal_id)
            if principal is None:
                return TokenDecision.reject(RejectionCode.USER_NOT_FOUND, "User bound to this token no longer exists")
            if principal.is_deleted:
                return TokenDecision.reject(RejectionCode.USER_DELETED, "User has been deactivated")

        return TokenDecision.accept(AuthPrincipal(user_id=principal_id, handle=handle))


def _json_object(raw: bytes) -> dict[str, Any] | None:
    try:
        value = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


__all__ = ["BEARER_SCHEME", "TokenValidator"]
