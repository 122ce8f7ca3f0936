"""Dependency wiring for routes."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
import logging
from secrets import compare_digest
from typing import Annotated, Any
from uuid import UUID, uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from app.adapters.auth import PasswordHasher, RejectionCode, TokenDecision
from app.core.config import Settings
from app.core.logging_safety import safe_log_identifier
from app.errors import ApiError, TokenRejectedError
from app.repositories.memory import InMemoryStore
from app.repositories.records import PrincipalRecord
from app.schemas.auth import AuthPrincipal
from app.schemas.user import UserRole
from app.services.auth import AuthService
from app.services.content_ingestion import ContentIngestionService
from app.services.ownership import OwnershipVerifier
from app.services.tokens import TokenIssuer

# Documents the scheme in OpenAPI; the bearer gate middleware does the actual checking.
bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
internal_secret_scheme = APIKeyHeader(
    name="X-Internal-Secret",
    auto_error=False,
    scheme_name="internalApiSecret",
)
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_request_correlation_id(request: Request) -> str:
    return _request_correlation_id(request)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_auth_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> AuthService:
    return AuthService(principals=store, issuer=issuer, hasher=hasher)


def get_ownership_verifier(
    store: Annotated[InMemoryStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> OwnershipVerifier:
    return OwnershipVerifier(
        principals=store,
        contents=store,
        claims=store,
        secret=settings.ownership_secret.get_secret_value(),
    )


def get_content_ingestion_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> ContentIngestionService:
    return ContentIngestionService(store)


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
) -> AuthPrincipal:
    """Return the principal bound by the bearer gate.

    A route reachable without the gate (allow-listed prefix) that still asks
    for a principal is a wiring mistake; fail closed instead of trusting it.
    """
    principal = getattr(request.state, "auth_principal", None)
    if isinstance(principal, AuthPrincipal):
        return principal

    logger.warning(
        "auth.rejected correlation_id=%s method=%s path=%s reason=principal_not_bound",
        safe_log_identifier(_request_correlation_id(request), prefix="cid"),
        request.method,
        request.url.path,
    )
    code = RejectionCode.TOKEN_MISSING if credentials is None else RejectionCode.TOKEN_INVALID
    raise TokenRejectedError(TokenDecision.reject(code, "Authentication token is required"))


async def get_current_principal_record(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    store: Annotated[InMemoryStore, Depends(get_store)],
) -> PrincipalRecord:
    """Fresh store lookup; roles are never read from token claims."""
    record = store.get_principal(principal.user_id)
    if record is None:
        raise TokenRejectedError(
            TokenDecision.reject(RejectionCode.USER_NOT_FOUND, "User bound to this token no longer exists")
        )
    if record.is_deleted:
        raise TokenRejectedError(TokenDecision.reject(RejectionCode.USER_DELETED, "User has been deactivated"))
    return record


def require_role(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, PrincipalRecord]]:
    allowed = frozenset(roles)

    async def _require_role(
        request: Request,
        record: Annotated[PrincipalRecord, Depends(get_current_principal_record)],
    ) -> PrincipalRecord:
        if record.role not in allowed:
            logger.warning(
                "auth.forbidden correlation_id=%s method=%s path=%s principal_id=%s role=%s",
                safe_log_identifier(_request_correlation_id(request), prefix="cid"),
                request.method,
                request.url.path,
                safe_log_identifier(record.id, prefix="pid"),
                record.role.value,
            )
            raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient role for this operation")
        return record

    return _require_role


def ensure_acting_for(record: PrincipalRecord, user_id: UUID) -> None:
    """A principal may only act on its own ownership claims unless it is an admin."""
    if record.id != user_id and record.role is not UserRole.ADMIN:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Cannot act on behalf of another user")


async def require_internal_secret(
    request: Request,
    internal_secret: Annotated[str | None, Security(internal_secret_scheme)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> None:
    """Validate the shared secret for internal ingestion endpoints."""
    expected = settings.internal_api_secret.get_secret_value()
    if internal_secret is None or not compare_digest(internal_secret.encode("utf-8"), expected.encode("utf-8")):
        logger.warning(
            "internal.auth_rejected correlation_id=%s method=%s path=%s reason=invalid_internal_secret",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
        raise ApiError(status_code=401, code="UNAUTHORIZED", message="Invalid internal authentication")
