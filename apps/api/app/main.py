"""FastAPI application entrypoint.

Run with ``uvicorn app.main:create_app --factory``; the signing key is loaded
while the app is built, so a missing or unreadable key stops startup.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from app.adapters.auth import BcryptPasswordHasher, SigningKeyError, TokenDecision, load_signer, load_verifier
from app.core.config import Settings, get_settings
from app.core.logging_safety import safe_log_identifier, token_fingerprint
from app.errors import ApiError, TokenRejectedError
from app.repositories.memory import InMemoryStore
from app.routes import auth_router, internal_router, ownership_router
from app.routes.dependencies import get_request_correlation_id
from app.schemas.error import ErrorResponse, TokenErrorResponse
from app.services.token_validation import TokenValidator
from app.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)

_OPENAPI_RESPONSE_CODES: dict[str, dict[str, set[str]]] = {
    "/api/v1/auth/register": {"post": {"201", "409", "422"}},
    "/api/v1/auth/login": {"post": {"200", "400", "401", "422"}},
    "/api/v1/auth/me": {"get": {"200", "401"}},
    "/api/v1/ownership/validate": {"post": {"200", "400", "401", "403", "404"}},
    "/api/v1/ownership/status": {"get": {"200", "400", "401", "403", "404"}},
    "/api/v1/ownership/cancel": {"post": {"200", "400", "401", "403", "404"}},
    "/api/v1/ownership/users/{userId}/content": {"get": {"200", "400", "401", "403", "404"}},
    "/api/v1/ownership/pending": {"get": {"200", "401", "403"}},
    "/api/v1/internal/contents/{contentId}": {"put": {"200", "201", "401", "422"}},
}

_OWNERSHIP_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", "/api/v1/ownership/validate"),
    ("GET", "/api/v1/ownership/status"),
    ("POST", "/api/v1/ownership/cancel"),
    ("GET", "/api/v1/ownership/users/{userId}/content"),
}


def _apply_contract_response_codes(schema: dict) -> None:
    """Limit documented response codes to what each route can actually return."""
    for path, methods in _OPENAPI_RESPONSE_CODES.items():
        path_item = schema.get("paths", {}).get(path)
        if not path_item:
            continue

        for method, allowed_codes in methods.items():
            operation = path_item.get(method)
            if not operation:
                continue

            responses = operation.setdefault("responses", {})
            for status_code in list(responses.keys()):
                if status_code not in allowed_codes:
                    responses.pop(status_code, None)

            for status_code in sorted(allowed_codes):
                responses.setdefault(status_code, {"description": "See API contract"})


def _is_public_path(path: str, prefixes: list[str]) -> bool:
    """Prefixes match whole path segments: ``/docs`` covers ``/docs/x`` but not ``/docsx``."""
    for prefix in prefixes:
        base = prefix.rstrip("/")
        if path == base or path.startswith(base + "/"):
            return True
    return False


def _token_rejection_response(decision: TokenDecision) -> JSONResponse:
    payload = TokenErrorResponse(error=decision.code.value, message=decision.message or "Unauthorized")
    return JSONResponse(
        status_code=401,
        content=payload.model_dump(),
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_app(settings: Settings | None = None, store: InMemoryStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    try:
        signer = load_signer(settings)
        verifier = load_verifier(settings, signer)
    except SigningKeyError:
        logger.critical("app.startup_failed reason=signing_key_unavailable")
        raise

    app = FastAPI(title="AGuide Ownership API", version="1.0.0")
    app.state.settings = settings
    app.state.store = store if store is not None else InMemoryStore()
    app.state.token_issuer = TokenIssuer(signer, issuer=settings.jwt_issuer, ttl_seconds=settings.jwt_ttl_seconds)
    app.state.token_validator = TokenValidator(verifier, app.state.store, issuer=settings.jwt_issuer)
    app.state.password_hasher = BcryptPasswordHasher(rounds=settings.password_hash_rounds)

    @app.middleware("http")
    async def bearer_token_gate(request: Request, call_next):
        path = request.url.path
        if _is_public_path(path, settings.public_path_prefixes):
            return await call_next(request)

        authorization = request.headers.get("Authorization")
        decision = app.state.token_validator.evaluate(authorization)
        correlation_id = safe_log_identifier(get_request_correlation_id(request), prefix="cid")
        if not decision.accepted:
            logger.warning(
                "auth.rejected correlation_id=%s method=%s path=%s reason=%s token=%s expired_seconds=%s",
                correlation_id,
                request.method,
                path,
                decision.code.value,
                token_fingerprint(authorization),
                decision.expired_seconds,
            )
            return _token_rejection_response(decision)

        request.state.auth_principal = decision.principal
        logger.info(
            "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s",
            correlation_id,
            request.method,
            path,
            safe_log_identifier(decision.principal.user_id, prefix="pid"),
        )
        return await call_next(request)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(TokenRejectedError)
    async def handle_token_rejected(_, exc: TokenRejectedError) -> JSONResponse:
        return _token_rejection_response(exc.decision)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        route_key = (request.method.upper(), route_path)
        if route_key in _OWNERSHIP_VALIDATION_PATHS:
            payload = ErrorResponse(code="VALIDATION_ERROR", message="Invalid ownership request")
            return JSONResponse(status_code=400, content=payload.model_dump(exclude_none=True))

        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "app.unhandled_error correlation_id=%s method=%s path=%s",
            safe_log_identifier(get_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
        payload = ErrorResponse(code="INTERNAL_ERROR", message="Internal server error")
        return JSONResponse(status_code=500, content=payload.model_dump(exclude_none=True))

    api_prefix = "/api/v1"
    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(ownership_router, prefix=api_prefix)
    app.include_router(internal_router, prefix=api_prefix)

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        _apply_contract_response_codes(schema)
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
