"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.routes.dependencies import get_auth_service, get_authenticated_principal
from app.schemas.auth import AuthPrincipal, LoginRequest, LoginResponse, RegisterRequest, UserInfo
from app.schemas.error import ErrorResponse, TokenErrorResponse
from app.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


# Plain def: password hashing is CPU bound and must run in the threadpool.
@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
def register(
    payload: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    return service.register(payload)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def login(
    payload: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    return service.login(payload)


@router.get(
    "/me",
    response_model=UserInfo,
    responses={401: {"model": TokenErrorResponse}},
)
async def me(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserInfo:
    return service.current_user(principal.user_id)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
