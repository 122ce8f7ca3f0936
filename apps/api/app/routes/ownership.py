"""Content ownership routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from app.repositories.records import PrincipalRecord
from app.routes.dependencies import (
    ensure_acting_for,
    get_current_principal_record,
    get_ownership_verifier,
    require_role,
)
from app.schemas.error import ErrorResponse, NotFoundError, TokenErrorResponse
from app.schemas.ownership import (
    OwnershipClaim,
    OwnershipResult,
    OwnershipStatusSnapshot,
    ValidateOwnershipRequest,
    VerifiedContent,
)
from app.schemas.user import UserRole
from app.services.ownership import OwnershipVerifier

router = APIRouter(prefix="/ownership", tags=["Ownership"])

_PROTECTED_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": TokenErrorResponse},
    403: {"model": ErrorResponse},
}


@router.post(
    "/validate",
    response_model=OwnershipResult,
    responses={**_PROTECTED_RESPONSES, 404: {"model": NotFoundError}},
)
async def validate_ownership(
    payload: ValidateOwnershipRequest,
    caller: Annotated[PrincipalRecord, Depends(get_current_principal_record)],
    verifier: Annotated[OwnershipVerifier, Depends(get_ownership_verifier)],
) -> OwnershipResult:
    ensure_acting_for(caller, payload.user_id)
    return verifier.validate(principal_id=payload.user_id, content_id=payload.content_id)


@router.get(
    "/status",
    response_model=OwnershipStatusSnapshot,
    responses={**_PROTECTED_RESPONSES, 404: {"model": NotFoundError}},
)
async def get_ownership_status(
    user_id: Annotated[UUID, Query()],
    content_id: Annotated[UUID, Query()],
    caller: Annotated[PrincipalRecord, Depends(get_current_principal_record)],
    verifier: Annotated[OwnershipVerifier, Depends(get_ownership_verifier)],
) -> OwnershipStatusSnapshot:
    ensure_acting_for(caller, user_id)
    return verifier.status(principal_id=user_id, content_id=content_id)


@router.post(
    "/cancel",
    response_model=OwnershipResult,
    responses={**_PROTECTED_RESPONSES, 404: {"model": NotFoundError}},
)
async def cancel_ownership(
    payload: ValidateOwnershipRequest,
    caller: Annotated[PrincipalRecord, Depends(get_current_principal_record)],
    verifier: Annotated[OwnershipVerifier, Depends(get_ownership_verifier)],
) -> OwnershipResult:
    ensure_acting_for(caller, payload.user_id)
    return verifier.cancel(principal_id=payload.user_id, content_id=payload.content_id)


@router.get(
    "/users/{userId}/content",
    response_model=list[VerifiedContent],
    responses={**_PROTECTED_RESPONSES, 404: {"model": NotFoundError}},
)
async def list_verified_content(
    user_id: Annotated[UUID, Path(alias="userId")],
    caller: Annotated[PrincipalRecord, Depends(get_current_principal_record)],
    verifier: Annotated[OwnershipVerifier, Depends(get_ownership_verifier)],
) -> list[VerifiedContent]:
    ensure_acting_for(caller, user_id)
    return verifier.verified_content(principal_id=user_id)


@router.get(
    "/pending",
    response_model=list[OwnershipClaim],
    responses={401: {"model": TokenErrorResponse}, 403: {"model": ErrorResponse}},
)
async def list_pending_claims(
    _: Annotated[PrincipalRecord, Depends(require_role(UserRole.ADMIN))],
    verifier: Annotated[OwnershipVerifier, Depends(get_ownership_verifier)],
) -> list[OwnershipClaim]:
    return verifier.pending()
