"""Internal content ingestion routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status

from app.routes.dependencies import get_content_ingestion_service, require_internal_secret
from app.schemas.content import Content, UpsertContentRequest
from app.schemas.error import ErrorResponse
from app.services.content_ingestion import ContentIngestionService

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.put(
    "/contents/{contentId}",
    response_model=Content,
    responses={
        201: {"model": Content, "description": "Content created"},
        401: {"model": ErrorResponse},
    },
)
async def upsert_content(
    content_id: Annotated[UUID, Path(alias="contentId")],
    payload: UpsertContentRequest,
    response: Response,
    _: Annotated[None, Depends(require_internal_secret)],
    service: Annotated[ContentIngestionService, Depends(get_content_ingestion_service)],
) -> Content:
    content, created = service.upsert(content_id=content_id, payload=payload)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return content
