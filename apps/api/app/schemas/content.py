"""Content ingestion schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UpsertContentRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    channel_id: str | None = Field(default=None, max_length=255)
    channel_name: str | None = Field(default=None, max_length=255)
    video_url: str | None = None
    published_at: datetime | None = None


class Content(BaseModel):
    id: UUID
    title: str
    channel_id: str | None = None
    channel_name: str | None = None
    video_url: str | None = None
    validation_hash: str | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
