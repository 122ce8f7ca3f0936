"""Persistence records shared by the store implementations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from app.schemas.ownership import OwnershipStatus, RejectionReason
from app.schemas.user import UserRole


@dataclass(slots=True)
class PrincipalRecord:
    id: UUID
    name: str
    surname: str
    email: str
    role: UserRole
    created_at: datetime
    password_hash: str | None = None
    channel_id: str | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(slots=True)
class ContentRecord:
    id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    channel_id: str | None = None
    channel_name: str | None = None
    video_url: str | None = None
    validation_hash: str | None = None
    published_at: datetime | None = None


@dataclass(slots=True)
class OwnershipClaimRecord:
    # principal_id/content_id are plain identifiers: the referenced rows have
    # their own lifecycles and existence is checked at validation time.
    id: UUID
    principal_id: UUID
    content_id: UUID
    status: OwnershipStatus
    retry_count: int
    last_attempt_at: datetime
    created_at: datetime
    updated_at: datetime
    principal_channel_id: str | None = None
    content_channel_id: str | None = None
    validation_hash: str | None = None
    rejection_reason: RejectionReason | None = None
    cancelled_by_user: bool = False
    verified_at: datetime | None = None

    @property
    def natural_key(self) -> tuple[UUID, UUID]:
        return (self.principal_id, self.content_id)
