"""Ownership API schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class OwnershipStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class RejectionReason(str, Enum):
    NO_CHANNEL = "NO_CHANNEL"
    CHANNEL_MISMATCH = "CHANNEL_MISMATCH"
    USER_CANCELLED = "USER_CANCELLED"


class ValidateOwnershipRequest(BaseModel):
    user_id: UUID
    content_id: UUID


class OwnershipClaim(BaseModel):
    id: UUID
    user_id: UUID
    content_id: UUID
    user_channel_id: str | None = None
    content_channel_id: str | None = None
    status: OwnershipStatus
    validation_hash: str | None = None
    rejection_reason: RejectionReason | None = None
    retry_count: int
    last_attempt_at: datetime
    cancelled_by_user: bool
    verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class OwnershipResult(BaseModel):
    """Answer to a validate or cancel call; a REJECTED status is a normal answer."""

    status: OwnershipStatus
    validation_hash: str | None = None
    rejection_reason: RejectionReason | None = None
    retry_count: int
    message: str
    claim: OwnershipClaim


class OwnershipStatusSnapshot(BaseModel):
    ownership_id: UUID
    user_id: UUID
    content_id: UUID
    status: OwnershipStatus
    is_verified: bool
    channels_match: bool
    rejection_reason: RejectionReason | None = None
    cancelled_by_user: bool
    retry_count: int
    last_attempt_at: datetime
    verified_at: datetime | None = None
    created_at: datetime


class VerifiedContent(BaseModel):
    content_id: UUID
    title: str
    channel_id: str | None = None
    channel_name: str | None = None
    video_url: str | None = None
    published_at: datetime | None = None
    ownership_id: UUID
    validation_hash: str
    verified_at: datetime
