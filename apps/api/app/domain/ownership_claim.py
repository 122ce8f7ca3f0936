"""Ownership claim lifecycle rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from app.repositories.records import OwnershipClaimRecord
from app.schemas.ownership import OwnershipStatus, RejectionReason


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    status: OwnershipStatus
    principal_channel_id: str | None
    content_channel_id: str | None
    validation_hash: str | None = None
    rejection_reason: RejectionReason | None = None


def channel_rejection(principal_channel_id: str | None, content_channel_id: str | None) -> RejectionReason | None:
    """Return why the channels cannot prove ownership, or ``None`` when they match exactly."""
    if principal_channel_id is None or not principal_channel_id.strip():
        return RejectionReason.NO_CHANNEL
    if principal_channel_id != content_channel_id:
        return RejectionReason.CHANNEL_MISMATCH
    return None


def channels_match(principal_channel_id: str | None, content_channel_id: str | None) -> bool:
    return channel_rejection(principal_channel_id, content_channel_id) is None


def new_claim(*, principal_id: UUID, content_id: UUID, now: datetime) -> OwnershipClaimRecord:
    return OwnershipClaimRecord(
        id=uuid4(),
        principal_id=principal_id,
        content_id=content_id,
        status=OwnershipStatus.PENDING,
        retry_count=0,
        last_attempt_at=now,
        created_at=now,
        updated_at=now,
    )


def apply_attempt(
    claim: OwnershipClaimRecord,
    outcome: AttemptOutcome,
    *,
    now: datetime,
    first_attempt: bool,
) -> None:
    """Converge the claim onto the latest evaluation; history only survives in ``retry_count``."""
    if outcome.status is OwnershipStatus.VERIFIED and not outcome.validation_hash:
        raise ValueError("VERIFIED outcome requires a validation hash")
    if outcome.status is OwnershipStatus.REJECTED and outcome.rejection_reason is None:
        raise ValueError("REJECTED outcome requires a rejection reason")

    if not first_attempt:
        claim.retry_count += 1
    claim.last_attempt_at = now
    claim.principal_channel_id = outcome.principal_channel_id
    claim.content_channel_id = outcome.content_channel_id
    claim.status = outcome.status

    if outcome.status is OwnershipStatus.VERIFIED:
        claim.validation_hash = outcome.validation_hash
        claim.verified_at = now
        claim.rejection_reason = None
        claim.cancelled_by_user = False
    else:
        claim.validation_hash = None
        claim.verified_at = None
        claim.rejection_reason = outcome.rejection_reason


def apply_cancellation(claim: OwnershipClaimRecord, *, now: datetime) -> None:
    claim.status = OwnershipStatus.REJECTED
    claim.rejection_reason = RejectionReason.USER_CANCELLED
    claim.cancelled_by_user = True
    claim.validation_hash = None
    claim.verified_at = None
    claim.last_attempt_at = now
