"""Content ownership verification service."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import hashlib
import hmac
import logging
from uuid import UUID

from app.core.logging_safety import safe_log_identifier
from app.domain.ownership_claim import (
    AttemptOutcome,
    apply_attempt,
    apply_cancellation,
    channel_rejection,
    channels_match,
    new_claim,
)
from app.errors import not_found
from app.repositories.base import ClaimConflictError, OwnershipClaimStore, PrincipalStore, ResourceStore
from app.repositories.records import ContentRecord, OwnershipClaimRecord, PrincipalRecord
from app.schemas.ownership import (
    OwnershipClaim,
    OwnershipResult,
    OwnershipStatus,
    OwnershipStatusSnapshot,
    RejectionReason,
    VerifiedContent,
)

logger = logging.getLogger(__name__)

_REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.NO_CHANNEL: "User has no channel ID",
    RejectionReason.CHANNEL_MISMATCH: "Channel IDs do not match",
    RejectionReason.USER_CANCELLED: "Ownership claim cancelled by user",
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


def compute_validation_hash(
    secret: bytes,
    *,
    principal_id: UUID,
    content_id: UUID,
    principal_channel_id: str,
    content_channel_id: str,
) -> str:
    """HMAC-SHA256 over ``principal_id + content_id + principal_channel + content_channel``, hex encoded."""
    message = f"{principal_id}{content_id}{principal_channel_id}{content_channel_id}"
    return hmac.new(secret, message.encode("utf-8"), hashlib.sha256).hexdigest()


class OwnershipVerifier:
    """Binds a principal to externally sourced content through its channel id.

    Exactly one claim exists per ``(principal, content)`` pair. Every validate
    call re-evaluates the channel rule and converges that claim onto the
    result, bumping ``retry_count`` after the first attempt. A rejection is an
    answer, not an error: only missing principals/content raise.
    """

    def __init__(
        self,
        *,
        principals: PrincipalStore,
        contents: ResourceStore,
        claims: OwnershipClaimStore,
        secret: str | bytes,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if not secret:
            raise ValueError("ownership secret must not be empty")
        self._principals = principals
        self._contents = contents
        self._claims = claims
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self._clock = clock

    def validate(self, *, principal_id: UUID, content_id: UUID) -> OwnershipResult:
        safe_principal_id = safe_log_identifier(principal_id, prefix="pid")
        with self._claims.transaction():
            principal = self._require_principal(principal_id)
            content = self._contents.get_content(content_id)
            if content is None:
                logger.warning(
                    "ownership.rejected principal_id=%s content_id=%s code=RESOURCE_NOT_FOUND",
                    safe_principal_id,
                    content_id,
                )
                raise not_found("RESOURCE_NOT_FOUND", "Content not found")

            existing = self._claims.get_claim(principal_id, content_id)
            outcome = self._evaluate(principal, content)
            previous_hash = existing.validation_hash if existing is not None else None
            claim = self._record_attempt(existing, principal_id=principal_id, content_id=content_id, outcome=outcome)
            self._sync_content_hash(content, outcome=outcome, previous_hash=previous_hash)

        if claim.status is OwnershipStatus.VERIFIED:
            logger.info(
                "ownership.verified principal_id=%s content_id=%s retry_count=%s",
                safe_principal_id,
                content_id,
                claim.retry_count,
            )
            message = "Ownership validated successfully"
        else:
            logger.info(
                "ownership.rejected principal_id=%s content_id=%s reason=%s retry_count=%s",
                safe_principal_id,
                content_id,
                claim.rejection_reason.value if claim.rejection_reason else None,
                claim.retry_count,
            )
            message = _REJECTION_MESSAGES.get(claim.rejection_reason, "Ownership rejected")

        return self._to_result(claim, message=message)

    def status(self, *, principal_id: UUID, content_id: UUID) -> OwnershipStatusSnapshot:
        claim = self._claims.get_claim(principal_id, content_id)
        if claim is None:
            logger.warning(
                "ownership.status_missing principal_id=%s content_id=%s",
                safe_log_identifier(principal_id, prefix="pid"),
                content_id,
            )
            raise not_found("OWNERSHIP_NOT_FOUND", "Ownership not found")

        return OwnershipStatusSnapshot(
            ownership_id=claim.id,
            user_id=claim.principal_id,
            content_id=claim.content_id,
            status=claim.status,
            is_verified=claim.status is OwnershipStatus.VERIFIED,
            channels_match=channels_match(claim.principal_channel_id, claim.content_channel_id),
            rejection_reason=claim.rejection_reason,
            cancelled_by_user=claim.cancelled_by_user,
            retry_count=claim.retry_count,
            last_attempt_at=claim.last_attempt_at,
            verified_at=claim.verified_at,
            created_at=claim.created_at,
        )

    def cancel(self, *, principal_id: UUID, content_id: UUID) -> OwnershipResult:
        safe_principal_id = safe_log_identifier(principal_id, prefix="pid")
        with self._claims.transaction():
            claim = self._claims.get_claim(principal_id, content_id)
            if claim is None:
                logger.warning(
                    "ownership.cancel_missing principal_id=%s content_id=%s",
                    safe_principal_id,
                    content_id,
                )
                raise not_found("OWNERSHIP_NOT_FOUND", "Ownership not found")

            previous_hash = claim.validation_hash
            apply_cancellation(claim, now=self._clock())
            self._claims.update_claim(claim)
            content = self._contents.get_content(content_id)
            if content is not None:
                self._sync_content_hash(
                    content,
                    outcome=None,
                    previous_hash=previous_hash,
                )

        logger.info("ownership.cancelled principal_id=%s content_id=%s", safe_principal_id, content_id)
        return self._to_result(claim, message=_REJECTION_MESSAGES[RejectionReason.USER_CANCELLED])

    def verified_content(self, *, principal_id: UUID) -> list[VerifiedContent]:
        self._require_principal(principal_id)
        items: list[VerifiedContent] = []
        for claim in self._claims.list_claims_for_principal(principal_id, status=OwnershipStatus.VERIFIED):
            content = self._contents.get_content(claim.content_id)
            # Soft reference: the content may have been removed by ingestion.
            if content is None or claim.validation_hash is None or claim.verified_at is None:
                continue
            items.append(
                VerifiedContent(
                    content_id=content.id,
                    title=content.title,
                    channel_id=content.channel_id,
                    channel_name=content.channel_name,
                    video_url=content.video_url,
                    published_at=content.published_at,
                    ownership_id=claim.id,
                    validation_hash=claim.validation_hash,
                    verified_at=claim.verified_at,
                )
            )
        return items

    def pending(self) -> list[OwnershipClaim]:
        return [self._to_claim(claim) for claim in self._claims.list_claims_by_status(OwnershipStatus.PENDING)]

    def _require_principal(self, principal_id: UUID) -> PrincipalRecord:
        principal = self._principals.get_principal(principal_id)
        if principal is None or principal.is_deleted:
            logger.warning(
                "ownership.rejected principal_id=%s code=PRINCIPAL_NOT_FOUND",
                safe_log_identifier(principal_id, prefix="pid"),
            )
            raise not_found("PRINCIPAL_NOT_FOUND", "User not found")
        return principal

    def _evaluate(self, principal: PrincipalRecord, content: ContentRecord) -> AttemptOutcome:
        reason = channel_rejection(principal.channel_id, content.channel_id)
        if reason is not None:
            return AttemptOutcome(
                status=OwnershipStatus.REJECTED,
                principal_channel_id=principal.channel_id,
                content_channel_id=content.channel_id,
                rejection_reason=reason,
            )

        validation_hash = compute_validation_hash(
            self._secret,
            principal_id=principal.id,
            content_id=content.id,
            principal_channel_id=principal.channel_id or "",
            content_channel_id=content.channel_id or "",
        )
        return AttemptOutcome(
            status=OwnershipStatus.VERIFIED,
            principal_channel_id=principal.channel_id,
            content_channel_id=content.channel_id,
            validation_hash=validation_hash,
        )

    def _record_attempt(
        self,
        existing: OwnershipClaimRecord | None,
        *,
        principal_id: UUID,
        content_id: UUID,
        outcome: AttemptOutcome,
    ) -> OwnershipClaimRecord:
        now = self._clock()
        if existing is None:
            claim = new_claim(principal_id=principal_id, content_id=content_id, now=now)
            apply_attempt(claim, outcome, now=now, first_attempt=True)
            try:
                return self._claims.insert_claim(claim)
            except ClaimConflictError:
                # A concurrent first attempt inserted the row; this attempt becomes an update.
                existing = self._claims.get_claim(principal_id, content_id)
                if existing is None:
                    raise
                logger.info(
                    "ownership.insert_conflict principal_id=%s content_id=%s",
                    safe_log_identifier(principal_id, prefix="pid"),
                    content_id,
                )

        apply_attempt(existing, outcome, now=now, first_attempt=False)
        return self._claims.update_claim(existing)

    def _sync_content_hash(
        self,
        content: ContentRecord,
        *,
        outcome: AttemptOutcome | None,
        previous_hash: str | None,
    ) -> None:
        """Keep the content's cached hash in step with this claim; the claim stays authoritative."""
        if outcome is not None and outcome.status is OwnershipStatus.VERIFIED:
            new_hash = outcome.validation_hash
        elif previous_hash is not None and content.validation_hash == previous_hash:
            new_hash = None
        else:
            return

        if content.validation_hash == new_hash:
            return
        content.validation_hash = new_hash
        content.updated_at = self._clock()
        self._contents.save_content(content)

    @staticmethod
    def _to_claim(record: OwnershipClaimRecord) -> OwnershipClaim:
        return OwnershipClaim(
            id=record.id,
            user_id=record.principal_id,
            content_id=record.content_id,
            user_channel_id=record.principal_channel_id,
            content_channel_id=record.content_channel_id,
            status=record.status,
            validation_hash=record.validation_hash,
            rejection_reason=record.rejection_reason,
            retry_count=record.retry_count,
            last_attempt_at=record.last_attempt_at,
            cancelled_by_user=record.cancelled_by_user,
            verified_at=record.verified_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _to_result(self, record: OwnershipClaimRecord, *, message: str) -> OwnershipResult:
        return OwnershipResult(
            status=record.status,
            validation_hash=record.validation_hash,
            rejection_reason=record.rejection_reason,
            retry_count=record.retry_count,
            message=message,
            claim=self._to_claim(record),
        )


__all__ = ["OwnershipVerifier", "compute_validation_hash"]
