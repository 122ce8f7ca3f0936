"""In-memory repositories used by the API scaffold and tests."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
import threading
from uuid import UUID

from app.repositories.base import (
    ClaimConflictError,
    EmailAlreadyRegisteredError,
    OwnershipClaimStore,
    PrincipalStore,
    ResourceStore,
)
from app.repositories.records import ContentRecord, OwnershipClaimRecord, PrincipalRecord
from app.schemas.ownership import OwnershipStatus


@dataclass(slots=True)
class InMemoryStore(PrincipalStore, ResourceStore, OwnershipClaimStore):
    """Simple, deterministic persistence layer for scaffolding and tests.

    Claims are keyed by ``(principal_id, content_id)`` so the natural key is a
    unique index: a second insert for the same pair raises instead of
    creating a duplicate row.
    """

    principals: dict[UUID, PrincipalRecord] = field(default_factory=dict)
    contents: dict[UUID, ContentRecord] = field(default_factory=dict)
    claims: dict[tuple[UUID, UUID], OwnershipClaimRecord] = field(default_factory=dict)
    principal_write_count: int = 0
    content_write_count: int = 0
    claim_insert_count: int = 0
    claim_update_count: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def get_principal(self, principal_id: UUID) -> PrincipalRecord | None:
        return self.principals.get(principal_id)

    def find_active_principal_by_email(self, email: str) -> PrincipalRecord | None:
        normalized = email.strip().lower()
        for record in self.principals.values():
            if record.email == normalized and not record.is_deleted:
                return record
        return None

    def add_principal(self, principal: PrincipalRecord) -> PrincipalRecord:
        with self._lock:
            if self.find_active_principal_by_email(principal.email) is not None:
                raise EmailAlreadyRegisteredError(principal.email)
            self.principals[principal.id] = principal
            self.principal_write_count += 1
        return principal

    def soft_delete_principal(self, principal_id: UUID) -> PrincipalRecord | None:
        record = self.principals.get(principal_id)
        if record is not None and record.deleted_at is None:
            record.deleted_at = datetime.now(UTC)
            self.principal_write_count += 1
        return record

    def get_content(self, content_id: UUID) -> ContentRecord | None:
        return self.contents.get(content_id)

    def save_content(self, content: ContentRecord) -> ContentRecord:
        with self._lock:
            self.contents[content.id] = content
            self.content_write_count += 1
        return content

    def get_claim(self, principal_id: UUID, content_id: UUID) -> OwnershipClaimRecord | None:
        return self.claims.get((principal_id, content_id))

    def insert_claim(self, claim: OwnershipClaimRecord) -> OwnershipClaimRecord:
        with self._lock:
            if claim.natural_key in self.claims:
                raise ClaimConflictError(
                    f"ownership claim already exists for principal={claim.principal_id} content={claim.content_id}"
                )
            self.claims[claim.natural_key] = claim
            self.claim_insert_count += 1
        return claim

    def update_claim(self, claim: OwnershipClaimRecord) -> OwnershipClaimRecord:
        with self._lock:
            if claim.natural_key not in self.claims:
                raise KeyError(claim.natural_key)
            claim.updated_at = datetime.now(UTC)
            self.claims[claim.natural_key] = claim
            self.claim_update_count += 1
        return claim

    def list_claims_for_principal(
        self,
        principal_id: UUID,
        *,
        status: OwnershipStatus | None = None,
    ) -> list[OwnershipClaimRecord]:
        claims = [
            record
            for record in self.claims.values()
            if record.principal_id == principal_id and (status is None or record.status is status)
        ]
        claims.sort(key=lambda record: record.created_at)
        return claims

    def list_claims_by_status(self, status: OwnershipStatus) -> list[OwnershipClaimRecord]:
        claims = [record for record in self.claims.values() if record.status is status]
        claims.sort(key=lambda record: record.created_at)
        return claims
