"""Persistence ports consumed by the auth and ownership services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from uuid import UUID

from app.repositories.records import ContentRecord, OwnershipClaimRecord, PrincipalRecord
from app.schemas.ownership import OwnershipStatus


class ClaimConflictError(Exception):
    """Raised when a claim for the same (principal, resource) pair already exists."""


class EmailAlreadyRegisteredError(Exception):
    """Raised when an active principal already owns the email."""


class PrincipalStore(ABC):
    @abstractmethod
    def get_principal(self, principal_id: UUID) -> PrincipalRecord | None:
        """Return the principal, soft-deleted ones included."""

    @abstractmethod
    def find_active_principal_by_email(self, email: str) -> PrincipalRecord | None:
        """Return the non-deleted principal owning ``email``."""

    @abstractmethod
    def add_principal(self, principal: PrincipalRecord) -> PrincipalRecord:
        """Persist a new principal; raise ``EmailAlreadyRegisteredError`` on duplicates."""


class ResourceStore(ABC):
    @abstractmethod
    def get_content(self, content_id: UUID) -> ContentRecord | None:
        """Return the content record or ``None``."""

    @abstractmethod
    def save_content(self, content: ContentRecord) -> ContentRecord:
        """Insert or replace a content record."""


class OwnershipClaimStore(ABC):
    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Boundary inside which a read-decide-write sequence is isolated."""

    @abstractmethod
    def get_claim(self, principal_id: UUID, content_id: UUID) -> OwnershipClaimRecord | None:
        """Return the claim for the natural key, or ``None``."""

    @abstractmethod
    def insert_claim(self, claim: OwnershipClaimRecord) -> OwnershipClaimRecord:
        """Insert a claim; raise ``ClaimConflictError`` if the natural key is taken."""

    @abstractmethod
    def update_claim(self, claim: OwnershipClaimRecord) -> OwnershipClaimRecord:
        """Persist changes to an existing claim."""

    @abstractmethod
    def list_claims_for_principal(
        self,
        principal_id: UUID,
        *,
        status: OwnershipStatus | None = None,
    ) -> list[OwnershipClaimRecord]:
        """Return the principal's claims, oldest first."""

    @abstractmethod
    def list_claims_by_status(self, status: OwnershipStatus) -> list[OwnershipClaimRecord]:
        """Return every claim currently in ``status``, oldest first."""


__all__ = [
    "ClaimConflictError",
    "EmailAlreadyRegisteredError",
    "OwnershipClaimStore",
    "PrincipalStore",
    "ResourceStore",
]
