"""Ownership verification service tests."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import re
import unittest
from uuid import uuid4

from auth_fixtures import OWNERSHIP_SECRET, FixedClock, seed_content, seed_principal
from app.domain.ownership_claim import new_claim
from app.errors import ApiError
from app.repositories.memory import InMemoryStore
from app.schemas.ownership import OwnershipStatus, RejectionReason
from app.services.ownership import OwnershipVerifier, compute_validation_hash


class _LostInsertRaceStore(InMemoryStore):
    """The first claim lookup misses, and a rival first attempt lands right after it."""

    def __init__(self) -> None:
        super().__init__()
        self.raced = False

    def get_claim(self, principal_id, content_id):
        if not self.raced:
            self.raced = True
            rival = new_claim(principal_id=principal_id, content_id=content_id, now=FixedClock()())
            rival.status = OwnershipStatus.REJECTED
            rival.rejection_reason = RejectionReason.NO_CHANNEL
            self.insert_claim(rival)
            return None
        return super().get_claim(principal_id, content_id)


class OwnershipVerifierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FixedClock()
        self.store = InMemoryStore()
        self.verifier = self._verifier(self.store)
        self.u1 = seed_principal(self.store, channel_id="UC-one")
        self.u2 = seed_principal(self.store, channel_id=None)
        self.r1 = seed_content(self.store, channel_id="UC-one")
        self.r2 = seed_content(self.store, channel_id="UC-two")

    def _verifier(self, store: InMemoryStore) -> OwnershipVerifier:
        return OwnershipVerifier(
            principals=store,
            contents=store,
            claims=store,
            secret=OWNERSHIP_SECRET,
            clock=self.clock,
        )

    def test_matching_channels_verify_with_deterministic_hash(self) -> None:
        result = self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)

        expected_hash = compute_validation_hash(
            OWNERSHIP_SECRET.encode("utf-8"),
            principal_id=self.u1.id,
            content_id=self.r1.id,
            principal_channel_id="UC-one",
            content_channel_id="UC-one",
        )
        self.assertEqual(result.status, OwnershipStatus.VERIFIED)
        self.assertEqual(result.validation_hash, expected_hash)
        self.assertRegex(result.validation_hash, re.compile(r"^[0-9a-f]{64}$"))
        self.assertIsNone(result.rejection_reason)
        self.assertEqual(result.retry_count, 0)
        self.assertEqual(result.message, "Ownership validated successfully")
        self.assertEqual(result.claim.verified_at, self.clock.moment)
        self.assertEqual(self.store.get_content(self.r1.id).validation_hash, expected_hash)

    def test_hash_depends_on_secret(self) -> None:
        kwargs = {
            "principal_id": self.u1.id,
            "content_id": self.r1.id,
            "principal_channel_id": "UC-one",
            "content_channel_id": "UC-one",
        }
        self.assertNotEqual(compute_validation_hash(b"one", **kwargs), compute_validation_hash(b"two", **kwargs))

    def test_channel_mismatch_is_rejected_without_hash(self) -> None:
        result = self.verifier.validate(principal_id=self.u1.id, content_id=self.r2.id)

        self.assertEqual(result.status, OwnershipStatus.REJECTED)
        self.assertEqual(result.rejection_reason, RejectionReason.CHANNEL_MISMATCH)
        self.assertIsNone(result.validation_hash)
        self.assertEqual(result.message, "Channel IDs do not match")
        self.assertEqual(result.claim.user_channel_id, "UC-one")
        self.assertEqual(result.claim.content_channel_id, "UC-two")
        self.assertIsNone(self.store.get_content(self.r2.id).validation_hash)

    def test_principal_without_channel_is_rejected_with_no_channel(self) -> None:
        result = self.verifier.validate(principal_id=self.u2.id, content_id=self.r1.id)

        self.assertEqual(result.status, OwnershipStatus.REJECTED)
        self.assertEqual(result.rejection_reason, RejectionReason.NO_CHANNEL)
        self.assertEqual(result.message, "User has no channel ID")

    def test_blank_principal_channel_counts_as_absent(self) -> None:
        blank = seed_principal(self.store, channel_id="   ")

        result = self.verifier.validate(principal_id=blank.id, content_id=self.r1.id)

        self.assertEqual(result.rejection_reason, RejectionReason.NO_CHANNEL)

    def test_content_without_channel_is_a_mismatch(self) -> None:
        orphan = seed_content(self.store, channel_id=None)

        result = self.verifier.validate(principal_id=self.u1.id, content_id=orphan.id)

        self.assertEqual(result.rejection_reason, RejectionReason.CHANNEL_MISMATCH)

    def test_repeated_validation_keeps_one_claim_and_counts_retries(self) -> None:
        results = [self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id) for _ in range(5)]

        self.assertEqual(len(self.store.claims), 1)
        self.assertEqual(self.store.claim_insert_count, 1)
        self.assertEqual(self.store.claim_update_count, 4)
        self.assertEqual([r.retry_count for r in results], [0, 1, 2, 3, 4])
        self.assertEqual({r.validation_hash for r in results}, {results[0].validation_hash})
        self.assertEqual({r.claim.id for r in results}, {results[0].claim.id})

    def test_rejected_claim_recovers_once_channel_is_linked(self) -> None:
        first = self.verifier.validate(principal_id=self.u2.id, content_id=self.r1.id)
        self.assertEqual(first.rejection_reason, RejectionReason.NO_CHANNEL)

        self.u2.channel_id = "UC-one"
        self.clock.advance(60)
        second = self.verifier.validate(principal_id=self.u2.id, content_id=self.r1.id)

        self.assertEqual(second.status, OwnershipStatus.VERIFIED)
        self.assertIsNone(second.rejection_reason)
        self.assertEqual(second.retry_count, 1)
        self.assertEqual(second.claim.id, first.claim.id)
        self.assertEqual(second.claim.last_attempt_at, self.clock.moment)
        self.assertEqual(second.claim.user_channel_id, "UC-one")

    def test_verified_claim_flips_to_rejected_when_content_moves_channel(self) -> None:
        verified = self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)
        self.r1.channel_id = "UC-elsewhere"

        result = self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)

        self.assertEqual(result.status, OwnershipStatus.REJECTED)
        self.assertIsNone(result.claim.verified_at)
        self.assertIsNone(result.validation_hash)
        self.assertIsNotNone(verified.validation_hash)
        self.assertIsNone(self.store.get_content(self.r1.id).validation_hash)

    def test_unknown_or_deleted_principal_and_unknown_content_raise_not_found(self) -> None:
        cases = [
            (uuid4(), self.r1.id, "PRINCIPAL_NOT_FOUND"),
            (self.u1.id, uuid4(), "RESOURCE_NOT_FOUND"),
        ]
        for principal_id, content_id, code in cases:
            with self.subTest(code=code):
                with self.assertRaises(ApiError) as ctx:
                    self.verifier.validate(principal_id=principal_id, content_id=content_id)
                self.assertEqual(ctx.exception.status_code, 404)
                self.assertEqual(ctx.exception.payload.code, code)

        self.store.soft_delete_principal(self.u1.id)
        with self.assertRaises(ApiError) as ctx:
            self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(ctx.exception.payload.code, "PRINCIPAL_NOT_FOUND")
        self.assertEqual(self.store.claims, {})

    def test_status_reports_snapshot(self) -> None:
        self.verifier.validate(principal_id=self.u1.id, content_id=self.r2.id)

        snapshot = self.verifier.status(principal_id=self.u1.id, content_id=self.r2.id)

        self.assertEqual(snapshot.status, OwnershipStatus.REJECTED)
        self.assertFalse(snapshot.is_verified)
        self.assertFalse(snapshot.channels_match)
        self.assertEqual(snapshot.rejection_reason, RejectionReason.CHANNEL_MISMATCH)
        self.assertEqual(snapshot.retry_count, 0)

    def test_status_without_claim_is_not_found(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self.verifier.status(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(ctx.exception.payload.code, "OWNERSHIP_NOT_FOUND")

    def test_cancel_then_revalidate(self) -> None:
        self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)

        cancelled = self.verifier.cancel(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(cancelled.status, OwnershipStatus.REJECTED)
        self.assertEqual(cancelled.rejection_reason, RejectionReason.USER_CANCELLED)
        self.assertTrue(cancelled.claim.cancelled_by_user)
        self.assertIsNone(cancelled.validation_hash)
        self.assertEqual(cancelled.retry_count, 0)
        self.assertIsNone(self.store.get_content(self.r1.id).validation_hash)

        again = self.verifier.cancel(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(again.rejection_reason, RejectionReason.USER_CANCELLED)
        self.assertEqual(len(self.store.claims), 1)

        revalidated = self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(revalidated.status, OwnershipStatus.VERIFIED)
        self.assertFalse(revalidated.claim.cancelled_by_user)
        self.assertEqual(revalidated.retry_count, 1)
        self.assertEqual(self.store.get_content(self.r1.id).validation_hash, revalidated.validation_hash)

    def test_cancel_without_claim_is_not_found(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self.verifier.cancel(principal_id=self.u1.id, content_id=self.r1.id)
        self.assertEqual(ctx.exception.payload.code, "OWNERSHIP_NOT_FOUND")

    def test_verified_content_lists_only_verified_claims(self) -> None:
        self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)
        self.verifier.validate(principal_id=self.u1.id, content_id=self.r2.id)

        items = self.verifier.verified_content(principal_id=self.u1.id)

        self.assertEqual([item.content_id for item in items], [self.r1.id])
        self.assertEqual(items[0].title, "Trail guide")
        self.assertEqual(self.verifier.verified_content(principal_id=self.u2.id), [])

    def test_pending_lists_claims_without_a_decision(self) -> None:
        parked = new_claim(principal_id=self.u2.id, content_id=self.r2.id, now=self.clock())
        self.store.insert_claim(parked)
        self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id)

        pending = self.verifier.pending()

        self.assertEqual([claim.id for claim in pending], [parked.id])
        self.assertEqual(pending[0].status, OwnershipStatus.PENDING)

    def test_lost_insert_race_converges_to_single_claim(self) -> None:
        store = _LostInsertRaceStore()
        principal = seed_principal(store, channel_id="UC-one")
        content = seed_content(store, channel_id="UC-one")

        result = self._verifier(store).validate(principal_id=principal.id, content_id=content.id)

        self.assertEqual(result.status, OwnershipStatus.VERIFIED)
        self.assertEqual(result.retry_count, 1)
        self.assertEqual(len(store.claims), 1)
        self.assertEqual(store.claim_insert_count, 1)
        self.assertEqual(store.claim_update_count, 1)

    def test_concurrent_first_validations_share_one_claim(self) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(
                pool.map(
                    lambda _: self.verifier.validate(principal_id=self.u1.id, content_id=self.r1.id),
                    range(8),
                )
            )

        self.assertEqual(len(self.store.claims), 1)
        self.assertEqual(sorted(r.retry_count for r in results), list(range(8)))
        self.assertEqual(self.store.get_claim(self.u1.id, self.r1.id).retry_count, 7)

    def test_empty_secret_is_refused(self) -> None:
        with self.assertRaises(ValueError):
            OwnershipVerifier(principals=self.store, contents=self.store, claims=self.store, secret="")
