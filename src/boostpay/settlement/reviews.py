"""Review registry — code-review bounties released by the requester alone.

Unlike tasks there is no dual confirmation: the requester who posted the
bounty decides when the review is done. The bounty is pulled into
custody at creation and leaves it exactly once, either as a payout to
the reviewer (minus the platform fee) or as a full refund.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from boostpay.models.errors import ErrorKind, SettlementError
from boostpay.models.escrow import EscrowStatus, ReviewBounty
from boostpay.models.treasury import FeeSource
from boostpay.policy.resolver import PolicyResolver
from boostpay.settlement.fees import is_whole_amount, platform_fee
from boostpay.settlement.ledger import Ledger
from boostpay.settlement.treasury import Treasury


class ReviewRegistry:
    """Stores review bounties and drives their lifecycle."""

    def __init__(
        self,
        resolver: PolicyResolver,
        ledger: Ledger,
        treasury: Treasury,
    ) -> None:
        self._ledger = ledger
        self._treasury = treasury
        self._custody = resolver.custody_account()
        self._fee_percent = resolver.fee_schedule().task_review_percent
        self._minimum = resolver.minimum_review_bounty()
        self._reviews: Dict[int, ReviewBounty] = {}
        self._next_id = 1

    @property
    def next_id(self) -> int:
        return self._next_id

    def create_review_request(
        self,
        caller: str,
        reviewer: str,
        bounty: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> ReviewBounty:
        """Post a bounty for reviewer, funded by the caller."""
        if reviewer == caller:
            raise SettlementError(
                ErrorKind.INVALID_PARTICIPANT,
                f"Requester and reviewer must differ (both {caller})",
            )
        if not is_whole_amount(bounty) or bounty < self._minimum:
            raise SettlementError(
                ErrorKind.INVALID_AMOUNT,
                f"Review bounty must be an integer of at least {self._minimum}, got {bounty!r}",
            )
        if not self._ledger.transfer(bounty, caller, self._custody):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Could not move {bounty} from {caller} into escrow",
            )
        if now is None:
            now = datetime.now(timezone.utc)

        review = ReviewBounty(
            review_id=self._next_id,
            requester=caller,
            reviewer=reviewer,
            bounty=bounty,
            platform_fee=platform_fee(bounty, self._fee_percent),
            created_height=height,
            created_utc=now,
        )
        self._reviews[review.review_id] = review
        self._next_id += 1
        return review

    def complete_review(
        self,
        caller: str,
        review_id: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> ReviewBounty:
        """Pay the reviewer and credit the fee. Requester only."""
        review = self._get(review_id)
        self._require_requester(review, caller, "complete")
        self._require_pending(review)
        if not self._ledger.transfer(review.reviewer_payout, self._custody, review.reviewer):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Payout of {review.reviewer_payout} to {review.reviewer} "
                f"for review {review_id} was refused",
            )
        if now is None:
            now = datetime.now(timezone.utc)
        review.transition_to(EscrowStatus.COMPLETED)
        review.completed_utc = now
        self._treasury.credit(
            FeeSource.REVIEW, review_id, review.platform_fee, height, now,
        )
        return review

    def cancel_review(
        self,
        caller: str,
        review_id: int,
        now: Optional[datetime] = None,
    ) -> ReviewBounty:
        """Refund the full bounty to the requester. Requester only."""
        review = self._get(review_id)
        self._require_requester(review, caller, "cancel")
        self._require_pending(review)
        if not self._ledger.transfer(review.bounty, self._custody, review.requester):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Refund of {review.bounty} to {review.requester} "
                f"for review {review_id} was refused",
            )
        if now is None:
            now = datetime.now(timezone.utc)
        review.transition_to(EscrowStatus.CANCELLED)
        review.cancelled_utc = now
        return review

    def get_review(self, review_id: int) -> Optional[ReviewBounty]:
        return self._reviews.get(review_id)

    def is_completed(self, review_id: int) -> bool:
        review = self._reviews.get(review_id)
        return review is not None and review.status == EscrowStatus.COMPLETED

    def reviews_for(self, principal: str) -> List[ReviewBounty]:
        return [
            r for r in self._reviews.values()
            if principal in (r.requester, r.reviewer)
        ]

    def all_reviews(self) -> List[ReviewBounty]:
        return list(self._reviews.values())

    def pending_total(self) -> int:
        """Bounty amount currently held in custody for pending reviews."""
        return sum(
            r.bounty for r in self._reviews.values()
            if r.status == EscrowStatus.PENDING
        )

    def restore(self, reviews: Iterable[ReviewBounty], next_id: int) -> None:
        """Replace in-memory records with persisted ones."""
        self._reviews = {r.review_id: r for r in reviews}
        if self._reviews and next_id <= max(self._reviews):
            raise ValueError(
                f"Persisted next review id {next_id} collides with stored review "
                f"{max(self._reviews)}"
            )
        self._next_id = next_id

    def _get(self, review_id: int) -> ReviewBounty:
        review = self._reviews.get(review_id)
        if review is None:
            raise SettlementError(
                ErrorKind.REVIEW_NOT_FOUND, f"Unknown review ID: {review_id}",
            )
        return review

    @staticmethod
    def _require_requester(review: ReviewBounty, caller: str, action: str) -> None:
        if caller != review.requester:
            raise SettlementError(
                ErrorKind.UNAUTHORIZED,
                f"Only the requester can {action} review {review.review_id}",
            )

    @staticmethod
    def _require_pending(review: ReviewBounty) -> None:
        if review.status != EscrowStatus.PENDING:
            raise SettlementError(
                ErrorKind.REVIEW_ALREADY_COMPLETED,
                f"Review {review.review_id} is {review.status.value}, not pending",
            )
