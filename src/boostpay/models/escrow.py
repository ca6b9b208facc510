"""Escrow models — task escrows, review bounties, and their lifecycle.

All amounts are integers in the smallest currency unit. No floats in
finance, and no fractional units either: fees truncate.

State machine (shared by tasks and reviews):
    PENDING → COMPLETED     (funds released to the counterparty)
    PENDING → CANCELLED     (full refund to the requester)

DISPUTED is reserved. Nothing transitions into it yet, and it has no
exits, so a record can never reach it through the engines.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional


class EscrowStatus(str, enum.Enum):
    """Lifecycle state of a task escrow or review bounty."""
    PENDING = "pending"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"


ESCROW_TRANSITIONS: Dict[EscrowStatus, frozenset] = {
    EscrowStatus.PENDING: frozenset({
        EscrowStatus.COMPLETED,
        EscrowStatus.CANCELLED,
    }),
    EscrowStatus.COMPLETED: frozenset(),
    EscrowStatus.DISPUTED: frozenset(),
    EscrowStatus.CANCELLED: frozenset(),
}


def _check_transition(current: EscrowStatus, new_status: EscrowStatus) -> None:
    allowed = ESCROW_TRANSITIONS.get(current, frozenset())
    if new_status not in allowed:
        raise ValueError(
            f"Invalid escrow transition: {current.value} → {new_status.value}. "
            f"Allowed: {', '.join(s.value for s in allowed) or 'none'}"
        )


@dataclass
class TaskEscrow:
    """A task payment held in custody until both parties confirm.

    Mutable — confirmation flags and status change during the lifecycle.
    Status changes go through transition_to().
    """
    task_id: int
    requester: str
    provider: str
    amount: int
    platform_fee: int
    status: EscrowStatus = EscrowStatus.PENDING
    requester_confirmed: bool = False
    provider_confirmed: bool = False
    created_height: int = 0
    created_utc: Optional[datetime] = None
    completed_utc: Optional[datetime] = None
    cancelled_utc: Optional[datetime] = None

    @property
    def provider_payout(self) -> int:
        return self.amount - self.platform_fee

    @property
    def fully_confirmed(self) -> bool:
        return self.requester_confirmed and self.provider_confirmed

    def is_participant(self, principal: str) -> bool:
        return principal in (self.requester, self.provider)

    def transition_to(self, new_status: EscrowStatus) -> None:
        """Transition to a new status, validating the transition is legal."""
        _check_transition(self.status, new_status)
        self.status = new_status


@dataclass
class ReviewBounty:
    """A code-review bounty released unilaterally by its requester."""
    review_id: int
    requester: str
    reviewer: str
    bounty: int
    platform_fee: int
    status: EscrowStatus = EscrowStatus.PENDING
    created_height: int = 0
    created_utc: Optional[datetime] = None
    completed_utc: Optional[datetime] = None
    cancelled_utc: Optional[datetime] = None

    @property
    def reviewer_payout(self) -> int:
        return self.bounty - self.platform_fee

    def transition_to(self, new_status: EscrowStatus) -> None:
        """Transition to a new status, validating the transition is legal."""
        _check_transition(self.status, new_status)
        self.status = new_status
