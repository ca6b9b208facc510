"""Treasury models — fee credits and owner withdrawals.

Every credit is tied to the settlement that produced it. Credits and
withdrawals are immutable once recorded; the balance is derived state
kept alongside them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class FeeSource(str, enum.Enum):
    """What kind of settlement realized a fee."""
    TASK = "task"
    REVIEW = "review"
    TIP = "tip"


@dataclass(frozen=True)
class FeeCredit:
    """A realized platform fee credited to the treasury.

    source_id is the task or review id; tips have no record, so theirs
    is None.
    """
    source: FeeSource
    source_id: Optional[int]
    amount: int
    height: int
    credited_utc: datetime


@dataclass(frozen=True)
class TreasuryWithdrawal:
    """An owner-authorized drain of the treasury."""
    recipient: str
    amount: int
    height: int
    withdrawn_utc: datetime


@dataclass
class TreasuryState:
    """Observable state of the treasury."""
    balance: int = 0
    total_credited: int = 0
    total_withdrawn: int = 0
    credit_count: int = 0
    withdrawal_count: int = 0
