"""Core data models for boostpay."""

from boostpay.models.errors import ErrorKind, SettlementError, StrandedFundsError
from boostpay.models.escrow import EscrowStatus, ReviewBounty, TaskEscrow
from boostpay.models.treasury import (
    FeeCredit,
    FeeSource,
    TreasuryState,
    TreasuryWithdrawal,
)

__all__ = [
    "ErrorKind",
    "SettlementError",
    "StrandedFundsError",
    "EscrowStatus",
    "ReviewBounty",
    "TaskEscrow",
    "FeeCredit",
    "FeeSource",
    "TreasuryState",
    "TreasuryWithdrawal",
]
