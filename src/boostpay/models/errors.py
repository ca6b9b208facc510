"""Settlement error kinds — the closed set of failures an operation can report.

Every anticipated failure is a typed result, never a crash. Engines raise
SettlementError; the service facade converts it into a failed
ServiceResult carrying the kind.

Reserved kinds (TASK_EXISTS, REVIEW_EXISTS, ESCROW_ALREADY_RELEASED,
INVALID_FEE_PERCENTAGE) are part of the wire vocabulary but no current
operation produces them: ids are allocated structurally, release is
guarded by status, and fee rates are fixed at load time.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Classification of settlement failures."""
    UNAUTHORIZED = "unauthorized"
    INVALID_AMOUNT = "invalid_amount"
    TASK_EXISTS = "task_exists"
    REVIEW_EXISTS = "review_exists"
    TASK_NOT_FOUND = "task_not_found"
    REVIEW_NOT_FOUND = "review_not_found"
    TASK_ALREADY_COMPLETED = "task_already_completed"
    REVIEW_ALREADY_COMPLETED = "review_already_completed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PAYMENT_FAILED = "payment_failed"
    INVALID_PARTICIPANT = "invalid_participant"
    NOT_TASK_PARTICIPANT = "not_task_participant"
    ESCROW_ALREADY_RELEASED = "escrow_already_released"
    INVALID_FEE_PERCENTAGE = "invalid_fee_percentage"


RESERVED_ERROR_KINDS = frozenset({
    ErrorKind.TASK_EXISTS,
    ErrorKind.REVIEW_EXISTS,
    ErrorKind.ESCROW_ALREADY_RELEASED,
    ErrorKind.INVALID_FEE_PERCENTAGE,
})


class SettlementError(ValueError):
    """A typed settlement failure.

    Subclasses ValueError so callers that only care about "the operation
    was rejected" can keep catching ValueError.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.args[0]}"


class StrandedFundsError(SettlementError):
    """PAYMENT_FAILED where funds already moved and could not be returned.

    The ledger accepted an inbound leg into custody, then refused both the
    outbound leg and the reversal. amount is now held in custody with no
    record backing it and must be reconciled by hand.
    """

    def __init__(self, owner: str, amount: int, message: str) -> None:
        super().__init__(ErrorKind.PAYMENT_FAILED, message)
        self.owner = owner
        self.amount = amount
