"""Treasury — the running balance of realized platform fees.

Fees are credited when a task or review settles and when a tip is sent.
The balance is backed 1:1 by funds sitting in the custody account, so a
withdrawal is a plain custody → owner transfer.

Key properties:
- Only the configured platform owner can withdraw.
- A withdrawal larger than the balance fails and changes nothing.
- Every credit and withdrawal is recorded for audit.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from boostpay.models.errors import ErrorKind, SettlementError
from boostpay.models.treasury import (
    FeeCredit,
    FeeSource,
    TreasuryState,
    TreasuryWithdrawal,
)
from boostpay.settlement.fees import is_whole_amount
from boostpay.settlement.ledger import Ledger

_TS_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Treasury:
    """Tracks accumulated platform fees and owner withdrawals.

    Usage:
        treasury = Treasury(owner="deployer", custody="boostpay.custody", ledger=ledger)
        treasury.credit(FeeSource.TASK, task_id, fee, height)
        treasury.withdraw("deployer", 10_000, height)
    """

    def __init__(self, owner: str, custody: str, ledger: Ledger) -> None:
        self._owner = owner
        self._custody = custody
        self._ledger = ledger
        self._state = TreasuryState()
        self._credits: list[FeeCredit] = []
        self._withdrawals: list[TreasuryWithdrawal] = []

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def balance(self) -> int:
        return self._state.balance

    def get_state(self) -> TreasuryState:
        """Return the current observable state.

        Callers should treat the returned object as read-only.
        """
        return self._state

    def credit(
        self,
        source: FeeSource,
        source_id: Optional[int],
        amount: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> Optional[FeeCredit]:
        """Credit a realized fee. Zero fees (tiny tips) are not recorded."""
        if amount < 0:
            raise ValueError(f"Fee credit must be non-negative, got {amount}")
        if amount == 0:
            return None
        if now is None:
            now = datetime.now(timezone.utc)
        entry = FeeCredit(
            source=source,
            source_id=source_id,
            amount=amount,
            height=height,
            credited_utc=now,
        )
        self._credits.append(entry)
        self._state.balance += amount
        self._state.total_credited += amount
        self._state.credit_count += 1
        return entry

    def withdraw(
        self,
        caller: str,
        amount: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> TreasuryWithdrawal:
        """Pay amount from custody to the owner and reduce the balance.

        Raises:
            SettlementError(UNAUTHORIZED): caller is not the owner.
            SettlementError(INVALID_AMOUNT): amount is not a positive integer.
            SettlementError(INSUFFICIENT_FUNDS): amount exceeds the balance.
            SettlementError(PAYMENT_FAILED): the ledger refused the transfer.
        """
        if caller != self._owner:
            raise SettlementError(
                ErrorKind.UNAUTHORIZED,
                f"Only the platform owner can withdraw earnings (caller: {caller})",
            )
        if not is_whole_amount(amount) or amount <= 0:
            raise SettlementError(
                ErrorKind.INVALID_AMOUNT,
                f"Withdrawal amount must be a positive integer, got {amount!r}",
            )
        if amount > self._state.balance:
            raise SettlementError(
                ErrorKind.INSUFFICIENT_FUNDS,
                f"Withdrawal {amount} exceeds treasury balance {self._state.balance}",
            )
        if not self._ledger.transfer(amount, self._custody, self._owner):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Ledger refused treasury withdrawal of {amount} to {self._owner}",
            )
        if now is None:
            now = datetime.now(timezone.utc)

        withdrawal = TreasuryWithdrawal(
            recipient=self._owner,
            amount=amount,
            height=height,
            withdrawn_utc=now,
        )
        self._withdrawals.append(withdrawal)
        self._state.balance -= amount
        self._state.total_withdrawn += amount
        self._state.withdrawal_count += 1
        return withdrawal

    def get_credits(self) -> list[FeeCredit]:
        """Return all recorded fee credits (for audit)."""
        return list(self._credits)

    def get_withdrawals(self) -> list[TreasuryWithdrawal]:
        """Return all recorded withdrawals (for audit)."""
        return list(self._withdrawals)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Serialize treasury state for persistence."""
        return {
            "balance": self._state.balance,
            "total_credited": self._state.total_credited,
            "total_withdrawn": self._state.total_withdrawn,
            "credit_count": self._state.credit_count,
            "withdrawal_count": self._state.withdrawal_count,
            "credits": [
                {
                    "source": c.source.value,
                    "source_id": c.source_id,
                    "amount": c.amount,
                    "height": c.height,
                    "credited_utc": c.credited_utc.strftime(_TS_FORMAT),
                }
                for c in self._credits
            ],
            "withdrawals": [
                {
                    "recipient": w.recipient,
                    "amount": w.amount,
                    "height": w.height,
                    "withdrawn_utc": w.withdrawn_utc.strftime(_TS_FORMAT),
                }
                for w in self._withdrawals
            ],
        }

    def restore(self, data: dict) -> None:
        """Replace in-memory state with persisted data."""
        self._state = TreasuryState(
            balance=data["balance"],
            total_credited=data["total_credited"],
            total_withdrawn=data["total_withdrawn"],
            credit_count=data["credit_count"],
            withdrawal_count=data["withdrawal_count"],
        )
        self._credits = [
            FeeCredit(
                source=FeeSource(c["source"]),
                source_id=c["source_id"],
                amount=c["amount"],
                height=c["height"],
                credited_utc=datetime.strptime(
                    c["credited_utc"], _TS_FORMAT,
                ).replace(tzinfo=timezone.utc),
            )
            for c in data.get("credits", [])
        ]
        self._withdrawals = [
            TreasuryWithdrawal(
                recipient=w["recipient"],
                amount=w["amount"],
                height=w["height"],
                withdrawn_utc=datetime.strptime(
                    w["withdrawn_utc"], _TS_FORMAT,
                ).replace(tzinfo=timezone.utc),
            )
            for w in data.get("withdrawals", [])
        ]
