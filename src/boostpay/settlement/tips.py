"""Tip processor — instantaneous, fee-bearing transfers with no escrow.

A tip routes through custody so the platform fee is backed by real
funds: sender → custody (full amount), custody → recipient (amount - fee).
If the second leg is refused the first is reversed before the error
propagates, so the sender ends up exactly where they started. If the
reversal is refused too, StrandedFundsError reports the amount left in
custody.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from boostpay.models.errors import ErrorKind, SettlementError, StrandedFundsError
from boostpay.models.treasury import FeeSource
from boostpay.policy.resolver import PolicyResolver
from boostpay.settlement.fees import is_whole_amount, split
from boostpay.settlement.ledger import Ledger
from boostpay.settlement.treasury import Treasury


@dataclass(frozen=True)
class TipReceipt:
    """What a tip did. Not stored anywhere; returned to the caller."""
    sender: str
    recipient: str
    amount: int
    net: int
    fee: int


class TipProcessor:
    """Stateless tip handling. The only state it touches is the treasury."""

    def __init__(
        self,
        resolver: PolicyResolver,
        ledger: Ledger,
        treasury: Treasury,
    ) -> None:
        self._ledger = ledger
        self._treasury = treasury
        self._custody = resolver.custody_account()
        self._fee_percent = resolver.fee_schedule().tip_percent

    def send_tip(
        self,
        caller: str,
        recipient: str,
        amount: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> TipReceipt:
        if recipient == caller:
            raise SettlementError(
                ErrorKind.INVALID_PARTICIPANT,
                f"Cannot tip yourself ({caller})",
            )
        if not is_whole_amount(amount) or amount <= 0:
            raise SettlementError(
                ErrorKind.INVALID_AMOUNT,
                f"Tip amount must be a positive integer, got {amount!r}",
            )
        net, fee = split(amount, self._fee_percent)

        if not self._ledger.transfer(amount, caller, self._custody):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Could not collect tip of {amount} from {caller}",
            )
        if net and not self._ledger.transfer(net, self._custody, recipient):
            if not self._ledger.transfer(amount, self._custody, caller):
                raise StrandedFundsError(
                    caller,
                    amount,
                    f"Tip payout of {net} to {recipient} was refused and the "
                    f"reversal to {caller} also failed; {amount} is stranded in custody",
                )
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Tip payout of {net} to {recipient} was refused",
            )

        self._treasury.credit(FeeSource.TIP, None, fee, height, now)
        return TipReceipt(
            sender=caller,
            recipient=recipient,
            amount=amount,
            net=net,
            fee=fee,
        )
