"""Task registry — escrowed task payments released by dual confirmation.

The requester's gross amount is pulled into custody when the task is
created. Nothing leaves custody until either:

- both requester and provider have confirmed completion, at which point
  (amount - fee) goes to the provider and the fee is credited to the
  treasury; or
- the requester cancels while the task is still pending, at which point
  the full gross amount is refunded.

Settlement is all-or-nothing. The ledger transfer happens before any
status change, and a refused transfer leaves the record exactly as it
was before the call.

State machine:
    PENDING → COMPLETED     (both parties confirmed, provider paid)
    PENDING → CANCELLED     (requester cancelled, full refund)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from boostpay.models.errors import ErrorKind, SettlementError
from boostpay.models.escrow import EscrowStatus, TaskEscrow
from boostpay.models.treasury import FeeSource
from boostpay.policy.resolver import PolicyResolver
from boostpay.settlement.fees import is_whole_amount, platform_fee
from boostpay.settlement.ledger import Ledger
from boostpay.settlement.treasury import Treasury


class TaskRegistry:
    """Stores task escrows and drives their lifecycle.

    Usage:
        registry = TaskRegistry(resolver, ledger, treasury)
        task = registry.create_task("alice", "bob", 1_000_000, height=1)
        registry.confirm_completion("alice", task.task_id, height=2)
        task, released = registry.confirm_completion("bob", task.task_id, height=3)
    """

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
        self._minimum = resolver.minimum_task_payment()
        self._tasks: Dict[int, TaskEscrow] = {}
        self._next_id = 1

    @property
    def next_id(self) -> int:
        return self._next_id

    def create_task(
        self,
        caller: str,
        provider: str,
        amount: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> TaskEscrow:
        """Open a pending task escrow funded by the caller.

        Raises:
            SettlementError(INVALID_PARTICIPANT): provider is the caller.
            SettlementError(INVALID_AMOUNT): amount is not an integer or is
                below the minimum.
            SettlementError(PAYMENT_FAILED): the caller's funds could not
                be moved into custody.
        """
        if provider == caller:
            raise SettlementError(
                ErrorKind.INVALID_PARTICIPANT,
                f"Requester and provider must differ (both {caller})",
            )
        if not is_whole_amount(amount) or amount < self._minimum:
            raise SettlementError(
                ErrorKind.INVALID_AMOUNT,
                f"Task amount must be an integer of at least {self._minimum}, got {amount!r}",
            )
        if not self._ledger.transfer(amount, caller, self._custody):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Could not move {amount} from {caller} into escrow",
            )
        if now is None:
            now = datetime.now(timezone.utc)

        task = TaskEscrow(
            task_id=self._next_id,
            requester=caller,
            provider=provider,
            amount=amount,
            platform_fee=platform_fee(amount, self._fee_percent),
            created_height=height,
            created_utc=now,
        )
        self._tasks[task.task_id] = task
        self._next_id += 1
        return task

    def confirm_completion(
        self,
        caller: str,
        task_id: int,
        height: int,
        now: Optional[datetime] = None,
    ) -> Tuple[TaskEscrow, bool]:
        """Record the caller's confirmation; release funds once both agree.

        Confirming twice is harmless: the flag is already set.

        Returns:
            Tuple of (task, released) where released is True only on the
            call that paid the provider.

        Raises:
            SettlementError(TASK_NOT_FOUND)
            SettlementError(TASK_ALREADY_COMPLETED): status is not pending.
            SettlementError(NOT_TASK_PARTICIPANT): caller is neither party.
            SettlementError(PAYMENT_FAILED): payout refused; the caller's
                flag is restored.
        """
        task = self._get(task_id)
        self._require_pending(task)
        if not task.is_participant(caller):
            raise SettlementError(
                ErrorKind.NOT_TASK_PARTICIPANT,
                f"{caller} is not a participant in task {task_id}",
            )

        prev_flags = (task.requester_confirmed, task.provider_confirmed)
        if caller == task.requester:
            task.requester_confirmed = True
        if caller == task.provider:
            task.provider_confirmed = True

        if not task.fully_confirmed:
            return task, False

        if not self._ledger.transfer(task.provider_payout, self._custody, task.provider):
            task.requester_confirmed, task.provider_confirmed = prev_flags
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Payout of {task.provider_payout} to {task.provider} "
                f"for task {task_id} was refused",
            )
        if now is None:
            now = datetime.now(timezone.utc)
        task.transition_to(EscrowStatus.COMPLETED)
        task.completed_utc = now
        self._treasury.credit(FeeSource.TASK, task_id, task.platform_fee, height, now)
        return task, True

    def cancel_task(
        self,
        caller: str,
        task_id: int,
        now: Optional[datetime] = None,
    ) -> TaskEscrow:
        """Cancel a pending task and refund the full gross amount.

        Raises:
            SettlementError(TASK_NOT_FOUND)
            SettlementError(UNAUTHORIZED): caller is not the requester.
            SettlementError(TASK_ALREADY_COMPLETED): status is not pending.
            SettlementError(PAYMENT_FAILED): refund refused, task unchanged.
        """
        task = self._get(task_id)
        if caller != task.requester:
            raise SettlementError(
                ErrorKind.UNAUTHORIZED,
                f"Only the requester can cancel task {task_id}",
            )
        self._require_pending(task)
        if not self._ledger.transfer(task.amount, self._custody, task.requester):
            raise SettlementError(
                ErrorKind.PAYMENT_FAILED,
                f"Refund of {task.amount} to {task.requester} "
                f"for task {task_id} was refused",
            )
        if now is None:
            now = datetime.now(timezone.utc)
        task.transition_to(EscrowStatus.CANCELLED)
        task.cancelled_utc = now
        return task

    def get_task(self, task_id: int) -> Optional[TaskEscrow]:
        return self._tasks.get(task_id)

    def is_completed(self, task_id: int) -> bool:
        task = self._tasks.get(task_id)
        return task is not None and task.status == EscrowStatus.COMPLETED

    def tasks_for(self, principal: str) -> List[TaskEscrow]:
        """Tasks where principal is requester or provider, oldest first."""
        return [t for t in self._tasks.values() if t.is_participant(principal)]

    def all_tasks(self) -> List[TaskEscrow]:
        return list(self._tasks.values())

    def pending_total(self) -> int:
        """Gross amount currently held in custody for pending tasks."""
        return sum(
            t.amount for t in self._tasks.values()
            if t.status == EscrowStatus.PENDING
        )

    def restore(self, tasks: Iterable[TaskEscrow], next_id: int) -> None:
        """Replace in-memory records with persisted ones."""
        self._tasks = {t.task_id: t for t in tasks}
        if self._tasks and next_id <= max(self._tasks):
            raise ValueError(
                f"Persisted next task id {next_id} collides with stored task "
                f"{max(self._tasks)}"
            )
        self._next_id = next_id

    def _get(self, task_id: int) -> TaskEscrow:
        task = self._tasks.get(task_id)
        if task is None:
            raise SettlementError(ErrorKind.TASK_NOT_FOUND, f"Unknown task ID: {task_id}")
        return task

    @staticmethod
    def _require_pending(task: TaskEscrow) -> None:
        if task.status != EscrowStatus.PENDING:
            raise SettlementError(
                ErrorKind.TASK_ALREADY_COMPLETED,
                f"Task {task.task_id} is {task.status.value}, not pending",
            )
