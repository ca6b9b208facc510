"""boostpay service — unified facade for the settlement engine.

This is the primary interface for programmatic access. It owns every
piece of mutable state (task and review registries, the treasury, the
height counter) and orchestrates:
- Task escrows (create, dual-confirm, release, cancel)
- Review bounties (create, complete, cancel)
- Tips
- Treasury withdrawals
- Audit trail (event log) and persistence (state store)

All operations produce typed results. Operations run to completion one
at a time; the host is expected to serialize calls.

Commit ordering:
- When an operation moves funds, the ledger transfer is the commit
  point. Audit or persistence failures after it cannot undo the transfer,
  so they are reported as warnings and flag the service as degraded.
- When an operation changes state without moving funds (a first
  confirmation), the audit event is written first and the change is
  rolled back if that write fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from boostpay.crypto.anchor import AnchorRecord
from boostpay.models.errors import ErrorKind, SettlementError, StrandedFundsError
from boostpay.models.escrow import EscrowStatus, ReviewBounty, TaskEscrow
from boostpay.persistence.event_log import EventKind, EventLog, EventRecord
from boostpay.persistence.state_store import StateStore
from boostpay.policy.resolver import PolicyResolver
from boostpay.settlement.ledger import Ledger
from boostpay.settlement.reviews import ReviewRegistry
from boostpay.settlement.tasks import TaskRegistry
from boostpay.settlement.tips import TipProcessor
from boostpay.settlement.treasury import Treasury


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    error carries the settlement error kind when the engine rejected the
    call. It is None on success and for infrastructure failures (audit
    log, persistence), which are described in errors only.
    """
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorKind] = None


class BoostService:
    """Unified settlement engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = BoostService(resolver, ledger)

        result = service.create_task("alice", "bob", 1_000_000)
        task_id = result.data["task_id"]
        service.confirm_task_completion("alice", task_id)
        service.confirm_task_completion("bob", task_id)

        service.get_platform_earnings()

    Persistence (optional):
        service = BoostService(resolver, ledger, event_log=log, state_store=store)
        # State is persisted on each mutation and loaded on construction.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        ledger: Ledger,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        height_source: Optional[Callable[[], int]] = None,
    ) -> None:
        self._resolver = resolver
        self._ledger = ledger
        self._event_log = event_log
        self._state_store = state_store
        self._height_source = height_source

        self._treasury = Treasury(
            owner=resolver.platform_owner(),
            custody=resolver.custody_account(),
            ledger=ledger,
        )
        self._tasks = TaskRegistry(resolver, ledger, self._treasury)
        self._reviews = ReviewRegistry(resolver, ledger, self._treasury)
        self._tips = TipProcessor(resolver, ledger, self._treasury)

        # Load persisted state or start fresh
        self._height = 0
        self._stranded_total = 0
        if state_store is not None:
            tasks, next_task_id = state_store.load_tasks()
            self._tasks.restore(tasks, next_task_id)
            reviews, next_review_id = state_store.load_reviews()
            self._reviews.restore(reviews, next_review_id)
            treasury_data = state_store.load_treasury()
            if treasury_data is not None:
                self._treasury.restore(treasury_data)
            self._height = state_store.load_height()
            self._stranded_total = state_store.load_stranded()

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0

        # Set when an audit or persistence write fails after funds moved.
        # In-memory state matches the ledger; the stores need replay.
        self._persistence_degraded: bool = False

    @property
    def current_height(self) -> int:
        return self._height

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    @property
    def stranded_total(self) -> int:
        """Funds held in custody that no record accounts for."""
        return self._stranded_total

    @property
    def event_log(self) -> EventLog:
        """The wired audit log; an empty in-memory one if none was given."""
        if self._event_log is None:
            return EventLog()
        return self._event_log

    # ------------------------------------------------------------------
    # Task escrows
    # ------------------------------------------------------------------

    def create_task(self, caller: str, provider: str, amount: int) -> ServiceResult:
        """Open a task escrow funded by caller, payable to provider."""
        height = self._next_height()
        try:
            task = self._tasks.create_task(caller, provider, amount, height)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(
            EventKind.TASK_CREATED, caller, self._task_payload(task),
        )
        return self._ok({"task_id": task.task_id, "status": task.status.value}, warning)

    def confirm_task_completion(self, caller: str, task_id: int) -> ServiceResult:
        """Record caller's confirmation. Releases funds when both agree."""
        task = self._tasks.get_task(task_id)
        prev_flags = (
            (task.requester_confirmed, task.provider_confirmed) if task else None
        )
        height = self._next_height()
        try:
            task, released = self._tasks.confirm_completion(caller, task_id, height)
        except SettlementError as e:
            return self._rejected(e)

        data: dict[str, Any] = {
            "task_id": task_id,
            "status": task.status.value,
            "requester_confirmed": task.requester_confirmed,
            "provider_confirmed": task.provider_confirmed,
            "released": released,
        }

        if released:
            self._height = height
            warning = self._commit_after_transfer(
                EventKind.TASK_RELEASED, caller, {
                    **self._task_payload(task),
                    "provider_payout": task.provider_payout,
                },
            )
            return self._ok(data, warning)

        if prev_flags == (task.requester_confirmed, task.provider_confirmed):
            # Repeat confirmation: nothing changed, nothing to record
            return self._ok(data)

        def _rollback() -> None:
            task.requester_confirmed, task.provider_confirmed = prev_flags

        err = self._record_event(EventKind.TASK_CONFIRMED, caller, {
            "task_id": task_id,
            "requester_confirmed": task.requester_confirmed,
            "provider_confirmed": task.provider_confirmed,
            "height": height,
        })
        if err:
            _rollback()
            return ServiceResult(success=False, errors=[err])

        self._height = height
        return self._ok(data, self._safe_persist_post_audit())

    def cancel_task(self, caller: str, task_id: int) -> ServiceResult:
        """Cancel a pending task and refund its full amount. Requester only."""
        height = self._next_height()
        try:
            task = self._tasks.cancel_task(caller, task_id)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(
            EventKind.TASK_CANCELLED, caller, {
                **self._task_payload(task),
                "refund": task.amount,
            },
        )
        return self._ok({"task_id": task_id, "status": task.status.value}, warning)

    def get_task(self, task_id: int) -> Optional[TaskEscrow]:
        return self._tasks.get_task(task_id)

    def is_task_completed(self, task_id: int) -> bool:
        return self._tasks.is_completed(task_id)

    def list_tasks(self, participant: str) -> list[TaskEscrow]:
        """Tasks where participant is the requester or the provider."""
        return self._tasks.tasks_for(participant)

    # ------------------------------------------------------------------
    # Review bounties
    # ------------------------------------------------------------------

    def create_review_request(
        self, caller: str, reviewer: str, bounty: int,
    ) -> ServiceResult:
        """Post a review bounty funded by caller, payable to reviewer."""
        height = self._next_height()
        try:
            review = self._reviews.create_review_request(caller, reviewer, bounty, height)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(
            EventKind.REVIEW_CREATED, caller, self._review_payload(review),
        )
        return self._ok(
            {"review_id": review.review_id, "status": review.status.value}, warning,
        )

    def complete_review(self, caller: str, review_id: int) -> ServiceResult:
        """Pay the reviewer. Only the requester may call this."""
        height = self._next_height()
        try:
            review = self._reviews.complete_review(caller, review_id, height)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(
            EventKind.REVIEW_COMPLETED, caller, {
                **self._review_payload(review),
                "reviewer_payout": review.reviewer_payout,
            },
        )
        return self._ok(
            {"review_id": review_id, "status": review.status.value}, warning,
        )

    def cancel_review(self, caller: str, review_id: int) -> ServiceResult:
        """Refund the full bounty. Only the requester may call this."""
        height = self._next_height()
        try:
            review = self._reviews.cancel_review(caller, review_id)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(
            EventKind.REVIEW_CANCELLED, caller, {
                **self._review_payload(review),
                "refund": review.bounty,
            },
        )
        return self._ok(
            {"review_id": review_id, "status": review.status.value}, warning,
        )

    def get_review(self, review_id: int) -> Optional[ReviewBounty]:
        return self._reviews.get_review(review_id)

    def is_review_completed(self, review_id: int) -> bool:
        return self._reviews.is_completed(review_id)

    def list_reviews(self, participant: str) -> list[ReviewBounty]:
        """Reviews where participant is the requester or the reviewer."""
        return self._reviews.reviews_for(participant)

    # ------------------------------------------------------------------
    # Tips and treasury
    # ------------------------------------------------------------------

    def send_tip(self, caller: str, recipient: str, amount: int) -> ServiceResult:
        """Send a tip; the platform keeps the tip fee."""
        height = self._next_height()
        try:
            receipt = self._tips.send_tip(caller, recipient, amount, height)
        except StrandedFundsError as e:
            return self._strand(e, height)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        payload = {
            "recipient": recipient,
            "amount": receipt.amount,
            "net": receipt.net,
            "fee": receipt.fee,
            "height": height,
        }
        warning = self._commit_after_transfer(EventKind.TIP_SENT, caller, payload)
        return self._ok(
            {"recipient": recipient, "net": receipt.net, "fee": receipt.fee}, warning,
        )

    def withdraw_platform_earnings(self, caller: str, amount: int) -> ServiceResult:
        """Pay amount of accumulated fees to the platform owner."""
        height = self._next_height()
        try:
            withdrawal = self._treasury.withdraw(caller, amount, height)
        except SettlementError as e:
            return self._rejected(e)

        self._height = height
        warning = self._commit_after_transfer(EventKind.TREASURY_WITHDRAWN, caller, {
            "recipient": withdrawal.recipient,
            "amount": withdrawal.amount,
            "remaining_balance": self._treasury.balance,
            "height": height,
        })
        return self._ok(
            {"amount": amount, "balance": self._treasury.balance}, warning,
        )

    def get_platform_earnings(self) -> int:
        return self._treasury.balance

    @property
    def treasury(self) -> Treasury:
        return self._treasury

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def expected_custody_balance(self) -> int:
        """What the custody account must hold if every rule was honoured.

        Pending task amounts + pending review bounties + treasury balance,
        plus any funds stranded by a refused reversal.
        """
        return (
            self._tasks.pending_total()
            + self._reviews.pending_total()
            + self._treasury.balance
            + self._stranded_total
        )

    def record_anchor(self, anchor: AnchorRecord) -> ServiceResult:
        """Record that the settlement log digest was anchored on-chain."""
        err = self._record_event(EventKind.LOG_ANCHORED, "system", {
            "sha256_hash": anchor.sha256_hash,
            "tx_hash": anchor.tx_hash,
            "block_number": anchor.block_number,
            "chain_id": anchor.chain_id,
            "events_covered": anchor.events_covered,
        })
        if err:
            return ServiceResult(success=False, errors=[err])
        return ServiceResult(success=True, data={"tx_hash": anchor.tx_hash})

    def status(self) -> dict[str, Any]:
        """Return a summary of engine state."""
        return {
            "config_version": self._resolver.version,
            "height": self._height,
            "tasks": {
                "total": len(self._tasks.all_tasks()),
                "by_status": _count_by_status(t.status for t in self._tasks.all_tasks()),
                "next_id": self._tasks.next_id,
            },
            "reviews": {
                "total": len(self._reviews.all_reviews()),
                "by_status": _count_by_status(r.status for r in self._reviews.all_reviews()),
                "next_id": self._reviews.next_id,
            },
            "treasury": {
                "balance": self._treasury.balance,
                "total_credited": self._treasury.get_state().total_credited,
                "total_withdrawn": self._treasury.get_state().total_withdrawn,
            },
            "expected_custody_balance": self.expected_custody_balance(),
            "stranded": self._stranded_total,
            "events_logged": self._event_log.count if self._event_log else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_height(self) -> int:
        """Height the next committed mutation will carry."""
        if self._height_source is not None:
            return self._height_source()
        return self._height + 1

    @staticmethod
    def _rejected(e: SettlementError) -> ServiceResult:
        return ServiceResult(success=False, errors=[str(e)], error=e.kind)

    def _strand(self, e: StrandedFundsError, height: int) -> ServiceResult:
        """Account for funds the ledger moved into custody but would not return.

        The call still fails, but the ledger has changed: the amount is
        tracked, audited and persisted, and the service is marked degraded
        until an operator reconciles it.
        """
        self._stranded_total += e.amount
        self._persistence_degraded = True
        self._height = height
        errors = [str(e)]
        warning = self._commit_after_transfer(EventKind.FUNDS_STRANDED, e.owner, {
            "owner": e.owner,
            "amount": e.amount,
            "stranded_total": self._stranded_total,
            "height": height,
        })
        if warning:
            errors.append(warning)
        return ServiceResult(success=False, errors=errors, error=e.kind)

    @staticmethod
    def _ok(data: dict[str, Any], warning: Optional[str] = None) -> ServiceResult:
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    @staticmethod
    def _task_payload(task: TaskEscrow) -> dict[str, Any]:
        return {
            "task_id": task.task_id,
            "requester": task.requester,
            "provider": task.provider,
            "amount": task.amount,
            "platform_fee": task.platform_fee,
            "status": task.status.value,
            "height": task.created_height,
        }

    @staticmethod
    def _review_payload(review: ReviewBounty) -> dict[str, Any]:
        return {
            "review_id": review.review_id,
            "requester": review.requester,
            "reviewer": review.reviewer,
            "bounty": review.bounty,
            "platform_fee": review.platform_fee,
            "status": review.status.value,
            "height": review.created_height,
        }

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event. Returns error string or None."""
        if self._event_log is None:
            return None
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            return f"Event log failure: {e}"
        return None

    def _commit_after_transfer(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Audit and persist after the ledger has already moved funds.

        Nothing is rolled back here: the transfer is final. Failures are
        returned as a warning and mark the service degraded.
        """
        warnings = []
        err = self._record_event(kind, actor_id, payload)
        if err:
            self._persistence_degraded = True
            warnings.append(f"{err} — funds moved but audit record is missing")
        persist_warning = self._safe_persist_post_audit()
        if persist_warning:
            warnings.append(persist_warning)
        return "; ".join(warnings) or None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError.
        """
        if self._state_store is None:
            return
        self._state_store.save_tasks(self._tasks.all_tasks(), self._tasks.next_id)
        self._state_store.save_reviews(self._reviews.all_reviews(), self._reviews.next_id)
        self._state_store.save_treasury(self._treasury.to_dict())
        self._state_store.save_height(self._height)
        self._state_store.save_stranded(self._stranded_total)

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the audit event has been committed.

        MUST NOT rollback in-memory state. If persist fails, in-memory
        state remains correct, but the StateStore is stale.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            return f"Persistence degraded: {e} — state committed in audit trail but StateStore is stale"


def _count_by_status(statuses) -> dict[str, int]:
    counts: dict[str, int] = {}
    for status in statuses:
        counts[status.value] = counts.get(status.value, 0) + 1
    return counts
