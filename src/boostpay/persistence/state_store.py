"""State store — JSON-based persistence for boostpay runtime state.

Stores and recovers:
- Task escrows (with confirmation flags and next task id)
- Review bounties (with next review id)
- Treasury balance, fee credits and withdrawals
- The settlement height counter
- Funds stranded in custody by a failed reversal

This is a simple file-based store suitable for single-node deployment.
A database backend can replace it while keeping the same interface, as
long as each save is an atomic read-modify-write on its key.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from boostpay.models.escrow import EscrowStatus, ReviewBounty, TaskEscrow

_TS_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _fmt(ts: Optional[datetime]) -> Optional[str]:
    return ts.strftime(_TS_FORMAT) if ts else None


def _parse(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    return datetime.strptime(raw, _TS_FORMAT).replace(tzinfo=timezone.utc)


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/state.json"))
        store.save_tasks(tasks, next_id)
        store.save_treasury(treasury.to_dict())

        # On recovery:
        tasks, next_id = store.load_tasks()
        treasury_data = store.load_treasury()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)

    # ------------------------------------------------------------------
    # Task persistence
    # ------------------------------------------------------------------

    def save_tasks(self, tasks: list[TaskEscrow], next_id: int) -> None:
        """Serialize task escrows to state."""
        self._state["tasks"] = {
            "next_id": next_id,
            "records": [
                {
                    "task_id": t.task_id,
                    "requester": t.requester,
                    "provider": t.provider,
                    "amount": t.amount,
                    "platform_fee": t.platform_fee,
                    "status": t.status.value,
                    "requester_confirmed": t.requester_confirmed,
                    "provider_confirmed": t.provider_confirmed,
                    "created_height": t.created_height,
                    "created_utc": _fmt(t.created_utc),
                    "completed_utc": _fmt(t.completed_utc),
                    "cancelled_utc": _fmt(t.cancelled_utc),
                }
                for t in tasks
            ],
        }
        self._save()

    def load_tasks(self) -> tuple[list[TaskEscrow], int]:
        """Deserialize task escrows and the next task id."""
        section = self._state.get("tasks", {})
        tasks = [
            TaskEscrow(
                task_id=data["task_id"],
                requester=data["requester"],
                provider=data["provider"],
                amount=data["amount"],
                platform_fee=data["platform_fee"],
                status=EscrowStatus(data["status"]),
                requester_confirmed=data["requester_confirmed"],
                provider_confirmed=data["provider_confirmed"],
                created_height=data["created_height"],
                created_utc=_parse(data.get("created_utc")),
                completed_utc=_parse(data.get("completed_utc")),
                cancelled_utc=_parse(data.get("cancelled_utc")),
            )
            for data in section.get("records", [])
        ]
        return tasks, section.get("next_id", 1)

    # ------------------------------------------------------------------
    # Review persistence
    # ------------------------------------------------------------------

    def save_reviews(self, reviews: list[ReviewBounty], next_id: int) -> None:
        """Serialize review bounties to state."""
        self._state["reviews"] = {
            "next_id": next_id,
            "records": [
                {
                    "review_id": r.review_id,
                    "requester": r.requester,
                    "reviewer": r.reviewer,
                    "bounty": r.bounty,
                    "platform_fee": r.platform_fee,
                    "status": r.status.value,
                    "created_height": r.created_height,
                    "created_utc": _fmt(r.created_utc),
                    "completed_utc": _fmt(r.completed_utc),
                    "cancelled_utc": _fmt(r.cancelled_utc),
                }
                for r in reviews
            ],
        }
        self._save()

    def load_reviews(self) -> tuple[list[ReviewBounty], int]:
        """Deserialize review bounties and the next review id."""
        section = self._state.get("reviews", {})
        reviews = [
            ReviewBounty(
                review_id=data["review_id"],
                requester=data["requester"],
                reviewer=data["reviewer"],
                bounty=data["bounty"],
                platform_fee=data["platform_fee"],
                status=EscrowStatus(data["status"]),
                created_height=data["created_height"],
                created_utc=_parse(data.get("created_utc")),
                completed_utc=_parse(data.get("completed_utc")),
                cancelled_utc=_parse(data.get("cancelled_utc")),
            )
            for data in section.get("records", [])
        ]
        return reviews, section.get("next_id", 1)

    # ------------------------------------------------------------------
    # Treasury, height and stranded funds
    # ------------------------------------------------------------------

    def save_treasury(self, data: dict[str, Any]) -> None:
        self._state["treasury"] = data
        self._save()

    def load_treasury(self) -> Optional[dict[str, Any]]:
        return self._state.get("treasury")

    def save_height(self, height: int) -> None:
        self._state["height"] = height
        self._save()

    def load_height(self) -> int:
        return self._state.get("height", 0)

    def save_stranded(self, total: int) -> None:
        self._state["stranded"] = total
        self._save()

    def load_stranded(self) -> int:
        return self._state.get("stranded", 0)
