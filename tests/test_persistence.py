"""Tests for the event log and state store — proves the audit trail is tamper-evident."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from boostpay.models.escrow import EscrowStatus, ReviewBounty, TaskEscrow
from boostpay.persistence.event_log import EventKind, EventLog, EventRecord
from boostpay.persistence.state_store import StateStore

FIXED_TS = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _event(event_id: str = "EVT-00000001", amount: int = 1_000_000) -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=EventKind.TASK_CREATED,
        actor_id="alice",
        payload={"task_id": 1, "amount": amount},
        timestamp_utc=FIXED_TS,
    )


class TestEventRecord:
    def test_hash_format(self) -> None:
        event = _event()
        assert event.event_hash.startswith("sha256:")
        assert len(event.event_hash) == len("sha256:") + 64
        assert event.timestamp_utc == "2026-03-01T12:00:00Z"

    def test_hash_is_deterministic(self) -> None:
        assert _event().event_hash == _event().event_hash

    def test_hash_covers_payload(self) -> None:
        assert _event(amount=1).event_hash != _event(amount=2).event_hash


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event("EVT-00000001"))
        log.append(EventRecord.create(
            "EVT-00000002", EventKind.TIP_SENT, "bob", {"net": 98}, FIXED_TS,
        ))
        assert log.count == 2
        assert [e.event_id for e in log.events(EventKind.TIP_SENT)] == ["EVT-00000002"]
        assert log.events()[-1].event_kind == EventKind.TIP_SENT

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event())
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_event())
        assert log.count == 1

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.count == 0
        assert log.events() == []

    def test_reload_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_event("EVT-00000001"))
        log.append(_event("EVT-00000002"))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert [e.event_hash for e in reloaded.events()] == [e.event_hash for e in log.events()]
        assert reloaded.events()[0].event_kind == EventKind.TASK_CREATED

    def test_tampered_record_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event())
        record = json.loads(path.read_text(encoding="utf-8"))
        record["payload"]["amount"] = 1
        path.write_text(json.dumps(record) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_on_recovery_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event())
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)


class TestStateStore:
    def test_missing_file_loads_empty(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert store.load_tasks() == ([], 1)
        assert store.load_reviews() == ([], 1)
        assert store.load_treasury() is None
        assert store.load_height() == 0

    def test_tasks_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        task = TaskEscrow(
            task_id=4,
            requester="alice",
            provider="bob",
            amount=1_000_000,
            platform_fee=50_000,
            status=EscrowStatus.COMPLETED,
            requester_confirmed=True,
            provider_confirmed=True,
            created_height=9,
            created_utc=FIXED_TS,
            completed_utc=FIXED_TS,
        )
        StateStore(path).save_tasks([task], next_id=5)

        tasks, next_id = StateStore(path).load_tasks()
        assert next_id == 5
        assert tasks == [task]

    def test_reviews_and_height_share_one_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        review = ReviewBounty(
            review_id=1,
            requester="rita",
            reviewer="victor",
            bounty=500_000,
            platform_fee=25_000,
            created_height=2,
            created_utc=FIXED_TS,
        )
        store = StateStore(path)
        store.save_reviews([review], next_id=2)
        store.save_height(17)
        store.save_treasury({"balance": 25_000})

        reloaded = StateStore(path)
        reviews, next_id = reloaded.load_reviews()
        assert reviews == [review]
        assert reviews[0].status == EscrowStatus.PENDING
        assert next_id == 2
        assert reloaded.load_height() == 17
        assert reloaded.load_treasury() == {"balance": 25_000}

    def test_stranded_total_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        assert StateStore(path).load_stranded() == 0
        StateStore(path).save_stranded(500_000)
        assert StateStore(path).load_stranded() == 500_000
