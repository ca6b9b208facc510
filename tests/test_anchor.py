"""Tests for log anchoring — proves the digest is stable and re-anchoring is idempotent."""

from pathlib import Path

from boostpay.crypto.anchor import SEPOLIA_CHAIN_ID, AnchorRecord, canonical_log_digest
from boostpay.persistence.event_log import EventKind, EventLog
from boostpay.policy.resolver import PolicyResolver
from boostpay.service import BoostService
from boostpay.settlement.ledger import InMemoryLedger

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def _service() -> BoostService:
    ledger = InMemoryLedger()
    ledger.mint("alice", 5_000_000)
    service = BoostService(
        PolicyResolver.from_config_dir(CONFIG_DIR), ledger, event_log=EventLog(),
    )
    service.create_task("alice", "bob", 1_000_000)
    service.confirm_task_completion("alice", 1)
    service.confirm_task_completion("bob", 1)
    return service


def _record(digest: str, covered: int) -> AnchorRecord:
    return AnchorRecord(
        sha256_hash=digest,
        tx_hash="0xabc123",
        block_number=42,
        chain_id=SEPOLIA_CHAIN_ID,
        timestamp_utc="2026-03-01T12:00:00Z",
        explorer_url="https://sepolia.etherscan.io/tx/0xabc123",
        events_covered=covered,
    )


class TestCanonicalDigest:
    def test_empty_log(self) -> None:
        digest, covered = canonical_log_digest(EventLog())
        assert covered == 0
        assert len(digest) == 64

    def test_digest_is_deterministic(self) -> None:
        service = _service()
        assert canonical_log_digest(service.event_log) == canonical_log_digest(service.event_log)

    def test_digest_changes_with_new_events(self) -> None:
        service = _service()
        before, covered = canonical_log_digest(service.event_log)
        assert covered == 3
        service.send_tip("alice", "bob", 1_000)
        after, covered = canonical_log_digest(service.event_log)
        assert after != before
        assert covered == 4


class TestRecordAnchor:
    def test_anchor_event_excluded_from_digest(self) -> None:
        service = _service()
        digest, covered = canonical_log_digest(service.event_log)

        result = service.record_anchor(_record(digest, covered))
        assert result.success
        assert result.data["tx_hash"] == "0xabc123"

        anchored = service.event_log.events(EventKind.LOG_ANCHORED)
        assert len(anchored) == 1
        assert anchored[0].payload["sha256_hash"] == digest
        assert anchored[0].payload["events_covered"] == 3
        assert canonical_log_digest(service.event_log) == (digest, covered)

    def test_anchor_without_event_log(self) -> None:
        service = BoostService(
            PolicyResolver.from_config_dir(CONFIG_DIR), InMemoryLedger(),
        )
        digest, covered = canonical_log_digest(service.event_log)
        assert service.record_anchor(_record(digest, covered)).success
