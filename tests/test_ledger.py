"""Tests for the in-memory ledger — proves transfers are all-or-nothing."""

import json
from pathlib import Path

import pytest

from boostpay.settlement.ledger import InMemoryLedger, Ledger


class TestTransfer:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryLedger(), Ledger)

    def test_moves_funds(self) -> None:
        ledger = InMemoryLedger()
        ledger.mint("alice", 1_000)
        assert ledger.transfer(400, "alice", "bob")
        assert ledger.balance_of("alice") == 600
        assert ledger.balance_of("bob") == 400
        assert len(ledger.transfers) == 1

    def test_overdraft_refused_without_effect(self) -> None:
        ledger = InMemoryLedger()
        ledger.mint("alice", 100)
        assert not ledger.transfer(101, "alice", "bob")
        assert ledger.balance_of("alice") == 100
        assert ledger.balance_of("bob") == 0
        assert ledger.transfers == []

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_refused(self, amount: int) -> None:
        ledger = InMemoryLedger()
        ledger.mint("alice", 100)
        assert not ledger.transfer(amount, "alice", "bob")

    def test_self_transfer_refused(self) -> None:
        ledger = InMemoryLedger()
        ledger.mint("alice", 100)
        assert not ledger.transfer(10, "alice", "alice")

    def test_mint_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            InMemoryLedger().mint("alice", 0)

    def test_accounts_hides_empty(self) -> None:
        ledger = InMemoryLedger()
        ledger.mint("alice", 10)
        ledger.transfer(10, "alice", "bob")
        assert ledger.accounts() == {"bob": 10}


class TestFileStorage:
    def test_balances_survive_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "ledger.json"
        ledger = InMemoryLedger(storage_path=path)
        ledger.mint("alice", 500)
        ledger.transfer(200, "alice", "bob")

        reloaded = InMemoryLedger(storage_path=path)
        assert reloaded.balance_of("alice") == 300
        assert reloaded.balance_of("bob") == 200

    def test_corrupt_balance_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"balances": {"alice": -3}}))
        with pytest.raises(ValueError, match="Corrupt"):
            InMemoryLedger(storage_path=path)
