"""Ledger adapter — the value-transfer primitive escrow settles through.

The escrow engines never move value themselves. They call a Ledger, and
the ledger either moves the full amount or moves nothing:

    transfer(amount, source, destination) -> True | False

Any backend (a chain client, a bank gateway, a database wallet table)
can sit behind this Protocol. Adding one requires zero changes to the
task, review, tip or treasury logic.

InMemoryLedger is the reference implementation used by tests and the
CLI. It keeps per-account balances, refuses overdrafts, and can persist
its balances to a JSON file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class Ledger(Protocol):
    """Abstract contract for value-transfer backends.

    transfer() must be atomic: on False, no balance has changed.
    """

    def transfer(self, amount: int, source: str, destination: str) -> bool:
        ...


@dataclass(frozen=True)
class LedgerTransfer:
    """A completed transfer, kept for audit."""
    amount: int
    source: str
    destination: str


class InMemoryLedger:
    """Account balances held in memory, optionally mirrored to a file.

    Usage:
        ledger = InMemoryLedger()
        ledger.mint("alice", 1_000_000)
        ok = ledger.transfer(250_000, "alice", "bob")
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._balances: Dict[str, int] = {}
        self._transfers: List[LedgerTransfer] = []
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def transfer(self, amount: int, source: str, destination: str) -> bool:
        """Move amount from source to destination. All or nothing."""
        if amount <= 0 or source == destination:
            return False
        if self._balances.get(source, 0) < amount:
            return False
        self._balances[source] -= amount
        self._balances[destination] = self._balances.get(destination, 0) + amount
        self._transfers.append(LedgerTransfer(amount, source, destination))
        if self._storage_path:
            try:
                self._save_to_file()
            except OSError:
                # Undo so the in-memory view never diverges from the file
                self._balances[destination] -= amount
                self._balances[source] += amount
                self._transfers.pop()
                return False
        return True

    def mint(self, account: str, amount: int) -> None:
        """Credit an account from outside the system (deposits, fixtures)."""
        if amount <= 0:
            raise ValueError(f"Mint amount must be positive, got {amount}")
        self._balances[account] = self._balances.get(account, 0) + amount
        if self._storage_path:
            self._save_to_file()

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def accounts(self) -> Dict[str, int]:
        """Return a snapshot of all non-empty balances."""
        return {k: v for k, v in self._balances.items() if v}

    @property
    def transfers(self) -> List[LedgerTransfer]:
        return list(self._transfers)

    def _save_to_file(self) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("w", encoding="utf-8") as f:
            json.dump(
                {"balances": self._balances},
                f, indent=2, sort_keys=True, ensure_ascii=False,
            )

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        for account, balance in data.get("balances", {}).items():
            if not isinstance(balance, int) or balance < 0:
                raise ValueError(f"Corrupt ledger balance for {account}: {balance!r}")
            self._balances[account] = balance
