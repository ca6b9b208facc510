"""Policy resolver — loads escrow_params.json and exposes every runtime
setting as a typed method call.

No magic. No defaults. If a value is missing from the config, it fails loud.
Fee percentages are fixed for the life of the process; there is no
mechanism to change them at runtime.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FeeSchedule:
    """Resolved fee percentages (whole percent, truncating division)."""
    task_review_percent: int
    tip_percent: int


class PolicyResolver:
    """Loads and resolves escrow policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        fees = resolver.fee_schedule()
        minimum = resolver.minimum_task_payment()
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        return cls(_load_json(config_dir / "escrow_params.json"))

    def _validate(self) -> None:
        if "version" not in self._params:
            raise ValueError("escrow_params.json missing version")
        fees = self.fee_schedule()
        for name, value in (
            ("task_review_percent", fees.task_review_percent),
            ("tip_percent", fees.tip_percent),
        ):
            if not isinstance(value, int) or not 0 <= value <= 100:
                raise ValueError(f"fees.{name} must be an integer in [0, 100], got {value!r}")
        for name, value in (
            ("task_payment", self.minimum_task_payment()),
            ("review_bounty", self.minimum_review_bounty()),
        ):
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"minimums.{name} must be a positive integer, got {value!r}")
        if self.platform_owner() == self.custody_account():
            raise ValueError("accounts.platform_owner and accounts.custody must differ")

    @property
    def version(self) -> str:
        return str(self._params["version"])

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def fee_schedule(self) -> FeeSchedule:
        """Return the fixed fee percentages."""
        fees = self._params["fees"]
        return FeeSchedule(
            task_review_percent=fees["task_review_percent"],
            tip_percent=fees["tip_percent"],
        )

    # ------------------------------------------------------------------
    # Minimums
    # ------------------------------------------------------------------

    def minimum_task_payment(self) -> int:
        return self._params["minimums"]["task_payment"]

    def minimum_review_bounty(self) -> int:
        return self._params["minimums"]["review_bounty"]

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def platform_owner(self) -> str:
        """The only principal allowed to withdraw platform earnings."""
        return self._params["accounts"]["platform_owner"]

    def custody_account(self) -> str:
        """Ledger account that holds escrowed funds and unwithdrawn fees."""
        return self._params["accounts"]["custody"]


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
