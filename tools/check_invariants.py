#!/usr/bin/env python3
"""boostpay invariant checks against config and persisted state."""

import json
import sys
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"
DATA_DIR = ROOT / "data"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_params(params: dict, errors: list[str]) -> None:
    """Validate fee and minimum settings."""
    if "version" not in params:
        errors.append("escrow_params.json missing version")

    fees = params.get("fees", {})
    for name in ("task_review_percent", "tip_percent"):
        value = fees.get(name)
        if not isinstance(value, int) or not 0 <= value <= 100:
            errors.append(f"fees.{name} must be an integer in [0, 100], got {value!r}")

    minimums = params.get("minimums", {})
    percent = fees.get("task_review_percent")
    for name in ("task_payment", "review_bounty"):
        value = minimums.get(name)
        if not isinstance(value, int) or value <= 0:
            errors.append(f"minimums.{name} must be a positive integer, got {value!r}")
        elif isinstance(percent, int) and value * percent // 100 == 0 and percent > 0:
            errors.append(f"minimums.{name}={value} earns no fee at {percent}%")

    accounts = params.get("accounts", {})
    if not accounts.get("platform_owner") or not accounts.get("custody"):
        errors.append("accounts.platform_owner and accounts.custody are required")
    elif accounts["platform_owner"] == accounts["custody"]:
        errors.append("accounts.platform_owner and accounts.custody must differ")


def check_records(
    label: str,
    records: list[dict],
    amount_key: str,
    percent: int,
    errors: list[str],
) -> int:
    """Validate stored records. Returns the pending total held in custody."""
    pending_total = 0
    for rec in records:
        rid = rec.get(f"{label}_id")
        amount = rec[amount_key]
        if rec["platform_fee"] != amount * percent // 100:
            errors.append(f"{label} {rid}: platform_fee {rec['platform_fee']} != {amount} * {percent} // 100")
        status = rec["status"]
        if status not in ("pending", "completed", "cancelled"):
            errors.append(f"{label} {rid}: unreachable status {status!r}")
        if status == "pending":
            pending_total += amount
        if label == "task" and status == "completed":
            if not (rec["requester_confirmed"] and rec["provider_confirmed"]):
                errors.append(f"task {rid}: completed without both confirmations")
    return pending_total


def check_state(params: dict, data_dir: Path, errors: list[str]) -> None:
    """Validate custody conservation over persisted state and ledger."""
    state_path = data_dir / "state.json"
    if not state_path.exists():
        return
    state = load_json(state_path)
    percent = params["fees"]["task_review_percent"]

    pending = check_records(
        "task", state.get("tasks", {}).get("records", []), "amount", percent, errors,
    )
    pending += check_records(
        "review", state.get("reviews", {}).get("records", []), "bounty", percent, errors,
    )

    treasury = state.get("treasury", {})
    balance = treasury.get("balance", 0)
    if balance < 0:
        errors.append(f"treasury balance is negative: {balance}")
    if treasury and balance != treasury["total_credited"] - treasury["total_withdrawn"]:
        errors.append(
            f"treasury balance {balance} != credited {treasury['total_credited']} "
            f"- withdrawn {treasury['total_withdrawn']}"
        )

    if state.get("stranded", 0):
        errors.append(f"{state['stranded']} stranded in custody awaits manual reconciliation")

    ledger_path = data_dir / "ledger.json"
    if ledger_path.exists():
        custody = params["accounts"]["custody"]
        held = load_json(ledger_path).get("balances", {}).get(custody, 0)
        stranded = state.get("stranded", 0)
        expected = pending + balance + stranded
        if held != expected:
            errors.append(
                f"custody holds {held}, expected {expected} "
                f"(pending {pending} + treasury {balance} + stranded {stranded})"
            )


def check(config_dir: Optional[Path] = None, data_dir: Optional[Path] = None) -> int:
    params = load_json((config_dir or CONFIG_DIR) / "escrow_params.json")
    errors: list[str] = []

    check_params(params, errors)
    if not errors:
        check_state(params, data_dir or DATA_DIR, errors)

    if errors:
        print("Invariant check FAILED:")
        for err in errors:
            print(f"  - {err}")
        return 1
    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())
