"""boostpay CLI — command-line interface for the settlement engine.

Usage:
    python -m boostpay.cli status
    python -m boostpay.cli fund --account alice --amount 2000000
    python -m boostpay.cli create-task --caller alice --provider bob --amount 1000000
    python -m boostpay.cli confirm-task --caller alice --id 1
    python -m boostpay.cli confirm-task --caller bob --id 1
    python -m boostpay.cli withdraw --caller deployer --amount 50000
    python -m boostpay.cli anchor-log
    python -m boostpay.cli check-invariants
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path

from boostpay.persistence.event_log import EventLog
from boostpay.persistence.state_store import StateStore
from boostpay.policy.resolver import PolicyResolver
from boostpay.service import BoostService, ServiceResult
from boostpay.settlement.ledger import InMemoryLedger


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"


def _make_service(config_dir: Path, data_dir: Path) -> tuple[BoostService, InMemoryLedger]:
    """Create a BoostService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    ledger = InMemoryLedger(storage_path=data_dir / "ledger.json")
    service = BoostService(
        resolver,
        ledger,
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(storage_path=data_dir / "state.json"),
    )
    return service, ledger


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_fund(args: argparse.Namespace) -> int:
    _, ledger = _make_service(args.config, args.data)
    try:
        ledger.mint(args.account, args.amount)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(f"{args.account}: {ledger.balance_of(args.account)}")
    return 0


def cmd_balance(args: argparse.Namespace) -> int:
    _, ledger = _make_service(args.config, args.data)
    print(f"{args.account}: {ledger.balance_of(args.account)}")
    return 0


def cmd_create_task(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.create_task(args.caller, args.provider, args.amount))


def cmd_confirm_task(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.confirm_task_completion(args.caller, args.id))


def cmd_cancel_task(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.cancel_task(args.caller, args.id))


def cmd_create_review(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.create_review_request(args.caller, args.reviewer, args.bounty))


def cmd_complete_review(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.complete_review(args.caller, args.id))


def cmd_cancel_review(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.cancel_review(args.caller, args.id))


def cmd_send_tip(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.send_tip(args.caller, args.recipient, args.amount))


def cmd_withdraw(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    return _report(service.withdraw_platform_earnings(args.caller, args.amount))


def cmd_get_task(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    task = service.get_task(args.id)
    if task is None:
        print(f"Task not found: {args.id}", file=sys.stderr)
        return 1
    print(json.dumps(asdict(task), indent=2, default=str))
    return 0


def cmd_get_review(args: argparse.Namespace) -> int:
    service, _ = _make_service(args.config, args.data)
    review = service.get_review(args.id)
    if review is None:
        print(f"Review not found: {args.id}", file=sys.stderr)
        return 1
    print(json.dumps(asdict(review), indent=2, default=str))
    return 0


def cmd_anchor_log(args: argparse.Namespace) -> int:
    """Anchor the settlement log digest on-chain."""
    from dotenv import load_dotenv
    from boostpay.crypto.anchor import anchor_to_chain, canonical_log_digest

    service, _ = _make_service(args.config, args.data)
    digest, covered = canonical_log_digest(service.event_log)
    if args.dry_run:
        print(json.dumps({"sha256_hash": digest, "events_covered": covered}, indent=2))
        return 0

    load_dotenv(args.env_file)
    rpc_url = os.getenv("ANCHOR_RPC_URL")
    private_key = os.getenv("PRIVATE_KEY")
    if not rpc_url or not private_key:
        print("Failed: ANCHOR_RPC_URL and PRIVATE_KEY must be set", file=sys.stderr)
        return 1

    record = anchor_to_chain(digest, covered, rpc_url, private_key)
    result = service.record_anchor(record)
    if not result.success:
        print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
        return 1
    print(json.dumps(asdict(record), indent=2))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run config and custody invariant checks."""
    tools_dir = Path(__file__).resolve().parents[2] / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(config_dir=args.config, data_dir=args.data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boostpay",
        description="boostpay — escrow and bounty settlement CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=DEFAULT_DATA,
        help="Path to data directory (default: data/)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show engine status")

    p_fund = sub.add_parser("fund", help="Credit an account on the local ledger")
    p_fund.add_argument("--account", required=True)
    p_fund.add_argument("--amount", required=True, type=int)

    p_bal = sub.add_parser("balance", help="Show an account balance")
    p_bal.add_argument("--account", required=True)

    p_ct = sub.add_parser("create-task", help="Escrow a task payment")
    p_ct.add_argument("--caller", required=True, help="Requester principal")
    p_ct.add_argument("--provider", required=True, help="Provider principal")
    p_ct.add_argument("--amount", required=True, type=int, help="Gross amount")

    for name, help_text in (
        ("confirm-task", "Confirm task completion"),
        ("cancel-task", "Cancel a pending task"),
        ("complete-review", "Pay a review bounty"),
        ("cancel-review", "Cancel a pending review"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--caller", required=True)
        p.add_argument("--id", required=True, type=int)

    p_cr = sub.add_parser("create-review", help="Post a review bounty")
    p_cr.add_argument("--caller", required=True, help="Requester principal")
    p_cr.add_argument("--reviewer", required=True, help="Reviewer principal")
    p_cr.add_argument("--bounty", required=True, type=int)

    p_tip = sub.add_parser("send-tip", help="Send a tip")
    p_tip.add_argument("--caller", required=True)
    p_tip.add_argument("--recipient", required=True)
    p_tip.add_argument("--amount", required=True, type=int)

    p_wd = sub.add_parser("withdraw", help="Withdraw platform earnings")
    p_wd.add_argument("--caller", required=True)
    p_wd.add_argument("--amount", required=True, type=int)

    p_gt = sub.add_parser("get-task", help="Show a task")
    p_gt.add_argument("--id", required=True, type=int)

    p_gr = sub.add_parser("get-review", help="Show a review")
    p_gr.add_argument("--id", required=True, type=int)

    p_anchor = sub.add_parser("anchor-log", help="Anchor the settlement log digest on-chain")
    p_anchor.add_argument("--env-file", type=Path, default=Path(".env"))
    p_anchor.add_argument("--dry-run", action="store_true", help="Only print the digest")

    sub.add_parser("check-invariants", help="Run config and custody invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "fund": cmd_fund,
        "balance": cmd_balance,
        "create-task": cmd_create_task,
        "confirm-task": cmd_confirm_task,
        "cancel-task": cmd_cancel_task,
        "create-review": cmd_create_review,
        "complete-review": cmd_complete_review,
        "cancel-review": cmd_cancel_review,
        "send-tip": cmd_send_tip,
        "withdraw": cmd_withdraw,
        "get-task": cmd_get_task,
        "get-review": cmd_get_review,
        "anchor-log": cmd_anchor_log,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
