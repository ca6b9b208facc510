"""Tests for boostpay CLI — proves commands dispatch and state persists between runs."""

import json
from pathlib import Path

import pytest

from boostpay.cli import build_parser, main

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_create_task_command(self) -> None:
        args = build_parser().parse_args([
            "create-task", "--caller", "alice", "--provider", "bob", "--amount", "1000000",
        ])
        assert args.command == "create-task"
        assert args.amount == 1_000_000

    def test_confirm_task_command(self) -> None:
        args = build_parser().parse_args(["confirm-task", "--caller", "bob", "--id", "3"])
        assert (args.caller, args.id) == ("bob", 3)

    def test_global_paths(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(["--data", str(tmp_path), "status"])
        assert args.data == tmp_path

    def test_amount_must_be_integer(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["send-tip", "--caller", "a", "--recipient", "b", "--amount", "1.5"])


class TestCLIExecution:
    @pytest.fixture
    def run(self, tmp_path: Path):
        def _run(*argv: str) -> int:
            return main(["--config", str(CONFIG_DIR), "--data", str(tmp_path), *argv])
        return _run

    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0
        assert "boostpay" in capsys.readouterr().out

    def test_status_runs(self, run, capsys) -> None:
        assert run("status") == 0
        status = json.loads(capsys.readouterr().out)
        assert status["config_version"] == "1.0.0"
        assert status["tasks"]["total"] == 0

    def test_task_lifecycle_e2e(self, run, capsys) -> None:
        assert run("fund", "--account", "alice", "--amount", "2000000") == 0
        assert run("create-task", "--caller", "alice", "--provider", "bob", "--amount", "1000000") == 0
        assert run("confirm-task", "--caller", "alice", "--id", "1") == 0
        assert run("confirm-task", "--caller", "bob", "--id", "1") == 0
        capsys.readouterr()

        assert run("balance", "--account", "bob") == 0
        assert capsys.readouterr().out.strip() == "bob: 950000"

        assert run("get-task", "--id", "1") == 0
        task = json.loads(capsys.readouterr().out)
        assert task["status"] == "completed"

        assert run("withdraw", "--caller", "deployer", "--amount", "50000") == 0
        assert json.loads(capsys.readouterr().out)["balance"] == 0

        assert run("check-invariants") == 0
        assert "passed" in capsys.readouterr().out

    def test_review_and_tip_e2e(self, run, capsys) -> None:
        run("fund", "--account", "rita", "--amount", "1000000")
        assert run("create-review", "--caller", "rita", "--reviewer", "victor", "--bounty", "500000") == 0
        assert run("complete-review", "--caller", "victor", "--id", "1") == 1
        assert "unauthorized" in capsys.readouterr().err
        assert run("complete-review", "--caller", "rita", "--id", "1") == 0
        assert run("send-tip", "--caller", "rita", "--recipient", "victor", "--amount", "100000") == 0
        capsys.readouterr()

        assert run("get-review", "--id", "1") == 0
        assert json.loads(capsys.readouterr().out)["status"] == "completed"
        assert run("status") == 0
        status = json.loads(capsys.readouterr().out)
        assert status["treasury"]["balance"] == 25_000 + 2_000
        assert run("check-invariants") == 0

    def test_rejection_exits_nonzero(self, run, capsys) -> None:
        assert run("create-task", "--caller", "alice", "--provider", "alice", "--amount", "1000000") == 1
        assert "invalid_participant" in capsys.readouterr().err

    def test_missing_records(self, run, capsys) -> None:
        assert run("get-task", "--id", "9") == 1
        assert run("get-review", "--id", "9") == 1
        assert "not found" in capsys.readouterr().err

    def test_cancel_commands(self, run) -> None:
        run("fund", "--account", "alice", "--amount", "1000000")
        run("create-task", "--caller", "alice", "--provider", "bob", "--amount", "300000")
        run("create-review", "--caller", "alice", "--reviewer", "bob", "--bounty", "300000")
        assert run("cancel-task", "--caller", "alice", "--id", "1") == 0
        assert run("cancel-review", "--caller", "alice", "--id", "1") == 0
        assert run("check-invariants") == 0

    def test_anchor_log_dry_run(self, run, capsys) -> None:
        run("fund", "--account", "alice", "--amount", "1000000")
        run("create-task", "--caller", "alice", "--provider", "bob", "--amount", "100000")
        capsys.readouterr()
        assert run("anchor-log", "--dry-run") == 0
        out = json.loads(capsys.readouterr().out)
        assert out["events_covered"] == 1
        assert len(out["sha256_hash"]) == 64

    def test_check_invariants_detects_drained_custody(self, run, tmp_path: Path, capsys) -> None:
        run("fund", "--account", "alice", "--amount", "1000000")
        run("create-task", "--caller", "alice", "--provider", "bob", "--amount", "100000")
        ledger_path = tmp_path / "ledger.json"
        data = json.loads(ledger_path.read_text(encoding="utf-8"))
        data["balances"]["boostpay.custody"] = 0
        ledger_path.write_text(json.dumps(data), encoding="utf-8")
        capsys.readouterr()

        assert run("check-invariants") == 1
        assert "custody holds 0" in capsys.readouterr().out

    def test_check_invariants_reports_stranded_funds(self, run, tmp_path: Path, capsys) -> None:
        (tmp_path / "state.json").write_text(json.dumps({"stranded": 500}), encoding="utf-8")
        (tmp_path / "ledger.json").write_text(
            json.dumps({"balances": {"boostpay.custody": 500}}), encoding="utf-8",
        )
        assert run("check-invariants") == 1
        out = capsys.readouterr().out
        assert "500 stranded in custody" in out
        assert "custody holds" not in out
