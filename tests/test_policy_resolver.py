"""Tests for the policy resolver — proves config loads and fails loud."""

import copy
import json
from pathlib import Path

import pytest

from boostpay.policy.resolver import PolicyResolver

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def _params() -> dict:
    with (CONFIG_DIR / "escrow_params.json").open(encoding="utf-8") as f:
        return json.load(f)


class TestLoading:
    def test_loads_repo_config(self) -> None:
        resolver = PolicyResolver.from_config_dir(CONFIG_DIR)
        fees = resolver.fee_schedule()
        assert fees.task_review_percent == 5
        assert fees.tip_percent == 2
        assert resolver.minimum_task_payment() == 100_000
        assert resolver.minimum_review_bounty() == 50_000
        assert resolver.platform_owner() == "deployer"
        assert resolver.custody_account() == "boostpay.custody"

    def test_missing_config_dir(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="escrow_params.json"):
            PolicyResolver.from_config_dir(tmp_path)

    def test_loads_from_custom_dir(self, tmp_path: Path) -> None:
        params = _params()
        params["minimums"]["task_payment"] = 7
        (tmp_path / "escrow_params.json").write_text(json.dumps(params))
        resolver = PolicyResolver.from_config_dir(tmp_path)
        assert resolver.minimum_task_payment() == 7


class TestValidation:
    def test_missing_version(self) -> None:
        params = _params()
        del params["version"]
        with pytest.raises(ValueError, match="version"):
            PolicyResolver(params)

    @pytest.mark.parametrize("bad", [-1, 101, 2.5, "5"])
    def test_fee_percent_out_of_range(self, bad) -> None:
        params = copy.deepcopy(_params())
        params["fees"]["task_review_percent"] = bad
        with pytest.raises(ValueError, match="task_review_percent"):
            PolicyResolver(params)

    def test_non_positive_minimum(self) -> None:
        params = _params()
        params["minimums"]["review_bounty"] = 0
        with pytest.raises(ValueError, match="review_bounty"):
            PolicyResolver(params)

    def test_owner_and_custody_must_differ(self) -> None:
        params = _params()
        params["accounts"]["custody"] = params["accounts"]["platform_owner"]
        with pytest.raises(ValueError, match="must differ"):
            PolicyResolver(params)

    def test_missing_key_fails_loud(self) -> None:
        params = _params()
        del params["accounts"]
        with pytest.raises(KeyError):
            PolicyResolver(params)
