"""Tests for the fee calculator — proves truncation and conservation."""

import pytest

from boostpay.settlement.fees import is_whole_amount, platform_fee, split


class TestPlatformFee:
    def test_five_percent_of_round_amount(self) -> None:
        assert platform_fee(1_000_000, 5) == 50_000

    def test_two_percent_tip_rate(self) -> None:
        assert platform_fee(500_000, 2) == 10_000

    def test_truncates_toward_zero(self) -> None:
        # 123457 * 5 = 617285 → 6172.85 → 6172
        assert platform_fee(123_457, 5) == 6_172

    def test_small_amount_earns_nothing(self) -> None:
        assert platform_fee(19, 5) == 0
        assert platform_fee(20, 5) == 1

    def test_zero_amount(self) -> None:
        assert platform_fee(0, 5) == 0

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            platform_fee(-1, 5)


class TestSplit:
    @pytest.mark.parametrize("amount", [0, 1, 19, 20, 99, 100_000, 123_457, 10**18 + 7])
    def test_net_plus_fee_equals_amount(self, amount: int) -> None:
        net, fee = split(amount, 5)
        assert net + fee == amount
        assert fee == amount * 5 // 100

    def test_split_values(self) -> None:
        assert split(1_000_000, 5) == (950_000, 50_000)
        assert split(500_000, 5) == (475_000, 25_000)
        assert split(500_000, 2) == (490_000, 10_000)


class TestWholeAmount:
    @pytest.mark.parametrize("value", [0, 1, 100_000, -5])
    def test_ints_are_whole(self, value) -> None:
        assert is_whole_amount(value)

    @pytest.mark.parametrize("value", [100_000.7, 2.0, True, False, "100", None])
    def test_everything_else_is_not(self, value) -> None:
        assert not is_whole_amount(value)
