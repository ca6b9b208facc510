"""Fee calculator — splits a gross amount into (net, platform fee).

Integer arithmetic only. The fee truncates toward zero, so the platform
never rounds a payout down by more than the exact percentage:

    fee = amount * percent // 100
    net = amount - fee

Invariant: net + fee == amount, for every non-negative amount.
"""

from __future__ import annotations

from typing import Tuple


def platform_fee(amount: int, percent: int) -> int:
    """Return floor(amount * percent / 100)."""
    if amount < 0:
        raise ValueError(f"Fee base must be non-negative, got {amount}")
    return amount * percent // 100


def split(amount: int, percent: int) -> Tuple[int, int]:
    """Return (net, fee) for a gross amount."""
    fee = platform_fee(amount, percent)
    return amount - fee, fee


def is_whole_amount(value: object) -> bool:
    """True for an int in smallest currency units. bool is not an amount."""
    return isinstance(value, int) and not isinstance(value, bool)
