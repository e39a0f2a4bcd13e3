from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

NumberLike = Union[str, float, int, Decimal]


def D(value: NumberLike) -> Decimal:
    """Safe Decimal constructor using string conversion to avoid float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def q_money(value: NumberLike) -> Decimal:
    return D(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def round_half_up(value: NumberLike) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1, 24.5 -> 25)."""
    return int(D(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_percent(probability: NumberLike) -> int:
    """Probability in [0, 1] -> whole percent, rounded half-up on the decimal form."""
    return round_half_up(D(probability) * 100)


def safe_div(numerator: NumberLike, denominator: NumberLike, default: NumberLike = 0) -> Decimal:
    denom_dec = D(denominator)
    if denom_dec == 0:
        return D(default)
    return D(numerator) / denom_dec
