"""American odds helpers for runline picks."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from picksboard.core.decimalutils import D, q_money, safe_div


@dataclass(frozen=True)
class UnderdogSide:
    is_home_underdog: bool
    favorite_odds: int
    underdog_odds: int


def determine_underdog(home_odds: int, away_odds: int) -> UnderdogSide:
    """Which side is the underdog given American runline prices.

    The +1.5 side usually lays the bigger price, so when both prices are
    negative the larger absolute value marks the underdog. Both positive: the
    higher number is the underdog. Mixed: the positive side is the underdog.
    """
    if home_odds < 0 and away_odds < 0:
        is_home_underdog = abs(home_odds) > abs(away_odds)
    elif home_odds > 0 and away_odds > 0:
        is_home_underdog = home_odds > away_odds
    else:
        is_home_underdog = home_odds > 0
    return UnderdogSide(
        is_home_underdog=is_home_underdog,
        favorite_odds=away_odds if is_home_underdog else home_odds,
        underdog_odds=home_odds if is_home_underdog else away_odds,
    )


def american_to_decimal(odds: int) -> Decimal:
    """-110 -> 1.91, +150 -> 2.50."""
    if odds == 0:
        raise ValueError("American odds cannot be 0")
    if odds > 0:
        return q_money(D(1) + D(odds) / D(100))
    return q_money(D(1) + safe_div(100, abs(odds)))


def win_profit(odds: int, stake: Decimal = D("1")) -> Decimal:
    """Profit on a winning `stake` at American `odds`."""
    if odds == 0:
        raise ValueError("American odds cannot be 0")
    if odds > 0:
        return q_money(D(stake) * D(odds) / D(100))
    return q_money(D(stake) * safe_div(100, abs(odds)))
