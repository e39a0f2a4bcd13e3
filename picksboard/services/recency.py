"""Recency-weighted outcome rates.

A team's recent matches are reduced to one rate in [0, 1] with linear
("triangular") weights: position 0 (the most recent match) gets raw weight N,
position N-1 gets 1, normalised by N*(N+1)/2. With fewer than N matches only
the leading weights are used and the weighted sum is divided by the weights
actually used, so the result stays a weighted average.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence

from picksboard.core.errors import InvalidArgument

DEFAULT_WINDOW = 10


@dataclass(frozen=True)
class MatchOutcome:
    occurred_order: int
    outcome: bool | float


@dataclass(frozen=True)
class TeamRate:
    team: str
    rate: float
    sample_size: int

    @property
    def has_data(self) -> bool:
        return self.sample_size > 0


def _check_window(window_size: int) -> int:
    if isinstance(window_size, bool) or not isinstance(window_size, int):
        raise InvalidArgument(f"window_size must be an int, got {window_size!r}")
    if window_size < 1:
        raise InvalidArgument(f"window_size must be >= 1, got {window_size}")
    return window_size


@lru_cache(maxsize=32)
def _weights(window_size: int) -> tuple[float, ...]:
    total = window_size * (window_size + 1) / 2
    return tuple((window_size - i) / total for i in range(window_size))


def recency_weights(window_size: int = DEFAULT_WINDOW) -> list[float]:
    """Normalised linear weights, most recent first.

    >>> recency_weights(3)
    [0.5, 0.3333333333333333, 0.16666666666666666]
    """
    return list(_weights(_check_window(window_size)))


def outcome_flag(item) -> float:
    """Numeric outcome of one history entry.

    Accepts a MatchOutcome, a bare bool / number, a mapping with a ``btts`` or
    ``outcome`` key, or any object with a ``btts`` attribute.
    """
    if isinstance(item, MatchOutcome):
        value = item.outcome
    elif isinstance(item, Mapping):
        value = item.get("btts", item.get("outcome"))
    elif isinstance(item, (bool, int, float)):
        value = item
    else:
        value = getattr(item, "btts", None)

    if value is None:
        raise InvalidArgument(f"history entry has no outcome: {item!r}")
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    flag = float(value)
    if math.isnan(flag) or flag < 0.0 or flag > 1.0:
        raise InvalidArgument(f"outcome must be within [0, 1], got {value!r}")
    return flag


def _most_recent_first(matches) -> list:
    history = list(matches)
    if history and all(isinstance(m, MatchOutcome) for m in history):
        history.sort(key=lambda m: m.occurred_order)
    return history


def team_rate(matches: Sequence | Iterable, window_size: int = DEFAULT_WINDOW) -> float:
    """Recency-weighted rate of ``matches``; 0.0 for no matches.

    MatchOutcome histories are ordered by ``occurred_order`` (0 = most recent)
    before truncation; any other history is taken in list order, index 0 first.
    """
    weights = _weights(_check_window(window_size))
    used = _most_recent_first(matches)[:window_size]
    if not used:
        return 0.0

    weighted_sum = 0.0
    total_weight = 0.0
    for weight, item in zip(weights, used):
        weighted_sum += weight * outcome_flag(item)
        total_weight += weight
    return weighted_sum / total_weight if total_weight > 0 else 0.0


def compute_team_rate(team: str, matches: Sequence | Iterable, window_size: int = DEFAULT_WINDOW) -> TeamRate:
    history = list(matches)
    rate = team_rate(history, window_size)
    return TeamRate(team=team, rate=rate, sample_size=min(len(history), window_size))


def outcomes_from_flags(flags: Iterable[bool | float]) -> list[MatchOutcome]:
    """Wrap a most-recent-first list of flags as MatchOutcome records."""
    return [MatchOutcome(occurred_order=i, outcome=flag) for i, flag in enumerate(flags)]
