"""Threshold filter and ranking of scored fixtures."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Iterable, Sequence, TypeVar

from picksboard.core.decimalutils import round_half_up
from picksboard.core.errors import InvalidArgument
from picksboard.services.fixture_scoring import FixtureScore


# Anything with a float `probability` attribute.
T = TypeVar("T")


@dataclass(frozen=True)
class Pick(FixtureScore):
    rank: int = 0

    @classmethod
    def from_score(cls, score: FixtureScore, rank: int) -> "Pick":
        values = {f.name: getattr(score, f.name) for f in fields(FixtureScore)}
        return cls(rank=rank, **values)


@dataclass(frozen=True)
class PickSummary:
    total_picks: int
    average_confidence: int


def check_threshold(threshold: float) -> float:
    value = float(threshold)
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise InvalidArgument(f"threshold must be within [0, 1], got {threshold!r}")
    return value


def rank_by_probability(items: Iterable[T], threshold: float) -> list[T]:
    """Items with probability >= threshold, highest probability first.

    The bound is inclusive. ``sorted`` is stable, so equal probabilities keep
    their input order. An empty result is a normal outcome.
    """
    bar = check_threshold(threshold)
    qualifying = [item for item in items if item.probability >= bar]
    return sorted(qualifying, key=lambda item: item.probability, reverse=True)


def select_picks(scores: Sequence[FixtureScore] | Iterable[FixtureScore], threshold: float) -> list[Pick]:
    """Ranked picks, compared on the float probability.

    The comparison is on ``probability``, not ``confidence_percent``: a blend
    such as 0.5 * 0.7 + 0.5 * 0.6 is 0.6499999999999999, shows as 65% and is
    still below a 0.65 bar.
    """
    ranked = rank_by_probability(scores, threshold)
    return [Pick.from_score(s, rank=i + 1) for i, s in enumerate(ranked)]


def summarize_picks(picks: Sequence[FixtureScore]) -> PickSummary:
    if not picks:
        return PickSummary(total_picks=0, average_confidence=0)
    avg = sum(p.confidence_percent for p in picks) / len(picks)
    return PickSummary(total_picks=len(picks), average_confidence=round_half_up(avg))
