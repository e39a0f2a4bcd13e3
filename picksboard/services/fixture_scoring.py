from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from picksboard.core.decimalutils import to_percent
from picksboard.core.errors import InvalidArgument
from picksboard.services.recency import TeamRate

HOME_WEIGHT = 0.5
AWAY_WEIGHT = 0.5


@dataclass(frozen=True)
class FixtureScore:
    fixture_id: Optional[str]
    home_rate: float
    away_rate: float
    probability: float
    confidence_percent: int
    league: Optional[str] = None
    gameweek: Optional[int] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    kickoff: Optional[datetime] = None
    venue: Optional[str] = None
    home_sample_size: Optional[int] = None
    away_sample_size: Optional[int] = None


def _check_rate(name: str, value: float) -> float:
    rate = float(value)
    if math.isnan(rate) or rate < 0.0 or rate > 1.0:
        raise InvalidArgument(f"{name} must be within [0, 1], got {value!r}")
    return rate


def blend(home_rate: float, away_rate: float) -> float:
    """P = 0.5 * R_home + 0.5 * R_away; symmetric, no home advantage term."""
    return HOME_WEIGHT * _check_rate("home_rate", home_rate) + AWAY_WEIGHT * _check_rate("away_rate", away_rate)


def score_fixture(
    home_rate: float,
    away_rate: float,
    *,
    fixture_id: Optional[str] = None,
    league: Optional[str] = None,
    gameweek: Optional[int] = None,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    kickoff: Optional[datetime] = None,
    venue: Optional[str] = None,
    home_sample_size: Optional[int] = None,
    away_sample_size: Optional[int] = None,
) -> FixtureScore:
    probability = blend(home_rate, away_rate)
    return FixtureScore(
        fixture_id=fixture_id,
        home_rate=float(home_rate),
        away_rate=float(away_rate),
        probability=probability,
        confidence_percent=to_percent(probability),
        league=league,
        gameweek=gameweek,
        home_team=home_team,
        away_team=away_team,
        kickoff=kickoff,
        venue=venue,
        home_sample_size=home_sample_size,
        away_sample_size=away_sample_size,
    )


def score_team_rates(home: TeamRate, away: TeamRate, **fixture) -> FixtureScore:
    """score_fixture() over two TeamRate records, carrying team names and sample sizes."""
    fixture.setdefault("home_team", home.team)
    fixture.setdefault("away_team", away.team)
    return score_fixture(
        home.rate,
        away.rate,
        home_sample_size=home.sample_size,
        away_sample_size=away.sample_size,
        **fixture,
    )
