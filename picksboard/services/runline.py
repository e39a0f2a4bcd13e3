"""MLB +1.5 runline picks.

Confidence is a percentage built from a team's historical runline cover rate:

- home underdog: home cover rate
- road underdog: away cover rate + ROAD_DOG_BONUS
- plus (recent_form - 60) * RECENT_FORM_WEIGHT when recent form is known
- capped at MAX_CONFIDENCE

Team stats are passed in as a mapping; nothing here owns a team table.
Ranking reuses the fixture selector, on ``confidence / 100``. The threshold
defaults to RUNLINE_CONFIDENCE_THRESHOLD.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from picksboard.core.config import settings
from picksboard.core.decimalutils import D, q_money
from picksboard.services.odds_utils import determine_underdog, win_profit
from picksboard.services.selection import check_threshold, rank_by_probability

ROAD_DOG_BONUS = 5.0
RECENT_FORM_BASELINE = 60.0
RECENT_FORM_WEIGHT = 0.3
MAX_CONFIDENCE = 95.0
RUNLINE_SPREAD = 1.5

HOME_RUNLINE = "home_runline"
AWAY_RUNLINE = "away_runline"

PENDING = "pending"
WON = "won"
LOST = "lost"
PUSH = "push"


@dataclass(frozen=True)
class RunlineTeamStats:
    team: str
    runline_rate: float
    home_rate: float
    away_rate: float
    recent_form: Optional[float] = None


@dataclass(frozen=True)
class RunlinePick:
    id: str
    date: date
    home_team: str
    away_team: str
    recommended_bet: str
    confidence: float
    reason: str
    odds: int
    status: str = PENDING
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    profit: Optional[Decimal] = None
    home_pitcher: Optional[str] = None
    away_pitcher: Optional[str] = None

    @property
    def probability(self) -> float:
        return self.confidence / 100.0

    @property
    def score_difference(self) -> Optional[int]:
        if self.home_score is None or self.away_score is None:
            return None
        return self.home_score - self.away_score


@dataclass(frozen=True)
class RunlineResults:
    total_picks: int
    won_picks: int
    lost_picks: int
    push_picks: int
    win_rate: float
    total_profit: Decimal
    roi: float
    streak_type: str
    streak_count: int


@dataclass(frozen=True)
class RunlineGame:
    home_team: str
    away_team: str
    home_odds: int
    away_odds: int
    home_pitcher: Optional[str] = None
    away_pitcher: Optional[str] = None


def _threshold(threshold: Optional[float]) -> float:
    return settings.runline_confidence_threshold if threshold is None else threshold


def lookup_team_stats(team: str, team_stats: Mapping[str, RunlineTeamStats]) -> Optional[RunlineTeamStats]:
    """Case-insensitive substring match in either direction ("Houston" ~ "Houston Astros")."""
    needle = (team or "").strip().lower()
    if not needle:
        return None
    for name, stats in team_stats.items():
        key = name.lower()
        if key in needle or needle in key:
            return stats
    return None


def analyze_game(
    home_team: str,
    away_team: str,
    is_home_underdog: bool,
    odds: int,
    team_stats: Mapping[str, RunlineTeamStats],
    *,
    threshold: Optional[float] = None,
    on_date: Optional[date] = None,
    home_pitcher: Optional[str] = None,
    away_pitcher: Optional[str] = None,
) -> Optional[RunlinePick]:
    bar = check_threshold(_threshold(threshold)) * 100.0
    home_stats = lookup_team_stats(home_team, team_stats)
    away_stats = lookup_team_stats(away_team, team_stats)

    if is_home_underdog and home_stats:
        stats = home_stats
        confidence = home_stats.home_rate
        bet = HOME_RUNLINE
        reason = f"{home_team} as home underdog - {home_stats.runline_rate}% runline cover rate"
    elif not is_home_underdog and away_stats:
        stats = away_stats
        confidence = away_stats.away_rate + ROAD_DOG_BONUS
        bet = AWAY_RUNLINE
        reason = f"{away_team} as road underdog - {away_stats.runline_rate}% runline cover rate + road dog bonus"
    else:
        return None

    if stats.recent_form:
        confidence += (stats.recent_form - RECENT_FORM_BASELINE) * RECENT_FORM_WEIGHT

    if confidence < bar:
        return None

    day = on_date or date.today()
    return RunlinePick(
        id=f"{home_team}-{away_team}-{day.isoformat()}",
        date=day,
        home_team=home_team,
        away_team=away_team,
        recommended_bet=bet,
        confidence=min(confidence, MAX_CONFIDENCE),
        reason=reason,
        odds=odds,
        home_pitcher=home_pitcher,
        away_pitcher=away_pitcher,
    )


def rank_runline_picks(picks: Iterable[RunlinePick], threshold: Optional[float] = None) -> list[RunlinePick]:
    return rank_by_probability(picks, _threshold(threshold))


def day_of_week_bonus(day: date) -> int:
    """Thursday +3, Saturday +4."""
    weekday = day.weekday()
    if weekday == 3:
        return 3
    if weekday == 5:
        return 4
    return 0


def settle_pick(pick: RunlinePick, home_score: int, away_score: int, stake: Decimal = D("1")) -> RunlinePick:
    """Grade a +1.5 runline pick from the final score."""
    if pick.recommended_bet == HOME_RUNLINE:
        margin = home_score - away_score + RUNLINE_SPREAD
    else:
        margin = away_score - home_score + RUNLINE_SPREAD
    if margin > 0:
        status, profit = WON, win_profit(pick.odds, stake)
    elif margin < 0:
        status, profit = LOST, q_money(-D(stake))
    else:
        status, profit = PUSH, q_money(0)
    return replace(pick, status=status, home_score=home_score, away_score=away_score, profit=profit)


def summarize_results(picks: Sequence[RunlinePick]) -> RunlineResults:
    completed = [p for p in picks if p.status != PENDING]
    won = [p for p in completed if p.status == WON]
    lost = [p for p in completed if p.status == LOST]
    push = [p for p in completed if p.status == PUSH]

    total_profit = q_money(sum((D(p.profit or 0) for p in completed), D(0)))
    win_rate = len(won) / len(completed) * 100 if completed else 0.0
    roi = float(total_profit) / len(completed) * 100 if completed else 0.0

    streak_type, streak_count = "win", 0
    if completed:
        latest = completed[::-1]
        first_status = latest[0].status
        for p in latest:
            if p.status == first_status and p.status != PUSH:
                streak_count += 1
            else:
                break
        streak_type = "win" if first_status == WON else "loss"

    return RunlineResults(
        total_picks=len(completed),
        won_picks=len(won),
        lost_picks=len(lost),
        push_picks=len(push),
        win_rate=win_rate,
        total_profit=total_profit,
        roi=roi,
        streak_type=streak_type,
        streak_count=streak_count,
    )


def analyze_runline_slate(
    games: Iterable[RunlineGame],
    team_stats: Mapping[str, RunlineTeamStats],
    *,
    threshold: Optional[float] = None,
    on_date: Optional[date] = None,
) -> list[RunlinePick]:
    """Ranked picks for a day's games; the underdog side comes from the runline prices."""
    bar = _threshold(threshold)
    picks: list[RunlinePick] = []
    for game in games:
        side = determine_underdog(game.home_odds, game.away_odds)
        pick = analyze_game(
            game.home_team,
            game.away_team,
            side.is_home_underdog,
            side.underdog_odds,
            team_stats,
            threshold=bar,
            on_date=on_date,
            home_pitcher=game.home_pitcher,
            away_pitcher=game.away_pitcher,
        )
        if pick is not None:
            picks.append(pick)
    return rank_runline_picks(picks, bar)
