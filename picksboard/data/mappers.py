from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from picksboard.core.timeutils import parse_utc

LEAGUE_CODES = {
    "premier-league": "PL",
    "championship": "ELC",
    "la-liga": "PD",
    "bundesliga": "BL1",
    "serie-a": "SA",
    "ligue-1": "FL1",
}

LEAGUE_NAMES = {
    "premier-league": "Premier League",
    "championship": "Championship",
    "la-liga": "La Liga",
    "bundesliga": "Bundesliga",
    "serie-a": "Serie A",
    "ligue-1": "Ligue 1",
}

# Short prefix for fixture ids ("pl-12345").
LEAGUE_ID_PREFIX = {
    "premier-league": "pl",
    "championship": "champ",
    "la-liga": "laliga",
    "bundesliga": "bl",
    "serie-a": "sa",
    "ligue-1": "l1",
}


@dataclass(frozen=True)
class Fixture:
    id: str
    league: str
    home_team: str
    away_team: str
    kickoff: Optional[datetime]
    gameweek: Optional[int]
    status: str
    venue: Optional[str] = None


@dataclass(frozen=True)
class TeamMatch:
    date: Optional[datetime]
    home_team: Optional[str]
    away_team: Optional[str]
    home_score: int
    away_score: int
    btts: bool


def league_slug(league: str) -> str:
    """'Premier League' -> 'premier-league'; slugs pass through."""
    return "-".join((league or "").strip().lower().split())


def league_name(league: str) -> str:
    slug = league_slug(league)
    return LEAGUE_NAMES.get(slug, league)


def normalize_status(status: Optional[str]) -> str:
    code = (status or "").upper()
    if not code:
        return "unknown"

    upcoming = {"SCHEDULED", "TIMED"}
    live = {"IN_PLAY", "PAUSED", "LIVE"}
    finished = {"FINISHED", "AWARDED"}

    if code in upcoming:
        return "upcoming"
    if code in live:
        return "live"
    if code in finished:
        return "finished"
    if code == "POSTPONED":
        return "postponed"
    if code == "SUSPENDED":
        return "suspended"
    if code == "CANCELLED":
        return "cancelled"
    return "unknown"


def both_teams_scored(home_score: Optional[int], away_score: Optional[int]) -> bool:
    return (home_score or 0) > 0 and (away_score or 0) > 0


def map_fixture(raw: dict, league: str) -> Fixture:
    slug = league_slug(league)
    prefix = LEAGUE_ID_PREFIX.get(slug, slug)
    home = raw.get("homeTeam") or {}
    away = raw.get("awayTeam") or {}
    return Fixture(
        id=f"{prefix}-{raw.get('id')}",
        league=league_name(slug),
        home_team=home.get("name") or raw.get("home_team") or "",
        away_team=away.get("name") or raw.get("away_team") or "",
        kickoff=parse_utc(raw.get("utcDate") or raw.get("kickoff_time")),
        gameweek=raw.get("matchday"),
        status=normalize_status(raw.get("status")),
        venue=raw.get("venue") or None,
    )


def map_team_match(raw: dict) -> TeamMatch:
    full_time = ((raw.get("score") or {}).get("fullTime")) or {}
    home_score = full_time.get("home")
    away_score = full_time.get("away")
    home_score = int(home_score) if home_score is not None else 0
    away_score = int(away_score) if away_score is not None else 0
    return TeamMatch(
        date=parse_utc(raw.get("utcDate")),
        home_team=(raw.get("homeTeam") or {}).get("name"),
        away_team=(raw.get("awayTeam") or {}).get("name"),
        home_score=home_score,
        away_score=away_score,
        btts=both_teams_scored(home_score, away_score),
    )
