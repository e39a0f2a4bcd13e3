from __future__ import annotations

import asyncio
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from picksboard.core.config import settings
from picksboard.core.logger import get_logger
from picksboard.core.timeutils import utcnow
from picksboard.data.mappers import Fixture, league_name
from picksboard.data.providers.football_data import (
    fetch_recent_matches,
    get_api_metrics,
    get_upcoming_fixtures,
    reset_api_metrics,
)
from picksboard.data.providers.simulated import simulated_fixtures, simulated_matches
from picksboard.data.repository import save_analysis, save_picks, save_team_stats
from picksboard.services.fixture_scoring import FixtureScore, score_team_rates
from picksboard.services.gameweek import current_gameweek
from picksboard.services.recency import TeamRate, compute_team_rate
from picksboard.services.selection import select_picks, summarize_picks

log = get_logger("jobs.build_btts_picks")


async def _league_fixtures(session: AsyncSession, league: str, gameweek: int, *, now: datetime) -> list[Fixture]:
    if settings.is_demo:
        return simulated_fixtures(league, gameweek, now=now)
    return await get_upcoming_fixtures(session, league, settings.season_label)


async def _team_history(session: AsyncSession, team: str, league: str, window: int, *, now: datetime) -> list:
    if settings.is_demo:
        return simulated_matches(team, league, window, now=now)
    try:
        return await fetch_recent_matches(session, team, league, limit=window, now=now)
    except Exception as exc:
        log.warning("team_history_failed team=%s league=%s err=%s", team, league, exc)
        if settings.simulated_fallback:
            return simulated_matches(team, league, window, now=now)
        return []


async def _team_rate(
    session: AsyncSession,
    team: str,
    league: str,
    window: int,
    rates: dict[str, TeamRate],
    *,
    now: datetime,
) -> TeamRate:
    cached = rates.get(team)
    if cached is not None:
        return cached
    history = await _team_history(session, team, league, window, now=now)
    rate = compute_team_rate(team, history, window)
    rates[team] = rate
    return rate


async def _score_fixture(
    session: AsyncSession,
    fixture: Fixture,
    league: str,
    gameweek: int,
    window: int,
    rates: dict[str, TeamRate],
    *,
    now: datetime,
) -> FixtureScore:
    home, away = await asyncio.gather(
        _team_rate(session, fixture.home_team, league, window, rates, now=now),
        _team_rate(session, fixture.away_team, league, window, rates, now=now),
    )
    return score_team_rates(
        home,
        away,
        fixture_id=fixture.id,
        league=league_name(league),
        gameweek=fixture.gameweek or gameweek,
        kickoff=fixture.kickoff,
        venue=fixture.venue,
    )


async def run(session: AsyncSession, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    window = int(settings.recency_window)
    threshold = float(settings.btts_confidence_threshold)
    reset_api_metrics()
    log.info(
        "build_btts_picks start leagues=%s window=%s threshold=%s mode=%s",
        ",".join(settings.btts_leagues),
        window,
        threshold,
        settings.app_mode,
    )

    scores: list[FixtureScore] = []
    rates_by_league: dict[str, dict[str, TeamRate]] = {}
    gameweeks: dict[str, int] = {}
    failed_fixtures = 0

    for league in settings.btts_leagues:
        name = league_name(league)
        gameweek = current_gameweek(now, settings.season_start)
        gameweeks[name] = gameweek
        try:
            fixtures = await _league_fixtures(session, league, gameweek, now=now)
        except Exception:
            log.exception("league_fixtures_failed league=%s", league)
            continue

        rates = rates_by_league.setdefault(name, {})
        for fixture in fixtures:
            try:
                scores.append(await _score_fixture(session, fixture, league, gameweek, window, rates, now=now))
            except Exception:
                failed_fixtures += 1
                log.exception("fixture_score_failed fixture=%s %s vs %s", fixture.id, fixture.home_team, fixture.away_team)

    picks = select_picks(scores, threshold)
    summary = summarize_picks(picks)

    teams = 0
    no_data_teams: list[str] = []
    for name, rates in rates_by_league.items():
        teams += await save_team_stats(session, name, rates.values())
        no_data_teams.extend(f"{name}:{r.team}" for r in rates.values() if not r.has_data)
    await save_picks(session, picks, now=now)
    await save_analysis(
        session,
        gameweeks=gameweeks,
        summary=summary,
        threshold=threshold,
        window_size=window,
        now=now,
    )
    await session.commit()

    out = {
        "fixtures": len(scores),
        "failed_fixtures": failed_fixtures,
        "picks": summary.total_picks,
        "average_confidence": summary.average_confidence,
        "teams": teams,
        "no_data_teams": no_data_teams,
        "gameweeks": gameweeks,
        "football_data": get_api_metrics(),
    }
    log.info(
        "build_btts_picks done fixtures=%s picks=%s avg_confidence=%s%% no_data_teams=%s",
        out["fixtures"],
        out["picks"],
        out["average_confidence"],
        len(no_data_teams),
    )
    return out
