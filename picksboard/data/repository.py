from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.types import DateTime as SADateTime, String as SAString

from picksboard.core.logger import get_logger
from picksboard.services.recency import TeamRate
from picksboard.services.selection import Pick, PickSummary

log = get_logger("repository")


def _pick_row(pick: Pick) -> dict:
    return {
        "fixture_id": pick.fixture_id,
        "league": pick.league,
        "gameweek": pick.gameweek,
        "home_team": pick.home_team,
        "away_team": pick.away_team,
        "home_team_rate": pick.home_rate,
        "away_team_rate": pick.away_rate,
        "home_sample_size": pick.home_sample_size,
        "away_sample_size": pick.away_sample_size,
        "probability": pick.probability,
        "confidence": pick.confidence_percent,
        "pick_rank": pick.rank,
        "kickoff_time": pick.kickoff,
        "match_date": pick.kickoff.date() if pick.kickoff else None,
        "venue": pick.venue,
    }


async def save_picks(session: AsyncSession, picks: Iterable[Pick], *, now: datetime) -> int:
    """Replace upcoming picks with this cycle's picks."""
    await session.execute(
        text("DELETE FROM btts_picks WHERE kickoff_time IS NULL OR kickoff_time >= :now").bindparams(
            bindparam("now", type_=SADateTime(timezone=True))
        ),
        {"now": now},
    )
    rows = [_pick_row(p) for p in picks]
    if not rows:
        return 0
    await session.execute(
        text(
            """
            INSERT INTO btts_picks(
              fixture_id, league, gameweek, home_team, away_team,
              home_team_rate, away_team_rate, home_sample_size, away_sample_size,
              probability, confidence, pick_rank, kickoff_time, match_date, venue
            )
            VALUES(
              :fixture_id, :league, :gameweek, :home_team, :away_team,
              :home_team_rate, :away_team_rate, :home_sample_size, :away_sample_size,
              :probability, :confidence, :pick_rank, :kickoff_time, :match_date, :venue
            )
            ON CONFLICT (fixture_id) DO UPDATE SET
              home_team_rate=EXCLUDED.home_team_rate,
              away_team_rate=EXCLUDED.away_team_rate,
              home_sample_size=EXCLUDED.home_sample_size,
              away_sample_size=EXCLUDED.away_sample_size,
              probability=EXCLUDED.probability,
              confidence=EXCLUDED.confidence,
              pick_rank=EXCLUDED.pick_rank,
              kickoff_time=EXCLUDED.kickoff_time,
              match_date=EXCLUDED.match_date,
              venue=EXCLUDED.venue,
              created_at=now()
            """
        ),
        rows,
    )
    return len(rows)


async def load_picks(
    session: AsyncSession,
    *,
    league: Optional[str] = None,
    since: Optional[datetime] = None,
    limit: int = 50,
) -> list[dict]:
    stmt = text(
        """
        SELECT fixture_id, league, gameweek, home_team, away_team,
               home_team_rate, away_team_rate, home_sample_size, away_sample_size,
               probability, confidence, pick_rank, kickoff_time, match_date, venue, created_at
        FROM btts_picks
        WHERE (:league IS NULL OR league = :league)
          AND (:since IS NULL OR kickoff_time >= :since)
        ORDER BY probability DESC, pick_rank ASC, id ASC
        LIMIT :lim
        """
    ).bindparams(
        bindparam("league", type_=SAString),
        bindparam("since", type_=SADateTime(timezone=True)),
    )
    res = await session.execute(stmt, {"league": league, "since": since, "lim": int(limit)})
    return [dict(r._mapping) for r in res.fetchall()]


async def save_team_stats(session: AsyncSession, league: str, rates: Iterable[TeamRate]) -> int:
    rows = [
        {"team_name": r.team, "league": league, "rate": r.rate, "sample_size": r.sample_size}
        for r in rates
    ]
    if not rows:
        return 0
    await session.execute(
        text(
            """
            INSERT INTO team_btts_stats(team_name, league, recency_weighted_rate, sample_size, updated_at)
            VALUES(:team_name, :league, :rate, :sample_size, now())
            ON CONFLICT (team_name, league)
            DO UPDATE SET recency_weighted_rate=EXCLUDED.recency_weighted_rate,
                          sample_size=EXCLUDED.sample_size,
                          updated_at=now()
            """
        ),
        rows,
    )
    return len(rows)


async def load_team_stats(session: AsyncSession, *, league: Optional[str] = None) -> list[dict]:
    stmt = text(
        """
        SELECT team_name, league, recency_weighted_rate, sample_size, updated_at
        FROM team_btts_stats
        WHERE (:league IS NULL OR league = :league)
        ORDER BY recency_weighted_rate DESC, team_name ASC
        """
    ).bindparams(bindparam("league", type_=SAString))
    res = await session.execute(stmt, {"league": league})
    return [dict(r._mapping) for r in res.fetchall()]


async def save_analysis(
    session: AsyncSession,
    *,
    gameweeks: dict[str, int],
    summary: PickSummary,
    threshold: float,
    window_size: int,
    now: datetime,
) -> None:
    await session.execute(
        text(
            """
            INSERT INTO btts_analysis(
              premier_league_gameweek, championship_gameweek, gameweeks,
              total_picks, average_confidence, threshold, window_size, last_updated
            )
            VALUES(:pl_gw, :champ_gw, CAST(:gws AS jsonb), :total, :avg, :threshold, :window, :now)
            """
        ).bindparams(bindparam("now", type_=SADateTime(timezone=True))),
        {
            "pl_gw": gameweeks.get("Premier League"),
            "champ_gw": gameweeks.get("Championship"),
            "gws": json.dumps(gameweeks, ensure_ascii=False),
            "total": summary.total_picks,
            "avg": summary.average_confidence,
            "threshold": float(threshold),
            "window": int(window_size),
            "now": now,
        },
    )


async def load_latest_analysis(session: AsyncSession) -> dict | None:
    res = await session.execute(
        text(
            """
            SELECT premier_league_gameweek, championship_gameweek, gameweeks,
                   total_picks, average_confidence, threshold, window_size, last_updated
            FROM btts_analysis
            ORDER BY last_updated DESC, id DESC
            LIMIT 1
            """
        )
    )
    row = res.first()
    if not row:
        return None
    out = dict(row._mapping)
    if isinstance(out.get("gameweeks"), str):
        out["gameweeks"] = json.loads(out["gameweeks"])
    return out


async def job_run_start(session: AsyncSession, job_name: str, triggered_by: str | None, meta: Optional[dict] = None) -> int | None:
    try:
        res = await session.execute(
            text(
                """
                INSERT INTO job_runs(job_name, status, triggered_by, started_at, meta)
                VALUES(:job, 'running', :by, now(), CAST(:meta AS jsonb))
                RETURNING id
                """
            ),
            {"job": job_name, "by": triggered_by, "meta": json.dumps(meta or {})},
        )
        rid = res.scalar_one()
        await session.commit()
        return int(rid)
    except Exception:
        log.exception("job_runs_start_failed job=%s", job_name)
        await session.rollback()
        return None


async def job_run_finish(
    session: AsyncSession,
    run_id: int | None,
    status: str,
    error: str | None = None,
    meta: Optional[dict] = None,
) -> None:
    if run_id is None:
        return
    try:
        await session.execute(
            text(
                """
                UPDATE job_runs
                SET status=:status, finished_at=now(), error=:error,
                    meta = meta || CAST(:meta AS jsonb)
                WHERE id=:id
                """
            ),
            {"id": run_id, "status": status, "error": error, "meta": json.dumps(meta or {}, default=str)},
        )
        await session.commit()
    except Exception:
        log.exception("job_runs_finish_failed run_id=%s", run_id)
        await session.rollback()
