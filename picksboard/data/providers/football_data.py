import hashlib
import json
import re
from contextvars import ContextVar
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from picksboard.core.config import settings
from picksboard.core.errors import FootballDataError
from picksboard.core.http import football_data_client, request_with_retries
from picksboard.core.logger import get_logger
from picksboard.core.timeutils import months_ago, parse_utc, utcnow
from picksboard.data.mappers import (
    LEAGUE_CODES,
    Fixture,
    TeamMatch,
    league_slug,
    map_fixture,
    map_team_match,
)
from picksboard.data.providers.cache import get_cached_payload, set_cached_payload

log = get_logger("providers.football_data")
_api_metrics: ContextVar[dict] = ContextVar("football_data_metrics", default={})
_SEASON_RE = re.compile(r"^(\d{4})")


def reset_api_metrics() -> None:
    _api_metrics.set({"requests": 0, "cache_hits": 0, "cache_misses": 0, "errors": 0, "status": {}})


def get_api_metrics() -> dict:
    return dict(_api_metrics.get() or {})


def _inc_metric(status_code: int | None = None, *, cache_hit: bool | None = None, error: bool = False) -> None:
    cur = _api_metrics.get() or {}
    if not cur:
        # Not tracking for this context.
        return
    if cache_hit is not None:
        cur["requests"] = int(cur.get("requests", 0)) + 1
        key = "cache_hits" if cache_hit else "cache_misses"
        cur[key] = int(cur.get(key, 0)) + 1
    if error:
        cur["errors"] = int(cur.get("errors", 0)) + 1
    if status_code is not None:
        st = cur.get("status") or {}
        st[str(int(status_code))] = int(st.get(str(int(status_code)), 0)) + 1
        cur["status"] = st
    _api_metrics.set(cur)


def league_code(league: str) -> str:
    code = LEAGUE_CODES.get(league_slug(league))
    if not code:
        raise FootballDataError(f"Unsupported league: {league}")
    return code


def parse_season(season) -> str | None:
    """'2024-25' -> '2024'; None or unparseable -> None."""
    if season is None:
        return None
    m = _SEASON_RE.match(str(season).strip())
    return m.group(1) if m else None


def _make_key(path: str, params: dict) -> str:
    raw = "football-data|" + path + "|" + json.dumps(params, sort_keys=True, ensure_ascii=False)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


async def api_get(session: AsyncSession, path: str, params: dict, ttl_seconds: int) -> dict:
    key = _make_key(path, params)
    cached = await get_cached_payload(session, key)
    if cached is not None:
        _inc_metric(cache_hit=True)
        return cached
    _inc_metric(cache_hit=False)

    client = football_data_client()
    try:
        r = await request_with_retries(client, "GET", path, params=params)
        _inc_metric(status_code=r.status_code)
        if r.status_code >= 400:
            body = r.text[:300]
            raise FootballDataError(f"Football-Data.org error: {body}", status_code=r.status_code, endpoint=path)
        data = r.json()
    except Exception:
        _inc_metric(error=True)
        raise

    await set_cached_payload(session, key, data, ttl_seconds)
    return data


async def get_upcoming_fixtures(session: AsyncSession, league: str, season=None) -> list[Fixture]:
    code = league_code(league)
    params = {"status": "SCHEDULED"}
    season_year = parse_season(season)
    if season_year:
        params["season"] = season_year

    data = await api_get(
        session,
        f"/competitions/{code}/matches",
        params,
        ttl_seconds=settings.football_data_fixtures_ttl_seconds,
    )
    fixtures = [map_fixture(m, league) for m in (data.get("matches") or [])]
    upcoming = [f for f in fixtures if f.status == "upcoming"]
    log.info("football_data_fixtures league=%s total=%s upcoming=%s", league, len(fixtures), len(upcoming))
    return upcoming


def _match_team(teams: list[dict], team_name: str) -> dict | None:
    needle = (team_name or "").strip().lower()
    for t in teams:
        for field in ("name", "shortName", "tla"):
            if str(t.get(field) or "").lower() == needle:
                return t
    return None


async def find_team(session: AsyncSession, league: str, team_name: str) -> dict:
    if not (team_name or "").strip():
        raise FootballDataError("Missing team name")
    code = league_code(league)
    data = await api_get(
        session,
        f"/competitions/{code}/teams",
        {},
        ttl_seconds=settings.football_data_teams_ttl_seconds,
    )
    team = _match_team(data.get("teams") or [], team_name)
    if not team or not team.get("id"):
        raise FootballDataError(f"Team not found in {league}: {team_name}")
    return team


async def fetch_recent_matches(
    session: AsyncSession,
    team_name: str,
    league: str,
    limit: int = 10,
    *,
    now: datetime | None = None,
) -> list[TeamMatch]:
    """Finished matches of a team, most recent first, at most ``limit``."""
    team = await find_team(session, league, team_name)
    now = now or utcnow()
    params = {
        "status": "FINISHED",
        "dateFrom": months_ago(now, settings.football_data_history_months).isoformat(),
        "dateTo": now.date().isoformat(),
    }
    data = await api_get(
        session,
        f"/teams/{team['id']}/matches",
        params,
        ttl_seconds=settings.football_data_matches_ttl_seconds,
    )
    raw = list(data.get("matches") or [])
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    raw.sort(key=lambda m: parse_utc(m.get("utcDate")) or epoch, reverse=True)
    return [map_team_match(m) for m in raw[: max(0, int(limit))]]
