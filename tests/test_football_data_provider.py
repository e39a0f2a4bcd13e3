import asyncio
from datetime import datetime, timezone

import httpx
import pytest

import picksboard.data.providers.football_data as football_data
from picksboard.core.errors import FootballDataError

NOW = datetime(2024, 10, 1, 12, tzinfo=timezone.utc)

TEAMS = {
    "teams": [
        {"id": 57, "name": "Arsenal FC", "shortName": "Arsenal", "tla": "ARS"},
        {"id": 61, "name": "Chelsea FC", "shortName": "Chelsea", "tla": "CHE"},
    ]
}


def _match(day, home_goals, away_goals):
    return {
        "utcDate": f"2024-09-{day:02d}T15:00:00Z",
        "homeTeam": {"name": "Arsenal FC"},
        "awayTeam": {"name": "Opponent"},
        "score": {"fullTime": {"home": home_goals, "away": away_goals}},
    }


@pytest.fixture()
def fake_api(monkeypatch):
    """MockTransport in place of the shared client, and a dict in place of api_cache."""
    requests = []
    cache = {}
    routes = {}

    def handler(request):
        requests.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found", "errorCode": 404}, request=request)
        status, body = route
        return httpx.Response(status, json=body, request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://football.test/v4")

    async def fake_get_cached(_session, key):
        return cache.get(key)

    async def fake_set_cached(_session, key, payload, ttl_seconds):
        if ttl_seconds > 0:
            cache[key] = payload

    async def fast_retries(client_, method, url, **kwargs):
        kwargs.setdefault("retries", 0)
        return await original_retries(client_, method, url, **kwargs)

    original_retries = football_data.request_with_retries
    monkeypatch.setattr(football_data, "football_data_client", lambda: client)
    monkeypatch.setattr(football_data, "get_cached_payload", fake_get_cached)
    monkeypatch.setattr(football_data, "set_cached_payload", fake_set_cached)
    monkeypatch.setattr(football_data, "request_with_retries", fast_retries)
    return {"routes": routes, "requests": requests, "cache": cache}


def test_upcoming_fixtures_filters_and_maps(fake_api):
    fake_api["routes"]["/v4/competitions/PL/matches"] = (
        200,
        {
            "matches": [
                {"id": 1, "utcDate": "2024-10-05T14:00:00Z", "status": "TIMED", "matchday": 7,
                 "homeTeam": {"name": "Arsenal FC"}, "awayTeam": {"name": "Chelsea FC"}},
                {"id": 2, "utcDate": "2024-10-05T16:30:00Z", "status": "POSTPONED", "matchday": 7,
                 "homeTeam": {"name": "Everton FC"}, "awayTeam": {"name": "Fulham FC"}},
            ]
        },
    )
    fixtures = asyncio.run(football_data.get_upcoming_fixtures(None, "premier-league", "2024-25"))

    assert [f.id for f in fixtures] == ["pl-1"]
    request = fake_api["requests"][0]
    assert request.url.params["status"] == "SCHEDULED"
    assert request.url.params["season"] == "2024"


def test_recent_matches_most_recent_first_and_limited(fake_api):
    fake_api["routes"]["/v4/competitions/PL/teams"] = (200, TEAMS)
    fake_api["routes"]["/v4/teams/57/matches"] = (
        200,
        {"matches": [_match(1, 1, 1), _match(22, 2, 0), _match(15, 3, 2), _match(8, 0, 0)]},
    )
    matches = asyncio.run(football_data.fetch_recent_matches(None, "Arsenal", "premier-league", limit=3, now=NOW))

    assert [m.date.day for m in matches] == [22, 15, 8]
    assert [m.btts for m in matches] == [False, True, False]
    params = fake_api["requests"][-1].url.params
    assert params["status"] == "FINISHED"
    assert params["dateFrom"] == "2024-04-01"
    assert params["dateTo"] == "2024-10-01"


def test_responses_are_served_from_cache(fake_api):
    fake_api["routes"]["/v4/competitions/PL/teams"] = (200, TEAMS)
    football_data.reset_api_metrics()

    asyncio.run(football_data.find_team(None, "premier-league", "CHE"))
    team = asyncio.run(football_data.find_team(None, "premier-league", "chelsea"))

    assert team["id"] == 61
    assert len(fake_api["requests"]) == 1


def test_unknown_team_raises(fake_api):
    fake_api["routes"]["/v4/competitions/ELC/teams"] = (200, {"teams": []})
    with pytest.raises(FootballDataError):
        asyncio.run(football_data.find_team(None, "championship", "Nowhere Rovers"))


def test_http_error_raises_and_is_not_cached(fake_api):
    fake_api["routes"]["/v4/competitions/PL/matches"] = (403, {"message": "restricted", "errorCode": 403})
    with pytest.raises(FootballDataError) as exc:
        asyncio.run(football_data.get_upcoming_fixtures(None, "premier-league"))
    assert exc.value.status_code == 403
    assert fake_api["cache"] == {}


def test_unsupported_league():
    with pytest.raises(FootballDataError):
        football_data.league_code("eredivisie")


def test_parse_season():
    assert football_data.parse_season("2024-25") == "2024"
    assert football_data.parse_season(2023) == "2023"
    assert football_data.parse_season(None) is None
    assert football_data.parse_season("next") is None
