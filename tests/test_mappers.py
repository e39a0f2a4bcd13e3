from datetime import datetime, timezone

from picksboard.data.mappers import (
    both_teams_scored,
    league_name,
    league_slug,
    map_fixture,
    map_team_match,
    normalize_status,
)


def test_normalize_status_upcoming_and_live():
    assert normalize_status("SCHEDULED") == "upcoming"
    assert normalize_status("TIMED") == "upcoming"
    assert normalize_status("IN_PLAY") == "live"
    assert normalize_status("PAUSED") == "live"


def test_normalize_status_finished_and_other():
    assert normalize_status("FINISHED") == "finished"
    assert normalize_status("AWARDED") == "finished"
    assert normalize_status("POSTPONED") == "postponed"
    assert normalize_status("CANCELLED") == "cancelled"
    assert normalize_status(None) == "unknown"
    assert normalize_status("???") == "unknown"


def test_league_slug_and_name():
    assert league_slug("Premier League") == "premier-league"
    assert league_slug("championship") == "championship"
    assert league_name("premier-league") == "Premier League"
    assert league_name("Championship") == "Championship"
    assert league_name("Eredivisie") == "Eredivisie"


def test_both_teams_scored():
    assert both_teams_scored(1, 1)
    assert not both_teams_scored(2, 0)
    assert not both_teams_scored(None, 3)


def test_map_fixture():
    raw = {
        "id": 4421,
        "utcDate": "2024-08-17T14:00:00Z",
        "status": "TIMED",
        "matchday": 1,
        "venue": "Emirates Stadium",
        "homeTeam": {"id": 57, "name": "Arsenal FC"},
        "awayTeam": {"id": 39, "name": "Wolverhampton Wanderers FC"},
    }
    fixture = map_fixture(raw, "premier-league")
    assert fixture.id == "pl-4421"
    assert fixture.league == "Premier League"
    assert fixture.home_team == "Arsenal FC"
    assert fixture.kickoff == datetime(2024, 8, 17, 14, tzinfo=timezone.utc)
    assert fixture.gameweek == 1
    assert fixture.status == "upcoming"
    assert fixture.venue == "Emirates Stadium"


def test_map_team_match():
    raw = {
        "utcDate": "2024-09-01T15:30:00Z",
        "homeTeam": {"name": "Leeds United FC"},
        "awayTeam": {"name": "Hull City AFC"},
        "score": {"fullTime": {"home": 2, "away": 1}},
    }
    match = map_team_match(raw)
    assert match.btts is True
    assert match.home_score == 2


def test_map_team_match_missing_score_counts_as_nil():
    match = map_team_match({"score": {"fullTime": {"home": None, "away": 2}}})
    assert match.home_score == 0
    assert match.btts is False
