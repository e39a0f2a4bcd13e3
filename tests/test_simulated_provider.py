from datetime import datetime, timezone

from picksboard.data.providers.simulated import simulated_fixtures, simulated_matches
from picksboard.services.recency import team_rate

NOW = datetime(2024, 10, 1, 12, tzinfo=timezone.utc)


def test_matches_are_deterministic_and_recent_first():
    a = simulated_matches("Arsenal", "premier-league", 10, now=NOW)
    b = simulated_matches("Arsenal", "Premier League", 10, now=NOW)
    assert a == b
    assert len(a) == 10
    assert all(x.date > y.date for x, y in zip(a, a[1:]))
    assert all(m.btts == (m.home_score > 0 and m.away_score > 0) for m in a)
    assert 0.0 <= team_rate(a) <= 1.0


def test_fixtures_pair_league_teams():
    fixtures = simulated_fixtures("championship", 9, now=NOW)
    assert len(fixtures) == 7
    assert fixtures[0].id == "champ-sim-9-1"
    assert fixtures[0].league == "Championship"
    assert all(f.kickoff > NOW for f in fixtures)
    assert all(f.gameweek == 9 for f in fixtures)
    assert simulated_fixtures("la-liga", 9, now=NOW) == []
