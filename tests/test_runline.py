from datetime import date
from decimal import Decimal

import pytest

from picksboard.core.errors import InvalidArgument
from picksboard.services.runline import (
    AWAY_RUNLINE,
    HOME_RUNLINE,
    LOST,
    MAX_CONFIDENCE,
    PENDING,
    WON,
    RunlineTeamStats,
    RunlineGame,
    analyze_game,
    analyze_runline_slate,
    day_of_week_bonus,
    lookup_team_stats,
    rank_runline_picks,
    settle_pick,
    summarize_results,
)

DAY = date(2024, 6, 6)

STATS = {
    "Houston Astros": RunlineTeamStats("Houston Astros", runline_rate=68.0, home_rate=70.0, away_rate=64.0, recent_form=70.0),
    "Tampa Bay Rays": RunlineTeamStats("Tampa Bay Rays", runline_rate=66.0, home_rate=66.0, away_rate=62.0),
    "Colorado Rockies": RunlineTeamStats("Colorado Rockies", runline_rate=50.0, home_rate=52.0, away_rate=48.0),
    "Atlanta Braves": RunlineTeamStats("Atlanta Braves", runline_rate=90.0, home_rate=90.0, away_rate=92.0, recent_form=80.0),
}


def test_lookup_matches_partial_names():
    assert lookup_team_stats("Houston", STATS).team == "Houston Astros"
    assert lookup_team_stats("tampa bay rays", STATS).team == "Tampa Bay Rays"
    assert lookup_team_stats("Seattle Mariners", STATS) is None
    assert lookup_team_stats("", STATS) is None


def test_home_underdog_uses_home_rate_and_form():
    pick = analyze_game("Houston Astros", "Colorado Rockies", True, -165, STATS, on_date=DAY)
    # 70 + (70 - 60) * 0.3
    assert pick.confidence == pytest.approx(73.0)
    assert pick.recommended_bet == HOME_RUNLINE
    assert pick.status == PENDING
    assert pick.id == "Houston Astros-Colorado Rockies-2024-06-06"


def test_road_underdog_gets_bonus():
    pick = analyze_game("Colorado Rockies", "Tampa Bay Rays", False, -150, STATS, on_date=DAY)
    assert pick.confidence == pytest.approx(67.0)
    assert pick.recommended_bet == AWAY_RUNLINE


def test_below_threshold_or_unknown_team_is_skipped():
    assert analyze_game("Colorado Rockies", "Houston Astros", True, -150, STATS, on_date=DAY) is None
    assert analyze_game("Seattle Mariners", "Houston Astros", True, -150, STATS, on_date=DAY) is None
    # 67 clears 0.65 but not 0.70
    assert analyze_game("Colorado Rockies", "Tampa Bay Rays", False, -150, STATS, threshold=0.70, on_date=DAY) is None


def test_confidence_is_capped():
    pick = analyze_game("Colorado Rockies", "Atlanta Braves", False, -120, STATS, on_date=DAY)
    assert pick.confidence == MAX_CONFIDENCE


def test_invalid_threshold():
    with pytest.raises(InvalidArgument):
        analyze_game("Houston Astros", "Colorado Rockies", True, -165, STATS, threshold=1.5)


def test_rank_runline_picks():
    a = analyze_game("Colorado Rockies", "Tampa Bay Rays", False, -150, STATS, on_date=DAY)
    b = analyze_game("Houston Astros", "Colorado Rockies", True, -165, STATS, on_date=DAY)
    assert rank_runline_picks([a, b]) == [b, a]
    assert rank_runline_picks([a, b], threshold=0.7) == [b]


def test_day_of_week_bonus():
    assert day_of_week_bonus(date(2024, 6, 6)) == 3  # Thursday
    assert day_of_week_bonus(date(2024, 6, 8)) == 4  # Saturday
    assert day_of_week_bonus(date(2024, 6, 10)) == 0


def test_settle_pick():
    pick = analyze_game("Houston Astros", "Colorado Rockies", True, 120, STATS, on_date=DAY)
    lost_by_one = settle_pick(pick, 3, 4, Decimal("10"))
    assert lost_by_one.status == WON
    assert lost_by_one.profit == Decimal("12.00")
    assert lost_by_one.score_difference == -1

    lost_by_two = settle_pick(pick, 2, 4, Decimal("10"))
    assert lost_by_two.status == LOST
    assert lost_by_two.profit == Decimal("-10.00")


def test_summarize_results():
    pick = analyze_game("Houston Astros", "Colorado Rockies", True, 100, STATS, on_date=DAY)
    history = [
        settle_pick(pick, 1, 5),
        settle_pick(pick, 5, 1),
        settle_pick(pick, 4, 4),
        pick,
    ]
    results = summarize_results(history)
    assert results.total_picks == 3
    assert results.won_picks == 2
    assert results.lost_picks == 1
    assert results.win_rate == pytest.approx(200 / 3)
    assert results.total_profit == Decimal("1.00")
    assert results.streak_type == "win"
    assert results.streak_count == 2


def test_summarize_results_empty():
    results = summarize_results([])
    assert results.total_picks == 0
    assert results.win_rate == 0.0
    assert results.streak_count == 0


def test_default_threshold_comes_from_settings(monkeypatch):
    from picksboard.services import runline

    monkeypatch.setattr(runline.settings, "runline_confidence_threshold", 0.70)
    assert analyze_game("Colorado Rockies", "Tampa Bay Rays", False, -150, STATS, on_date=DAY) is None

    monkeypatch.setattr(runline.settings, "runline_confidence_threshold", 0.60)
    assert analyze_game("Colorado Rockies", "Tampa Bay Rays", False, -150, STATS, on_date=DAY) is not None


SLATE = [
    RunlineGame("Colorado Rockies", "Tampa Bay Rays", home_odds=-150, away_odds=130),
    RunlineGame("Houston Astros", "Colorado Rockies", home_odds=120, away_odds=-140, home_pitcher="Valdez"),
    RunlineGame("Seattle Mariners", "Texas Rangers", home_odds=-110, away_odds=-110),
]


def test_analyze_runline_slate_uses_underdog_prices():
    picks = analyze_runline_slate(SLATE, STATS, threshold=0.65, on_date=DAY)

    assert [p.home_team for p in picks] == ["Houston Astros", "Colorado Rockies"]
    houston, tampa = picks
    assert houston.recommended_bet == HOME_RUNLINE
    assert houston.odds == 120
    assert houston.home_pitcher == "Valdez"
    assert tampa.recommended_bet == AWAY_RUNLINE
    assert tampa.odds == 130


def test_analyze_runline_slate_default_threshold(monkeypatch):
    from picksboard.services import runline

    monkeypatch.setattr(runline.settings, "runline_confidence_threshold", 0.70)
    picks = analyze_runline_slate(SLATE, STATS, on_date=DAY)
    assert [p.home_team for p in picks] == ["Houston Astros"]
