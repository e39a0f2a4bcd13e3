from __future__ import annotations

from datetime import date, datetime

from picksboard.core.timeutils import ensure_aware_utc

MIN_GAMEWEEK = 1
MAX_GAMEWEEK = 38


def current_gameweek(now: datetime, season_start: date, max_gameweek: int = MAX_GAMEWEEK) -> int:
    """Whole weeks since season start, 1-based and clamped to [1, max_gameweek]."""
    today = ensure_aware_utc(now).date()
    weeks_passed = (today - season_start).days // 7
    return max(MIN_GAMEWEEK, min(max_gameweek, weeks_passed + 1))
