"""American odds helpers used by runline picks."""

from decimal import Decimal

import pytest

from picksboard.services.odds_utils import american_to_decimal, determine_underdog, win_profit


class TestDetermineUnderdog:
    def test_both_negative_bigger_price_is_underdog(self):
        side = determine_underdog(-180, -140)
        assert side.is_home_underdog is True
        assert side.underdog_odds == -180
        assert side.favorite_odds == -140

    def test_both_positive_higher_is_underdog(self):
        side = determine_underdog(110, 135)
        assert side.is_home_underdog is False
        assert side.underdog_odds == 135

    def test_mixed_positive_side_is_underdog(self):
        assert determine_underdog(-150, 130).is_home_underdog is False
        assert determine_underdog(125, -145).is_home_underdog is True


class TestConversions:
    def test_american_to_decimal(self):
        assert american_to_decimal(-110) == Decimal("1.91")
        assert american_to_decimal(150) == Decimal("2.50")
        assert american_to_decimal(-200) == Decimal("1.50")

    def test_win_profit(self):
        assert win_profit(150, Decimal("10")) == Decimal("15.00")
        assert win_profit(-120, Decimal("12")) == Decimal("10.00")

    def test_zero_odds_rejected(self):
        with pytest.raises(ValueError):
            american_to_decimal(0)
        with pytest.raises(ValueError):
            win_profit(0)
