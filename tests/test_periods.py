"""
Tests for the calendar utilities.
"""

import pytest
from datetime import date

from finance_tracker.analytics.periods import (
    budget_key,
    days_in_month,
    end_of_month,
    iter_month_days,
    months_before,
    parse_budget_key,
    shift_month,
    start_of_month,
)


class TestMonthLength:
    """Tests for month lengths and boundaries."""

    def test_leap_year_february(self):
        """February has 29 days in a leap year."""
        assert days_in_month(2, 2024) == 29
        assert days_in_month(2, 2023) == 28

    def test_century_rule(self):
        """1900 is not a leap year, 2000 is."""
        assert days_in_month(2, 1900) == 28
        assert days_in_month(2, 2000) == 29

    def test_start_and_end_of_month(self):
        assert start_of_month(4, 2025) == date(2025, 4, 1)
        assert end_of_month(4, 2025) == date(2025, 4, 30)
        assert end_of_month(12, 2025) == date(2025, 12, 31)

    def test_iter_month_days_covers_every_day(self):
        days = list(iter_month_days(2, 2024))
        assert len(days) == 29
        assert days[0] == date(2024, 2, 1)
        assert days[-1] == date(2024, 2, 29)

    def test_invalid_month_rejected(self):
        """Month 0 and 13 are programming errors."""
        with pytest.raises(ValueError):
            days_in_month(13, 2025)
        with pytest.raises(ValueError):
            start_of_month(0, 2025)


class TestShiftMonth:
    """Tests for (month, year) arithmetic."""

    def test_january_minus_one_is_previous_december(self):
        assert shift_month(1, 2024, -1) == (12, 2023)

    def test_december_plus_one_is_next_january(self):
        assert shift_month(12, 2024, 1) == (1, 2025)

    def test_multi_year_shift(self):
        assert shift_month(3, 2025, -27) == (12, 2022)

    def test_zero_shift(self):
        assert shift_month(7, 2025, 0) == (7, 2025)

    def test_months_before_clamps_day(self):
        """31 March minus one month is the last day of February."""
        assert months_before(date(2024, 3, 31), 1) == date(2024, 2, 29)
        assert months_before(date(2025, 3, 31), 1) == date(2025, 2, 28)

    def test_months_before_keeps_day_when_possible(self):
        assert months_before(date(2025, 5, 15), 5) == date(2024, 12, 15)


class TestBudgetKey:
    """Tests for the MM-YYYY budget key."""

    def test_month_is_zero_padded(self):
        assert budget_key(3, 2025) == "03-2025"
        assert budget_key(11, 2025) == "11-2025"

    def test_parse_is_inverse(self):
        assert parse_budget_key("03-2025") == (3, 2025)

    @pytest.mark.parametrize("key", ["3-2025", "2025-03", "13-2025", "ab-2025", "03/2025", ""])
    def test_malformed_keys_rejected(self, key):
        with pytest.raises(ValueError):
            parse_budget_key(key)
