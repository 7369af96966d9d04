"""
Unit tests for recurring due date projection
"""

import calendar
from datetime import date

import pytest

from spendwise.services.recurring import clamp_to_month, due_dates_up_to, next_due_date


def _month_index(value: date) -> int:
    return value.year * 12 + value.month


class TestClampToMonth:
    """Test due-day clamping"""

    def test_day_within_month_is_kept(self):
        """Test a day that exists in the month"""
        assert clamp_to_month(date(2023, 4, 2), 17) == date(2023, 4, 17)

    def test_day_31_in_february(self):
        """Test clamping to the last day of February"""
        assert clamp_to_month(date(2023, 2, 1), 31) == date(2023, 2, 28)
        assert clamp_to_month(date(2024, 2, 1), 31) == date(2024, 2, 29)

    def test_day_31_in_thirty_day_month(self):
        assert clamp_to_month(date(2023, 9, 30), 31) == date(2023, 9, 30)


class TestNextDueDate:
    """Test the first due date after a watermark"""

    def test_without_watermark_uses_current_month(self):
        """Test a template that has never been materialized"""
        assert next_due_date(None, 10, date(2024, 3, 15)) == date(2024, 3, 10)

    def test_with_watermark_moves_one_month(self):
        assert next_due_date(date(2024, 1, 5), 5, date(2024, 3, 15)) == date(2024, 2, 5)

    def test_reclamps_to_nominal_day(self):
        """Test that a clamped watermark does not pin later months"""
        assert next_due_date(date(2023, 2, 28), 31, date(2023, 12, 1)) == date(2023, 3, 31)

    @pytest.mark.parametrize("due_day", [0, 32, -1])
    def test_invalid_due_day(self, due_day):
        with pytest.raises(ValueError):
            next_due_date(None, due_day, date(2024, 3, 15))


class TestDueDatesUpTo:
    """Test the due date sequence"""

    def test_day_31_clamps_then_recovers(self):
        """Test Jan 31 -> Feb 28 -> Mar 31 in a non-leap year"""
        dates = list(due_dates_up_to(date(2023, 1, 31), 31, date(2023, 3, 31)))
        assert dates == [date(2023, 2, 28), date(2023, 3, 31)]

    def test_day_31_leap_year(self):
        dates = list(due_dates_up_to(date(2024, 1, 31), 31, date(2024, 2, 29)))
        assert dates == [date(2024, 2, 29)]

    def test_day_30_through_february(self):
        dates = list(due_dates_up_to(date(2023, 1, 30), 30, date(2023, 4, 30)))
        assert dates == [date(2023, 2, 28), date(2023, 3, 30), date(2023, 4, 30)]

    def test_three_month_catch_up(self):
        """Test a template dormant for three months"""
        dates = list(due_dates_up_to(date(2023, 12, 5), 5, date(2024, 3, 15)))
        assert dates == [date(2024, 1, 5), date(2024, 2, 5), date(2024, 3, 5)]

    def test_due_today_is_included(self):
        assert list(due_dates_up_to(None, 15, date(2024, 3, 15))) == [date(2024, 3, 15)]

    def test_nothing_due_yet(self):
        """Test a due day later in the current month"""
        assert list(due_dates_up_to(None, 20, date(2024, 3, 15))) == []

    def test_watermark_in_current_month(self):
        assert list(due_dates_up_to(date(2024, 3, 5), 5, date(2024, 3, 31))) == []

    def test_sequence_is_lazy(self):
        dates = due_dates_up_to(date(2000, 1, 1), 1, date(2024, 3, 15))
        assert next(dates) == date(2000, 2, 1)
        assert next(dates) == date(2000, 3, 1)

    def test_deterministic(self):
        """Test identical inputs give identical sequences"""
        args = (date(2022, 11, 30), 31, date(2023, 6, 1))
        assert list(due_dates_up_to(*args)) == list(due_dates_up_to(*args))

    def test_invalid_due_day(self):
        with pytest.raises(ValueError):
            list(due_dates_up_to(None, 32, date(2024, 3, 15)))

    def test_projection_properties_for_every_due_day(self):
        """Test clamping, ordering and bounds across all due days and watermarks"""
        today = date(2025, 1, 15)
        watermarks = []
        for year in (2023, 2024):
            for month in range(1, 13):
                last_day = calendar.monthrange(year, month)[1]
                watermarks.append(date(year, month, 1))
                watermarks.append(date(year, month, last_day))

        for due_day in range(1, 32):
            for watermark in watermarks:
                dates = list(due_dates_up_to(watermark, due_day, today))
                for offset, value in enumerate(dates):
                    days_in_month = calendar.monthrange(value.year, value.month)[1]
                    assert value.day == min(due_day, days_in_month)
                    assert value <= today
                    # one entry per month, starting the month after the watermark
                    assert _month_index(value) == _month_index(watermark) + 1 + offset
