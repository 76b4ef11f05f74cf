"""Tests for the recurrence engine."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from paycheckplanner.recurrence import (
    RecurrenceEngine,
    monthly_due_dates,
    next_due_date,
    project,
    step,
)
from paycheckplanner.types import Frequency
from tests.conftest import make_income


class TestStep:
    """Tests for frequency steps."""

    @pytest.mark.parametrize(
        ("frequency", "days"),
        [
            (Frequency.WEEKLY, 7),
            (Frequency.BIWEEKLY, 14),
            (Frequency.SEMIMONTHLY, 15),
        ],
    )
    def test_fixed_day_steps(self, frequency, days):
        """Weekly, biweekly and semimonthly step by a fixed number of days."""
        assert date(2026, 1, 1) + step(frequency) == date(2026, 1, 1) + timedelta(days=days)

    def test_monthly_step_is_calendar_month(self):
        """Monthly steps one calendar month, clamped to month end."""
        assert date(2026, 1, 31) + step(Frequency.MONTHLY) == date(2026, 2, 28)

    def test_unknown_frequency_raises(self):
        """Unknown frequency strings are rejected."""
        with pytest.raises(ValueError):
            step("fortnightly")


class TestProject:
    """Tests for projecting occurrences onto a window."""

    def test_biweekly_walks_both_directions(self):
        """Occurrences before and after the anchor are included."""
        dates = project(date(2026, 10, 2), Frequency.BIWEEKLY, date(2026, 9, 1), date(2026, 11, 1))

        assert dates == [
            date(2026, 9, 4),
            date(2026, 9, 18),
            date(2026, 10, 2),
            date(2026, 10, 16),
            date(2026, 10, 30),
        ]

    def test_window_end_is_exclusive(self):
        """An occurrence on range_end is not returned."""
        dates = project(date(2026, 10, 2), Frequency.WEEKLY, date(2026, 10, 2), date(2026, 10, 9))
        assert dates == [date(2026, 10, 2)]

    def test_empty_window(self):
        """Empty or inverted windows produce no dates."""
        anchor = date(2026, 10, 2)
        assert project(anchor, Frequency.WEEKLY, date(2026, 10, 9), date(2026, 10, 9)) == []
        assert project(anchor, Frequency.WEEKLY, date(2026, 11, 1), date(2026, 10, 1)) == []

    def test_anchor_outside_window(self):
        """Anchor far before the window still projects into it."""
        dates = project(date(2025, 1, 3), Frequency.BIWEEKLY, date(2026, 10, 1), date(2026, 10, 31))
        assert dates
        assert all((d - date(2025, 1, 3)).days % 14 == 0 for d in dates)

    def test_monthly_anchor_on_31st_does_not_drift(self):
        """Day 31 clamps in short months and returns to 31 afterwards."""
        dates = project(date(2026, 1, 31), Frequency.MONTHLY, date(2026, 1, 1), date(2026, 5, 1))

        assert dates == [
            date(2026, 1, 31),
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
        ]

    def test_semimonthly_fixed_fifteen_days(self):
        """Semimonthly keeps a fixed 15-day step."""
        start = date(2026, 1, 1)
        dates = project(start, Frequency.SEMIMONTHLY, start, date(2026, 2, 16))

        assert dates == [date(2026, 1, 1), date(2026, 1, 16), date(2026, 1, 31), date(2026, 2, 15)]

    @pytest.mark.parametrize("frequency", [Frequency.WEEKLY, Frequency.BIWEEKLY])
    def test_window_coverage(self, frequency):
        """Consecutive dates differ by exactly one step and cover the window."""
        start, end = date(2026, 4, 17), date(2027, 1, 17)
        dates = project(date(2026, 10, 9), frequency, start, end)
        days = step(frequency).days

        assert all(start <= d < end for d in dates)
        assert all((b - a).days == days for a, b in zip(dates, dates[1:]))
        assert (dates[0] - start).days < days
        assert (end - dates[-1]).days <= days


class TestDueDates:
    """Tests for day-of-month due dates."""

    def test_next_due_date_later_this_month(self):
        assert next_due_date(20, date(2026, 10, 17)) == date(2026, 10, 20)

    def test_next_due_date_today(self):
        """A due date equal to today counts as next."""
        assert next_due_date(17, date(2026, 10, 17)) == date(2026, 10, 17)

    def test_next_due_date_rolls_to_next_month(self):
        assert next_due_date(15, date(2026, 10, 17)) == date(2026, 11, 15)

    def test_next_due_date_clamps_to_month_end(self):
        """Day 31 in February clamps to the last day."""
        assert next_due_date(31, date(2026, 2, 10)) == date(2026, 2, 28)

    def test_monthly_due_dates_span_window(self):
        """Due dates before and after today are generated."""
        dates = monthly_due_dates(15, date(2026, 10, 17), date(2026, 10, 1), date(2027, 1, 1))
        assert dates == [date(2026, 10, 15), date(2026, 11, 15), date(2026, 12, 15)]

    def test_monthly_due_dates_clamp_each_month(self):
        dates = monthly_due_dates(31, date(2026, 1, 15), date(2026, 1, 1), date(2026, 4, 1))
        assert dates == [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31)]


class TestRecurrenceEngine:
    """Tests for projecting income settings into periods."""

    def test_project_income_builds_periods(self):
        """Periods carry source, amount and a stable id."""
        engine = RecurrenceEngine()
        periods = engine.project_income(make_income(), date(2026, 10, 1), date(2026, 11, 1))

        assert [p.date for p in periods] == [date(2026, 10, 9), date(2026, 10, 23)]
        assert periods[0].id == "paycheck:2026-10-09"
        assert all(p.amount == Decimal("2000") for p in periods)
        assert all(p.source_name == "Employer" for p in periods)

    def test_project_all_income_merges_sources(self):
        """Multiple sources are merged chronologically."""
        engine = RecurrenceEngine()
        income = [
            make_income("spouse", "1500", Frequency.MONTHLY, date(2026, 10, 15)),
            make_income("paycheck"),
        ]
        periods = engine.project_all_income(income, date(2026, 10, 1), date(2026, 11, 1))

        assert [(p.date, p.source_id) for p in periods] == [
            (date(2026, 10, 9), "paycheck"),
            (date(2026, 10, 15), "spouse"),
            (date(2026, 10, 23), "paycheck"),
        ]
