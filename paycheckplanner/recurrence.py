"""Recurrence engine for projecting paychecks and due dates onto a window."""

import calendar
import logging
from collections.abc import Callable
from datetime import date

from dateutil.relativedelta import relativedelta

from . import constants
from .schema import IncomePeriod, IncomeSettings, income_period_id
from .types import Frequency

logger = logging.getLogger(__name__)


def step(frequency: Frequency) -> relativedelta:
    """Return the distance between two consecutive occurrences."""
    if frequency == Frequency.WEEKLY:
        return relativedelta(days=constants.WEEKLY_STEP_DAYS)
    if frequency == Frequency.BIWEEKLY:
        return relativedelta(days=constants.BIWEEKLY_STEP_DAYS)
    if frequency == Frequency.SEMIMONTHLY:
        return relativedelta(days=constants.SEMIMONTHLY_STEP_DAYS)
    if frequency == Frequency.MONTHLY:
        return relativedelta(months=constants.MONTHLY_STEP_MONTHS)
    raise ValueError(f"Unknown frequency: {frequency}")


def offset(anchor: date, frequency: Frequency, count: int) -> date:
    """Return the occurrence ``count`` steps away from ``anchor`` (negative = earlier).

    Offsets are computed from the anchor rather than chained, so a monthly
    anchor on the 31st lands on Feb 28/29 and returns to the 31st in March.
    """
    delta = step(frequency)
    return anchor + relativedelta(days=delta.days * count, months=delta.months * count)


def _two_way_walk(
    occurrence: Callable[[int], date],
    range_start: date,
    range_end: date,
) -> list[date]:
    """Walk backward from occurrence(0) until before range_start, then forward to range_end."""
    dates = []

    count = -1
    while True:
        current = occurrence(count)
        if current < range_start:
            break
        if current < range_end:
            dates.append(current)
        count -= 1

    count = 0
    while True:
        current = occurrence(count)
        if current >= range_end:
            break
        if current >= range_start:
            dates.append(current)
        count += 1

    return sorted(set(dates))


def project(
    anchor_date: date,
    frequency: Frequency,
    range_start: date,
    range_end: date,
) -> list[date]:
    """
    Project a recurring event onto the window ``[range_start, range_end)``.

    Args:
        anchor_date: Any known occurrence (usually the next pay date)
        frequency: Step between occurrences
        range_start: First date of the window (inclusive)
        range_end: End of the window (exclusive)

    Returns:
        Sorted, de-duplicated occurrence dates inside the window
    """
    if range_start >= range_end:
        return []
    frequency = Frequency(frequency)
    return _two_way_walk(
        lambda count: offset(anchor_date, frequency, count),
        range_start,
        range_end,
    )


def clamp_day(year: int, month: int, day_of_month: int) -> date:
    """Build a date, clamping day_of_month to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last_day))


def next_due_date(day_of_month: int, from_date: date) -> date:
    """Return the first date on/after from_date that falls on day_of_month (clamped)."""
    candidate = clamp_day(from_date.year, from_date.month, day_of_month)
    if candidate < from_date:
        following = from_date.replace(day=1) + relativedelta(months=1)
        candidate = clamp_day(following.year, following.month, day_of_month)
    return candidate


def monthly_due_dates(
    day_of_month: int,
    today: date,
    range_start: date,
    range_end: date,
) -> list[date]:
    """
    Due dates for a day-of-month obligation covering ``[range_start, range_end)``.

    Starts from the next occurrence on/after ``today`` and walks whole months in
    both directions. The day is clamped per month, so a 31st due day yields
    Feb 28/29 without drifting later months.
    """
    if range_start >= range_end:
        return []
    anchor = next_due_date(day_of_month, today)
    first_of_anchor_month = anchor.replace(day=1)

    def occurrence(count: int) -> date:
        month = first_of_anchor_month + relativedelta(months=count)
        return clamp_day(month.year, month.month, day_of_month)

    return _two_way_walk(occurrence, range_start, range_end)


class RecurrenceEngine:
    """Projects income settings into concrete income periods."""

    def project_income(
        self,
        settings: IncomeSettings,
        start_date: date,
        end_date: date,
    ) -> list[IncomePeriod]:
        """
        Generate income periods for one paycheck source within a date range.

        Args:
            settings: Paycheck source with anchor date and frequency
            start_date: Start of date range (inclusive)
            end_date: End of date range (exclusive)

        Returns:
            Income periods in chronological order
        """
        dates = project(settings.next_date, settings.frequency, start_date, end_date)
        logger.debug(
            "Projected %d paychecks for %s (%s) between %s and %s",
            len(dates),
            settings.id,
            settings.frequency.value,
            start_date,
            end_date,
        )
        return [
            IncomePeriod(
                id=income_period_id(settings.id, pay_date),
                source_id=settings.id,
                source_name=settings.name,
                amount=settings.net_amount,
                date=pay_date,
                frequency=settings.frequency,
            )
            for pay_date in dates
        ]

    def project_all_income(
        self,
        income: list[IncomeSettings],
        start_date: date,
        end_date: date,
    ) -> list[IncomePeriod]:
        """Project every income source and merge them chronologically."""
        periods: list[IncomePeriod] = []
        for settings in income:
            periods.extend(self.project_income(settings, start_date, end_date))
        return sorted(periods, key=lambda p: (p.date, p.source_id))
