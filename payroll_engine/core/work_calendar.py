"""Working-day resolution for a month given weekends, holidays and overrides."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Mapping

from payroll_engine.core.schema import Holiday, HolidayType, WorkCalendarOverride, WorkingDaysSummary
from payroll_engine.core.validation import validate_year_month


def override_key(year: int, month: int) -> str:
    return f"{year}_{month:02d}"


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def _holiday_date_for_year(holiday: Holiday, year: int) -> date | None:
    if not holiday.is_recurring:
        return holiday.date if holiday.date.year == year else None
    try:
        return holiday.date.replace(year=year)
    except ValueError:
        # Feb 29 recurring holiday in a non-leap year
        return None


def holiday_map(holidays: Iterable[Holiday], year: int, month: int | None = None) -> dict[date, Holiday]:
    """Map each matching calendar date to its holiday.

    Recurring holidays match by month/day in any year; one-off holidays match by
    exact date.  When two holidays share a date the regular one wins.
    """

    mapping: dict[date, Holiday] = {}
    for holiday in holidays:
        when = _holiday_date_for_year(holiday, year)
        if when is None or (month is not None and when.month != month):
            continue
        current = mapping.get(when)
        if current is None or (current.type != HolidayType.REGULAR and holiday.type == HolidayType.REGULAR):
            mapping[when] = holiday
    return mapping


@dataclass(frozen=True, slots=True)
class MonthCalendar:
    year: int
    month: int
    weekends: frozenset[int]
    holidays: Mapping[date, Holiday]
    override: WorkCalendarOverride

    def is_working_day(self, day: date) -> bool:
        weekend = day.day in self.weekends
        if weekend:
            return day.day in self.override.working_weekend_days
        return day not in self.holidays and day.day not in self.override.no_work_days

    def holiday_on(self, day: date) -> Holiday | None:
        return self.holidays.get(day)


class WorkCalendar:
    """Resolves working days from holiday records and per-month overrides."""

    def __init__(
        self,
        holidays: Iterable[Holiday] = (),
        overrides: Mapping[str, WorkCalendarOverride] | None = None,
    ) -> None:
        self._holidays = list(holidays)
        self._overrides = dict(overrides or {})

    def override_for(self, year: int, month: int) -> WorkCalendarOverride:
        existing = self._overrides.get(override_key(year, month))
        return existing or WorkCalendarOverride(year=year, month=month)

    def month(self, year: int, month: int) -> MonthCalendar:
        validate_year_month(year, month)
        last_day = calendar.monthrange(year, month)[1]
        weekends = frozenset(day for day in range(1, last_day + 1) if is_weekend(date(year, month, day)))
        return MonthCalendar(
            year=year,
            month=month,
            weekends=weekends,
            holidays=holiday_map(self._holidays, year, month),
            override=self.override_for(year, month),
        )

    def is_working_day(self, day: date) -> bool:
        return self.month(day.year, day.month).is_working_day(day)

    def holiday_on(self, day: date) -> Holiday | None:
        return holiday_map(self._holidays, day.year, day.month).get(day)

    def working_days(self, year: int, month: int, *, include_annual: bool = False) -> WorkingDaysSummary:
        month_calendar = self.month(year, month)
        last_day = calendar.monthrange(year, month)[1]
        working = [
            day for day in range(1, last_day + 1) if month_calendar.is_working_day(date(year, month, day))
        ]
        return WorkingDaysSummary(
            year=year,
            month=month,
            period_month=f"{year:04d}-{month:02d}",
            total_days=last_day,
            weekends=sorted(month_calendar.weekends),
            holidays=sorted(when.day for when in month_calendar.holidays),
            working_days=working,
            working_days_count=len(working),
            overrides=month_calendar.override,
            annual_working_days=self.annual_working_days(year) if include_annual else None,
        )

    def annual_working_days(self, year: int) -> int:
        """Weekdays in the year that are not holidays; overrides are ignored."""

        validate_year_month(year, 1)
        holidays = holiday_map(self._holidays, year)
        current = date(year, 1, 1)
        count = 0
        while current.year == year:
            if not is_weekend(current) and current not in holidays:
                count += 1
            current += timedelta(days=1)
        return count
