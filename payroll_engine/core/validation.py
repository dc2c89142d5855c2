from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Iterable

from payroll_engine.core.schema import WorkCalendarOverride

VALID_SCOPES = ("all", "user", "current_month")
_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class ValidationError(ValueError):
    """Raised when domain validation fails."""


def validate_year_month(year: int, month: int) -> None:
    if not isinstance(year, int) or year < 1900 or year > 9999:
        raise ValidationError("year must be an integer between 1900 and 9999")
    if not isinstance(month, int) or month < 1 or month > 12:
        raise ValidationError("month must be an integer between 1 and 12")


def validate_period(start: date | None, end: date | None) -> tuple[date, date]:
    if start is None or end is None:
        raise ValidationError("period start and end are required")
    if start > end:
        raise ValidationError("period start must not be after period end")
    return start, end


def validate_scope(scope: str) -> str:
    if scope not in VALID_SCOPES:
        raise ValidationError("scope must be one of: " + ", ".join(VALID_SCOPES))
    return scope


def validate_time_string(value: str, field: str) -> str:
    if not isinstance(value, str) or not _TIME_PATTERN.match(value):
        raise ValidationError(f"{field} must use HH:MM format")
    return value


def _validate_days(days: Iterable[int], last_day: int, field: str) -> list[int]:
    cleaned: list[int] = []
    for day in days:
        if not isinstance(day, int) or day < 1 or day > last_day:
            raise ValidationError(f"{field} contains an invalid day: {day!r}")
        if day not in cleaned:
            cleaned.append(day)
    return sorted(cleaned)


def validate_override(override: WorkCalendarOverride) -> WorkCalendarOverride:
    """Check an override against its month and return a normalised copy.

    A day may not be both a no-work day and a working weekend, and working
    weekend days must actually fall on Saturday or Sunday.
    """

    validate_year_month(override.year, override.month)
    last_day = calendar.monthrange(override.year, override.month)[1]
    no_work = _validate_days(override.no_work_days, last_day, "no_work_days")
    weekend_work = _validate_days(override.working_weekend_days, last_day, "working_weekend_days")

    overlap = sorted(set(no_work) & set(weekend_work))
    if overlap:
        raise ValidationError(
            "days cannot be both no-work and working-weekend: " + ", ".join(str(day) for day in overlap)
        )

    for day in weekend_work:
        if date(override.year, override.month, day).weekday() < 5:
            raise ValidationError(f"working_weekend_days contains a weekday: {day}")

    return WorkCalendarOverride(
        year=override.year,
        month=override.month,
        no_work_days=no_work,
        working_weekend_days=weekend_work,
    )
