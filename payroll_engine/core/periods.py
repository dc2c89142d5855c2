"""Pay period windows and the generate-today decision for payroll schedules."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Sequence

from payroll_engine.core.schema import CutoffType, PayPeriod, PayrollSchedule, ShouldGenerateResult

DEFAULT_FIRST_PROCESSING_DAY = 20
DEFAULT_SECOND_PROCESSING_DAY = 5
FIRST_HALF_LAST_DAY = 15
FIRST_HALF_WINDOW_END = 25

HasResults = Callable[[date, date], bool]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def _first_half(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, FIRST_HALF_LAST_DAY)


def _previous_second_half(today: date) -> tuple[date, date]:
    year, month = previous_month(today)
    return date(year, month, FIRST_HALF_LAST_DAY + 1), month_bounds(year, month)[1]


def _coerce_type(schedule_type: CutoffType | str | None) -> CutoffType:
    try:
        return CutoffType(schedule_type)
    except ValueError:
        return CutoffType.MONTHLY


def period_for(
    today: date,
    schedule_type: CutoffType | str,
    processing_days: Sequence[int] | None = None,
) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` pay period due as of ``today``.

    * monthly: the whole previous calendar month.
    * bi-monthly: ``[1, 15]`` of this month from the first processing day
      (default 20th) up to the 25th, ``[16, end]`` of the previous month from the
      1st up to the second processing day (default 5th).  Any other day falls
      back to the most recently completed half.
    * weekly: the most recently completed Sunday-Saturday week.

    Unknown schedule types are treated as monthly.
    """

    kind = _coerce_type(schedule_type)
    day = today.day

    if kind == CutoffType.BI_MONTHLY:
        first_processing = (processing_days[0] if processing_days else None) or DEFAULT_FIRST_PROCESSING_DAY
        second_processing = (
            processing_days[1] if processing_days and len(processing_days) > 1 else None
        ) or DEFAULT_SECOND_PROCESSING_DAY

        if first_processing <= day <= FIRST_HALF_WINDOW_END:
            return _first_half(today.year, today.month)
        if 1 <= day <= second_processing:
            return _previous_second_half(today)
        if day > FIRST_HALF_LAST_DAY:
            return _first_half(today.year, today.month)
        return _previous_second_half(today)

    if kind == CutoffType.WEEKLY:
        # date.weekday(): Monday == 0 ... Sunday == 6
        days_since_saturday = (today.weekday() - 5) % 7 or 7
        end = today - timedelta(days=days_since_saturday)
        return end - timedelta(days=6), end

    return month_bounds(*previous_month(today))


def is_processing_day(schedule: PayrollSchedule, today: date) -> bool:
    kind = _coerce_type(schedule.cutoff_type)
    if kind == CutoffType.MONTHLY:
        return today.day == (schedule.payroll_release_day or 1)
    if kind == CutoffType.BI_MONTHLY:
        processing_days = schedule.processing_days or [DEFAULT_FIRST_PROCESSING_DAY, DEFAULT_SECOND_PROCESSING_DAY]
        return today.day in processing_days
    return today.weekday() == 0


def should_generate_today(
    schedule: PayrollSchedule | None,
    today: date,
    has_results: HasResults,
) -> ShouldGenerateResult:
    """Decide whether the active schedule is due for generation on ``today``.

    Never raises for missing configuration; the reason string explains every
    negative outcome, including an already generated period.
    """

    if schedule is None:
        return ShouldGenerateResult(should_generate=False, reason="No active payroll schedule found")

    kind = _coerce_type(schedule.cutoff_type)
    if not is_processing_day(schedule, today):
        return ShouldGenerateResult(
            should_generate=False,
            reason=f"Today is not a processing day for {kind.value} schedule",
        )

    start, end = period_for(today, kind, schedule.processing_days or None)
    period = PayPeriod(
        start=start,
        end=end,
        schedule_id=schedule.id,
        schedule_name=schedule.name,
        schedule_type=kind,
    )
    if has_results(start, end):
        return ShouldGenerateResult(
            should_generate=False,
            reason=f"Payroll already generated for period {start.isoformat()} to {end.isoformat()}",
            period=period,
        )

    return ShouldGenerateResult(
        should_generate=True,
        reason=f"Scheduled {kind.value} payroll generation for period {start.isoformat()} to {end.isoformat()}",
        period=period,
    )


def periods_per_year(start: date, end: date) -> int:
    span = (end - start).days + 1
    if span <= 7:
        return 52
    if span <= 16:
        return 24
    return 12


@dataclass(slots=True)
class DeadlineStatus:
    is_missed: bool
    message: str
    days_overdue: int | None = None
    expected_generation_date: date | None = None
    next_generation_date: date | None = None
    schedule_name: str | None = None


def _safe_date(year: int, month: int, day: int) -> date:
    # Clamp configured day numbers to short months (e.g. 31 -> 30 in April)
    if month == 0:
        year, month = year - 1, 12
    elif month == 13:
        year, month = year + 1, 1
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def check_deadline_status(
    schedule: PayrollSchedule | None,
    today: date,
    has_results_within: HasResults,
) -> DeadlineStatus:
    """Report whether the most recent scheduled payroll day was missed."""

    if schedule is None:
        return DeadlineStatus(is_missed=False, message="No active payroll schedule configured")
    if not schedule.days:
        return DeadlineStatus(
            is_missed=False,
            message="Unable to determine payroll generation date",
            schedule_name=schedule.name,
        )

    payroll_days = sorted(schedule.days)
    expected: date | None = None
    upcoming: date | None = None
    for day in payroll_days:
        candidate = _safe_date(today.year, today.month, day)
        if candidate <= today:
            expected = candidate
        elif upcoming is None:
            upcoming = candidate
    if expected is None:
        expected = _safe_date(today.year, today.month - 1, payroll_days[-1])
    if upcoming is None:
        upcoming = _safe_date(today.year, today.month + 1, payroll_days[0])

    period_start, period_end = month_bounds(expected.year, expected.month)
    generated = has_results_within(period_start, period_end)
    days_overdue = (today - expected).days
    is_missed = not generated and days_overdue > 0

    if is_missed:
        unit = "day" if days_overdue == 1 else "days"
        message = (
            f"Payroll generation is {days_overdue} {unit} overdue. "
            f"It was scheduled for {expected.isoformat()}."
        )
    elif generated:
        message = "Payroll has been generated for the current period."
    else:
        message = (
            f"Next payroll generation is scheduled for {upcoming.isoformat()} "
            f"({(upcoming - today).days} days)."
        )

    return DeadlineStatus(
        is_missed=is_missed,
        message=message,
        days_overdue=days_overdue if is_missed else None,
        expected_generation_date=expected,
        next_generation_date=upcoming,
        schedule_name=schedule.name,
    )
