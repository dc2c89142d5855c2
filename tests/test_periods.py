import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.periods import (
    check_deadline_status,
    is_processing_day,
    period_for,
    periods_per_year,
    should_generate_today,
)
from payroll_engine.core.schema import CutoffType, PayrollSchedule


def _never(start, end):
    return False


def _always(start, end):
    return True


@pytest.mark.parametrize(
    "today,expected",
    [
        (date(2025, 3, 20), (date(2025, 3, 1), date(2025, 3, 15))),
        (date(2025, 3, 25), (date(2025, 3, 1), date(2025, 3, 15))),
        (date(2025, 3, 5), (date(2025, 2, 16), date(2025, 2, 28))),
        (date(2025, 3, 1), (date(2025, 2, 16), date(2025, 2, 28))),
        (date(2025, 3, 10), (date(2025, 2, 16), date(2025, 2, 28))),
        (date(2025, 3, 27), (date(2025, 3, 1), date(2025, 3, 15))),
        (date(2025, 1, 3), (date(2024, 12, 16), date(2024, 12, 31))),
    ],
)
def test_bi_monthly_periods(today, expected):
    assert period_for(today, CutoffType.BI_MONTHLY) == expected


def test_bi_monthly_custom_processing_days():
    assert period_for(date(2025, 3, 18), "bi-monthly", [18, 3]) == (date(2025, 3, 1), date(2025, 3, 15))
    assert period_for(date(2025, 3, 3), "bi-monthly", [18, 3]) == (date(2025, 2, 16), date(2025, 2, 28))


def test_monthly_period_is_previous_month():
    assert period_for(date(2025, 3, 10), CutoffType.MONTHLY) == (date(2025, 2, 1), date(2025, 2, 28))
    assert period_for(date(2025, 1, 1), CutoffType.MONTHLY) == (date(2024, 12, 1), date(2024, 12, 31))


def test_unknown_schedule_type_falls_back_to_monthly():
    assert period_for(date(2025, 3, 10), "fortnightly") == (date(2025, 2, 1), date(2025, 2, 28))


@pytest.mark.parametrize(
    "today,expected",
    [
        (date(2025, 3, 10), (date(2025, 3, 2), date(2025, 3, 8))),
        (date(2025, 3, 9), (date(2025, 3, 2), date(2025, 3, 8))),
        (date(2025, 3, 8), (date(2025, 2, 23), date(2025, 3, 1))),
    ],
)
def test_weekly_period_is_last_completed_sunday_to_saturday(today, expected):
    start, end = period_for(today, CutoffType.WEEKLY)

    assert (start, end) == expected
    assert start.weekday() == 6
    assert end.weekday() == 5


def test_processing_days_per_schedule_type():
    monthly = PayrollSchedule(id="m", name="Monthly", cutoff_type="monthly", payroll_release_day=5)
    bi_monthly = PayrollSchedule(id="b", name="Semi", cutoff_type="bi-monthly")
    weekly = PayrollSchedule(id="w", name="Weekly", cutoff_type="weekly")

    assert is_processing_day(monthly, date(2025, 3, 5))
    assert not is_processing_day(monthly, date(2025, 3, 6))
    assert is_processing_day(bi_monthly, date(2025, 3, 20))
    assert is_processing_day(bi_monthly, date(2025, 3, 5))
    assert not is_processing_day(bi_monthly, date(2025, 3, 15))
    assert is_processing_day(weekly, date(2025, 3, 10))
    assert not is_processing_day(weekly, date(2025, 3, 11))


def test_should_generate_without_active_schedule():
    result = should_generate_today(None, date(2025, 3, 5), _never)

    assert result.should_generate is False
    assert result.reason == "No active payroll schedule found"
    assert result.period is None


def test_should_generate_on_non_processing_day():
    schedule = PayrollSchedule(id="m", name="Monthly", cutoff_type="monthly", payroll_release_day=5, is_active=True)

    result = should_generate_today(schedule, date(2025, 3, 4), _never)

    assert result.should_generate is False
    assert result.reason == "Today is not a processing day for monthly schedule"


def test_should_generate_on_release_day():
    schedule = PayrollSchedule(id="m", name="Monthly", cutoff_type="monthly", payroll_release_day=5, is_active=True)

    result = should_generate_today(schedule, date(2025, 3, 5), _never)

    assert result.should_generate is True
    assert result.reason.startswith("Scheduled monthly payroll generation")
    assert (result.period.start, result.period.end) == (date(2025, 2, 1), date(2025, 2, 28))
    assert result.period.schedule_id == "m"


def test_should_generate_reports_already_generated_period():
    schedule = PayrollSchedule(id="b", name="Semi", cutoff_type="bi-monthly", processing_days=[20, 5], is_active=True)
    seen = []

    def has_results(start, end):
        seen.append((start, end))
        return True

    result = should_generate_today(schedule, date(2025, 3, 20), has_results)

    assert result.should_generate is False
    assert "already generated" in result.reason
    assert seen == [(date(2025, 3, 1), date(2025, 3, 15))]


def test_periods_per_year_from_period_length():
    assert periods_per_year(date(2025, 3, 2), date(2025, 3, 8)) == 52
    assert periods_per_year(date(2025, 3, 16), date(2025, 3, 31)) == 24
    assert periods_per_year(date(2025, 3, 1), date(2025, 3, 31)) == 12


def test_deadline_missed_when_nothing_generated():
    schedule = PayrollSchedule(id="m", name="Mid and end", days=[15, 30])

    status = check_deadline_status(schedule, date(2025, 3, 20), _never)

    assert status.is_missed is True
    assert status.days_overdue == 5
    assert status.expected_generation_date == date(2025, 3, 15)
    assert status.next_generation_date == date(2025, 3, 30)
    assert "5 days overdue" in status.message


def test_deadline_met_when_results_exist():
    schedule = PayrollSchedule(id="m", name="Mid and end", days=[15, 30])

    status = check_deadline_status(schedule, date(2025, 3, 20), _always)

    assert status.is_missed is False
    assert status.days_overdue is None
    assert status.message == "Payroll has been generated for the current period."


def test_deadline_looks_back_to_previous_month_and_clamps_short_months():
    schedule = PayrollSchedule(id="m", name="Month end", days=[31])

    status = check_deadline_status(schedule, date(2025, 3, 10), _never)

    assert status.expected_generation_date == date(2025, 2, 28)
    assert status.next_generation_date == date(2025, 3, 31)


def test_deadline_without_schedule_or_days():
    assert check_deadline_status(None, date(2025, 3, 10), _never).message == "No active payroll schedule configured"
    empty = check_deadline_status(PayrollSchedule(id="x", name="Empty"), date(2025, 3, 10), _never)
    assert empty.is_missed is False
    assert empty.message == "Unable to determine payroll generation date"
