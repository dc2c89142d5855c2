import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.schema import Holiday, HolidayType, WorkCalendarOverride
from payroll_engine.core.validation import ValidationError, validate_override
from payroll_engine.core.work_calendar import WorkCalendar, holiday_map, override_key


def _calendar(holidays=(), **overrides):
    return WorkCalendar(holidays, {override_key(o.year, o.month): o for o in overrides.values()})


def test_march_2025_has_ten_weekend_days():
    summary = WorkCalendar().working_days(2025, 3)

    assert summary.total_days == 31
    assert summary.weekends == [1, 2, 8, 9, 15, 16, 22, 23, 29, 30]
    assert summary.working_days_count == 21
    assert summary.period_month == "2025-03"
    assert summary.overrides.no_work_days == []


def test_holidays_reduce_working_days():
    holidays = [Holiday(date=date(2025, 3, 3), name="Founding Day", type=HolidayType.REGULAR)]
    summary = WorkCalendar(holidays).working_days(2025, 3)

    assert summary.holidays == [3]
    assert 3 not in summary.working_days
    assert summary.working_days_count == 20


def test_recurring_holiday_matches_by_month_and_day():
    christmas = Holiday(date=date(2000, 12, 25), name="Christmas", is_recurring=True)
    one_off = Holiday(date=date(2000, 12, 26), name="One-off")

    mapping = holiday_map([christmas, one_off], 2025, 12)

    assert list(mapping) == [date(2025, 12, 25)]


def test_regular_holiday_wins_over_special_on_same_date():
    special = Holiday(date=date(2025, 6, 12), name="Special", type=HolidayType.SPECIAL)
    regular = Holiday(date=date(2025, 6, 12), name="Independence Day", type=HolidayType.REGULAR)

    mapping = holiday_map([special, regular], 2025)

    assert mapping[date(2025, 6, 12)].name == "Independence Day"


def test_overrides_flip_working_days():
    override = WorkCalendarOverride(year=2025, month=3, no_work_days=[4], working_weekend_days=[8])
    calendar = _calendar(march=override)

    summary = calendar.working_days(2025, 3)

    assert 4 not in summary.working_days
    assert 8 in summary.working_days
    assert summary.working_days_count == 21
    assert calendar.is_working_day(date(2025, 3, 8))
    assert not calendar.is_working_day(date(2025, 3, 4))


@pytest.mark.parametrize("year,month", [(2024, 2), (2025, 1), (2025, 6), (2026, 11)])
def test_working_days_never_exceed_days_and_drop_with_no_work_day(year, month):
    base = WorkCalendar().working_days(year, month)
    assert base.working_days_count <= base.total_days

    first_working = base.working_days[0]
    override = WorkCalendarOverride(year=year, month=month, no_work_days=[first_working])
    reduced = _calendar(only=override).working_days(year, month)

    assert reduced.working_days_count == base.working_days_count - 1


def test_annual_working_days_ignore_overrides():
    holidays = [Holiday(date=date(2025, 1, 1), name="New Year", is_recurring=True)]
    override = WorkCalendarOverride(year=2025, month=3, no_work_days=[4, 5])
    calendar = _calendar(holidays, march=override)

    # 2025 has 261 weekdays; New Year's Day falls on a Wednesday
    assert calendar.annual_working_days(2025) == 260
    assert calendar.working_days(2025, 3, include_annual=True).annual_working_days == 260


def test_invalid_month_is_rejected():
    with pytest.raises(ValidationError):
        WorkCalendar().working_days(2025, 13)


def test_override_cannot_list_a_day_in_both_sets():
    override = WorkCalendarOverride(year=2025, month=3, no_work_days=[8], working_weekend_days=[8])

    with pytest.raises(ValidationError, match="both"):
        validate_override(override)


def test_override_working_weekend_must_be_a_weekend():
    override = WorkCalendarOverride(year=2025, month=3, working_weekend_days=[3])

    with pytest.raises(ValidationError, match="weekday"):
        validate_override(override)


def test_override_is_normalised():
    override = WorkCalendarOverride(year=2025, month=3, no_work_days=[5, 4, 5])

    assert validate_override(override).no_work_days == [4, 5]


def test_override_day_outside_month_is_rejected():
    override = WorkCalendarOverride(year=2025, month=2, no_work_days=[30])

    with pytest.raises(ValidationError):
        validate_override(override)
