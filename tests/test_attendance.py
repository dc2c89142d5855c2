import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.attendance import filter_duplicate_punches, group_punches_by_day, reduce_punches
from payroll_engine.core.schedules import ScheduleClassifier
from payroll_engine.core.schema import AttendanceStatus, Punch, PunchType
from payroll_engine.core.settings import AttendancePolicy
from payroll_engine.core.timezone import manila_datetime

DAY = date(2025, 3, 3)
CLASSIFIER = ScheduleClassifier()
NON_TEACHING = CLASSIFIER.schedule_for("NON_TEACHING_PERSONNEL")
TEACHING = CLASSIFIER.schedule_for("TEACHING_PERSONNEL")


def _punch(clock: str, kind: str, user_id: str = "u1", day: date = DAY) -> Punch:
    hours, minutes = (int(part) for part in clock.split(":"))
    return Punch(user_id=user_id, timestamp=manila_datetime(day, hours, minutes), type=PunchType(kind))


def _reduce(punches, schedule=NON_TEACHING, policy=None, **kwargs):
    return reduce_punches(
        punches,
        schedule,
        user_id="u1",
        day=DAY,
        policy=policy or AttendancePolicy(),
        **kwargs,
    )


FULL_DAY = [("08:00", "IN"), ("12:00", "OUT"), ("13:00", "IN"), ("17:00", "OUT")]


def test_non_teaching_arrival_before_start_is_not_late():
    record = _reduce([_punch("07:45", "IN"), _punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("17:00", "OUT")])

    assert record.late_minutes == 0
    assert record.is_late is False
    assert record.undertime_minutes == 0
    assert record.hours_worked == Decimal("8.25")
    assert record.total_sessions == 2
    assert record.needs_review is False


def test_teaching_arrival_at_0745_is_fifteen_minutes_late():
    punches = [_punch("07:45", "IN"), _punch("11:30", "OUT"), _punch("12:30", "IN"), _punch("16:30", "OUT")]

    record = _reduce(punches, TEACHING)

    assert record.late_minutes == 15
    assert record.is_late is True
    assert record.hours_worked == Decimal("7.75")
    assert record.morning_time_in == manila_datetime(DAY, 7, 45)
    assert record.afternoon_time_out == manila_datetime(DAY, 16, 30)


def test_punches_are_sorted_before_classification():
    ordered = [_punch(clock, kind) for clock, kind in FULL_DAY]

    assert _reduce(list(reversed(ordered))) == _reduce(ordered)


def test_punches_in_utc_are_read_on_the_manila_clock():
    # 23:45 UTC on the 2nd is 07:45 in Manila on the 3rd
    early = Punch(user_id="u1", timestamp=datetime(2025, 3, 2, 23, 45, tzinfo=timezone.utc), type=PunchType.IN)
    grouped = group_punches_by_day([early])

    assert list(grouped) == [("u1", DAY)]
    assert _reduce([early, _punch("11:30", "OUT")], TEACHING).late_minutes == 15


def test_clock_out_without_clock_in_is_an_orphan():
    record = _reduce([_punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("17:00", "OUT")])

    assert record.orphan_punches == [manila_datetime(DAY, 12, 0)]
    assert record.needs_review is True
    assert record.morning_time_in is None
    assert record.hours_worked == Decimal("4.00")
    assert record.undertime_minutes == 240
    assert record.total_sessions == 1
    assert record.is_half_day is False


def test_single_clock_in_and_out_is_one_continuous_span():
    record = _reduce([_punch("08:00", "IN"), _punch("17:00", "OUT")])

    assert record.hours_worked == Decimal("9.00")
    assert record.undertime_minutes == 0
    assert record.late_minutes == 0
    assert record.orphan_punches == []
    assert record.needs_review is False
    assert record.morning_time_in == manila_datetime(DAY, 8, 0)
    assert record.afternoon_time_out == manila_datetime(DAY, 17, 0)
    assert record.total_sessions == 1
    assert record.is_half_day is False


def test_continuous_span_counts_late_arrival_and_early_leave():
    record = _reduce([_punch("08:20", "IN"), _punch("16:00", "OUT")])

    assert record.late_minutes == 20
    assert record.is_late is True
    assert record.undertime_minutes == 60
    assert record.is_early_out is True
    assert record.hours_worked == Decimal("7.67")


def test_continuous_span_overtime_past_threshold():
    record = _reduce([_punch("08:00", "IN"), _punch("18:30", "OUT")])

    assert record.overtime_minutes == 90
    assert record.hours_worked == Decimal("10.50")


def test_afternoon_only_is_half_day_with_morning_counted_late():
    record = _reduce([_punch("13:00", "IN"), _punch("17:00", "OUT")])

    assert record.is_half_day is True
    assert record.late_minutes == 300
    assert record.undertime_minutes == 240
    assert record.hours_worked == Decimal("4.00")


def test_half_day_requires_minimum_hours():
    record = _reduce([_punch("13:00", "IN"), _punch("15:00", "OUT")])

    assert record.is_half_day is False


def test_half_day_can_be_disabled():
    record = _reduce([_punch("13:00", "IN"), _punch("17:00", "OUT")], policy=AttendancePolicy(allow_half_day=False))

    assert record.is_half_day is False


def test_early_out_beyond_threshold():
    punches = [_punch("08:00", "IN"), _punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("16:00", "OUT")]

    record = _reduce(punches)

    assert record.is_early_out is True
    assert record.undertime_minutes == 60
    assert record.hours_worked == Decimal("7.00")


def test_early_out_within_threshold_is_not_flagged():
    punches = [_punch("08:00", "IN"), _punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("16:50", "OUT")]

    record = _reduce(punches)

    assert record.is_early_out is False
    assert record.undertime_minutes == 10


def test_missing_clock_out_counts_full_session_as_undertime():
    record = _reduce([_punch("08:00", "IN"), _punch("13:00", "IN"), _punch("17:00", "OUT")])

    assert record.undertime_minutes == 240
    assert record.needs_review is True
    assert record.hours_worked == Decimal("4.00")


def test_overtime_counts_only_past_threshold():
    long_day = [_punch("08:00", "IN"), _punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("18:00", "OUT")]
    short_stay = [_punch("08:00", "IN"), _punch("12:00", "OUT"), _punch("13:00", "IN"), _punch("17:20", "OUT")]

    assert _reduce(long_day).overtime_minutes == 60
    assert _reduce(short_stay).overtime_minutes == 0


def test_no_punches_on_working_day_is_absent():
    assert _reduce([]).is_absent is True
    assert _reduce([], is_working_day=False).is_absent is False


def test_status_is_carried_onto_record():
    record = _reduce([_punch("08:00", "IN")], status=AttendanceStatus.APPROVED)

    assert record.status == AttendanceStatus.APPROVED


def test_default_split_keeps_noon_clock_out_in_the_morning():
    punches = [_punch(clock, kind) for clock, kind in FULL_DAY]

    default = _reduce(punches)
    fixed_noon = _reduce(punches, policy=AttendancePolicy(split_time="12:00"))

    assert default.needs_review is False
    assert default.morning_time_out == manila_datetime(DAY, 12, 0)
    assert fixed_noon.needs_review is True
    assert fixed_noon.morning_time_out is None


def test_duplicate_punches_within_window_are_dropped():
    existing = [_punch("08:00", "IN")]
    incoming = [
        _punch("08:30", "IN"),
        _punch("12:00", "OUT"),
        _punch("09:30", "IN"),
        _punch("13:00", "IN", user_id="u2"),
        _punch("13:10", "IN", user_id="u2"),
    ]

    accepted, duplicates = filter_duplicate_punches(existing, incoming, Decimal("1"))

    assert [(p.user_id, p.timestamp.strftime("%H:%M")) for p in duplicates] == [("u1", "08:30"), ("u2", "13:10")]
    assert len(accepted) == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"early_out_threshold_minutes": 5},
        {"half_day_minimum_hours": Decimal("9")},
        {"duplicate_range_hours": Decimal("13")},
        {"split_time": "noon"},
    ],
)
def test_policy_ranges_are_validated(overrides):
    with pytest.raises(ValueError):
        AttendancePolicy(**overrides)
