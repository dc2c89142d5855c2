import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.schedules import (
    ScheduleClassifier,
    ScheduleProfile,
    minutes_to_time,
    time_to_minutes,
)
from payroll_engine.core.validation import ValidationError


def test_time_conversion_helpers():
    assert time_to_minutes("07:30") == 450
    assert time_to_minutes("17:00") == 1020
    assert minutes_to_time(990) == "16:30"
    assert minutes_to_time(time_to_minutes("08:05")) == "08:05"


@pytest.mark.parametrize(
    "employee_type,morning_start",
    [
        ("TEACHING_PERSONNEL", 450),
        ("teaching_personnel", 450),
        ("NON_TEACHING_PERSONNEL", 480),
        ("CASUAL_PLANTILLA", 480),
        ("CONTRACTOR", 480),
        (None, 480),
        ("", 480),
    ],
)
def test_classifier_resolves_profiles(employee_type, morning_start):
    schedule = ScheduleClassifier().schedule_for(employee_type)

    assert schedule.morning_start == morning_start


def test_describe_exposes_both_forms():
    described = ScheduleClassifier().describe("TEACHING_PERSONNEL")

    assert described["times"]["afternoon_end"] == "16:30"
    assert described["minutes"]["afternoon_end"] == 990
    assert described["minutes"]["morning_end"] == 690


def test_teaching_schedule_durations():
    schedule = ScheduleClassifier().schedule_for("TEACHING_PERSONNEL")

    assert schedule.morning_duration == 240
    assert schedule.afternoon_duration == 240


def test_profile_rejects_bad_time_format():
    with pytest.raises(ValueError):
        ScheduleProfile(morning_start="7.30", morning_end="11:30", afternoon_start="12:30", afternoon_end="16:30")


def test_profile_rejects_overlapping_sessions():
    profile = ScheduleProfile(morning_start="08:00", morning_end="13:30", afternoon_start="13:00", afternoon_end="17:00")

    with pytest.raises(ValidationError):
        profile.to_minutes()


def test_unknown_default_is_rejected():
    with pytest.raises(ValidationError):
        ScheduleClassifier(default="NIGHT_SHIFT")
