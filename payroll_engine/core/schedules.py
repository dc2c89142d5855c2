"""Work schedules per employee type.

Teaching personnel work 07:30-11:30 / 12:30-16:30; non-teaching (and casual
plantilla) staff work 08:00-12:00 / 13:00-17:00.  Unknown or missing types
fall back to the non-teaching profile.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from pydantic import BaseModel, field_validator

from payroll_engine.core.validation import ValidationError, validate_time_string

TEACHING_PERSONNEL = "TEACHING_PERSONNEL"
NON_TEACHING_PERSONNEL = "NON_TEACHING_PERSONNEL"
CASUAL_PLANTILLA = "CASUAL_PLANTILLA"


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, slots=True)
class ScheduleMinutes:
    """Session bounds as minutes from midnight."""

    morning_start: int
    morning_end: int
    afternoon_start: int
    afternoon_end: int

    @property
    def morning_duration(self) -> int:
        return self.morning_end - self.morning_start

    @property
    def afternoon_duration(self) -> int:
        return self.afternoon_end - self.afternoon_start


class ScheduleProfile(BaseModel):
    morning_start: str
    morning_end: str
    afternoon_start: str
    afternoon_end: str

    model_config = {"frozen": True}

    @field_validator("morning_start", "morning_end", "afternoon_start", "afternoon_end")
    @classmethod
    def _check_format(cls, value: str) -> str:
        return validate_time_string(value, "schedule time")

    def to_minutes(self) -> ScheduleMinutes:
        minutes = ScheduleMinutes(
            morning_start=time_to_minutes(self.morning_start),
            morning_end=time_to_minutes(self.morning_end),
            afternoon_start=time_to_minutes(self.afternoon_start),
            afternoon_end=time_to_minutes(self.afternoon_end),
        )
        if not (minutes.morning_start < minutes.morning_end <= minutes.afternoon_start < minutes.afternoon_end):
            raise ValidationError("schedule sessions must be ordered and non-overlapping")
        return minutes


TEACHING_SCHEDULE = ScheduleProfile(
    morning_start="07:30",
    morning_end="11:30",
    afternoon_start="12:30",
    afternoon_end="16:30",
)

NON_TEACHING_SCHEDULE = ScheduleProfile(
    morning_start="08:00",
    morning_end="12:00",
    afternoon_start="13:00",
    afternoon_end="17:00",
)

DEFAULT_PROFILES: dict[str, ScheduleProfile] = {
    TEACHING_PERSONNEL: TEACHING_SCHEDULE,
    NON_TEACHING_PERSONNEL: NON_TEACHING_SCHEDULE,
}

DEFAULT_ALIASES: dict[str, str] = {CASUAL_PLANTILLA: NON_TEACHING_PERSONNEL}


class ScheduleClassifier:
    """Resolves the expected session times for an employee type."""

    def __init__(
        self,
        profiles: Mapping[str, ScheduleProfile] | None = None,
        *,
        aliases: Mapping[str, str] | None = None,
        default: str = NON_TEACHING_PERSONNEL,
    ) -> None:
        self._profiles = {key.upper(): value for key, value in (profiles or DEFAULT_PROFILES).items()}
        self._aliases = {key.upper(): value.upper() for key, value in (aliases or DEFAULT_ALIASES).items()}
        if default.upper() not in self._profiles:
            raise ValidationError(f"default schedule {default!r} is not a known profile")
        self._default = default.upper()

    def profile_for(self, employee_type: str | None) -> ScheduleProfile:
        if not employee_type:
            return self._profiles[self._default]
        key = employee_type.strip().upper()
        key = self._aliases.get(key, key)
        return self._profiles.get(key, self._profiles[self._default])

    def schedule_for(self, employee_type: str | None) -> ScheduleMinutes:
        return self.profile_for(employee_type).to_minutes()

    def describe(self, employee_type: str | None) -> dict[str, object]:
        """Return both the HH:MM and minute forms of a schedule."""

        profile = self.profile_for(employee_type)
        minutes = profile.to_minutes()
        return {
            "times": profile.model_dump(),
            "minutes": {
                "morning_start": minutes.morning_start,
                "morning_end": minutes.morning_end,
                "afternoon_start": minutes.afternoon_start,
                "afternoon_end": minutes.afternoon_end,
            },
        }
