"""Engine configuration loaded from YAML with environment overrides."""
from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from payroll_engine.core.schedules import (
    DEFAULT_ALIASES,
    DEFAULT_PROFILES,
    NON_TEACHING_PERSONNEL,
    ScheduleClassifier,
    ScheduleMinutes,
    ScheduleProfile,
    time_to_minutes,
)
from payroll_engine.core.schema import ContributionType
from payroll_engine.core.validation import ValidationError, validate_time_string

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "payroll.yaml"


class WorkingHoursConfig(BaseModel):
    daily_hours: Decimal = Decimal("8")
    late_grace_minutes: int = 0
    late_deduction_basis: Literal["fixed", "hourly", "daily", "per_minute"] = "hourly"
    late_deduction_amount: Decimal = Decimal("1")


class RatesConfig(BaseModel):
    overtime_rate_1: Decimal = Decimal("1.25")
    overtime_rate_2: Decimal = Decimal("1.5")
    overtime_tier_hours: Decimal = Decimal("2")
    regular_holiday_rate: Decimal = Decimal("2.0")
    special_holiday_rate: Decimal = Decimal("1.3")
    currency: str = "PHP"


class AttendancePolicy(BaseModel):
    split_time: str | None = None
    allow_half_day: bool = True
    half_day_minimum_hours: Decimal = Decimal("3")
    allow_early_out: bool = True
    early_out_threshold_minutes: int = 15
    overtime_threshold_minutes: int = 30
    prevent_duplicate_entries: bool = True
    duplicate_range_hours: Decimal = Decimal("1")

    @field_validator("split_time")
    @classmethod
    def _check_split(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_time_string(value, "split_time")

    @model_validator(mode="after")
    def _check_ranges(self) -> "AttendancePolicy":
        if not 15 <= self.early_out_threshold_minutes <= 240:
            raise ValidationError("Early out threshold must be between 15 and 240 minutes.")
        if not Decimal("1") <= self.half_day_minimum_hours <= Decimal("8"):
            raise ValidationError("Half-day minimum hours must be between 1 and 8 hours.")
        if not Decimal("1") <= self.duplicate_range_hours <= Decimal("12"):
            raise ValidationError("Duplicate range hours must be between 1 and 12 hours.")
        if self.overtime_threshold_minutes < 0:
            raise ValidationError("Overtime threshold cannot be negative.")
        return self

    def split_minutes(self, schedule: ScheduleMinutes) -> int:
        """Fixed split point, or the midpoint of the schedule's lunch break."""

        if self.split_time is not None:
            return time_to_minutes(self.split_time)
        return (schedule.morning_end + schedule.afternoon_start) // 2


class ContributionBracket(BaseModel):
    salary_min: Decimal
    salary_max: Decimal
    employee_rate: Decimal
    min_contribution: Decimal | None = None
    max_contribution: Decimal | None = None


class ContributionTable(BaseModel):
    employee_rate: Decimal
    employer_rate: Decimal = Decimal("0")
    min_salary: Decimal = Decimal("0")
    max_salary: Decimal | None = None
    min_contribution: Decimal | None = None
    max_contribution: Decimal | None = None
    brackets: list[ContributionBracket] = Field(default_factory=list)


class TaxBracket(BaseModel):
    min: Decimal
    max: Decimal | None = None
    rate: Decimal
    fixed_amount: Decimal = Decimal("0")


class TaxExemptions(BaseModel):
    thirteenth_month: Decimal = Decimal("90000")
    service_incentive_leave: Decimal = Decimal("90000")


def validate_tax_brackets(brackets: list[TaxBracket]) -> None:
    """Brackets must be ordered, contiguous and end with an open upper bound."""

    if not brackets:
        return
    for index, bracket in enumerate(brackets):
        is_last = index == len(brackets) - 1
        if bracket.max is None and not is_last:
            raise ValidationError("only the last tax bracket may be unbounded")
        if bracket.max is not None and bracket.max <= bracket.min:
            raise ValidationError(f"tax bracket {index} has max <= min")
        if index and bracket.min != brackets[index - 1].max:
            raise ValidationError(f"tax bracket {index} does not start where bracket {index - 1} ends")
    if brackets[-1].max is not None:
        raise ValidationError("the last tax bracket must have no upper bound")


class TaxConfig(BaseModel):
    brackets: list[TaxBracket] = Field(default_factory=list)
    exemptions: TaxExemptions = Field(default_factory=TaxExemptions)

    @field_validator("brackets")
    @classmethod
    def _check_brackets(cls, value: list[TaxBracket]) -> list[TaxBracket]:
        validate_tax_brackets(value)
        return value


class SchedulesConfig(BaseModel):
    default: str = NON_TEACHING_PERSONNEL
    profiles: dict[str, ScheduleProfile] = Field(default_factory=lambda: dict(DEFAULT_PROFILES))
    aliases: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))


class BatchConfig(BaseModel):
    max_workers: int = Field(default=4, ge=1, le=64)
    unit_timeout_seconds: float = Field(default=30.0, gt=0)


class PayrollSettings(BaseModel):
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    rates: RatesConfig = Field(default_factory=RatesConfig)
    attendance_policy: AttendancePolicy = Field(default_factory=AttendancePolicy)
    schedules: SchedulesConfig = Field(default_factory=SchedulesConfig)
    contributions: dict[ContributionType, ContributionTable] = Field(default_factory=dict)
    tax: TaxConfig = Field(default_factory=TaxConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)

    def classifier(self) -> ScheduleClassifier:
        return ScheduleClassifier(
            self.schedules.profiles,
            aliases=self.schedules.aliases,
            default=self.schedules.default,
        )


def merge_config(existing: dict | None, incoming: dict | None) -> dict:
    """Deep-merge two configuration documents; ``incoming`` wins on conflicts."""

    if not isinstance(existing, dict):
        existing = {}
    if not isinstance(incoming, dict):
        return dict(existing)

    merged = {key: value for key, value in existing.items()}
    for key, value in incoming.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config_document(path: Path | None = None) -> dict[str, Any]:
    path = path or Path(os.getenv("PAYROLL_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def apply_env_overrides(document: dict[str, Any]) -> dict[str, Any]:
    max_workers = os.getenv("PAYROLL_MAX_WORKERS")
    if max_workers:
        document = merge_config(document, {"batch": {"max_workers": int(max_workers)}})
    return document


def build_settings(document: dict[str, Any]) -> PayrollSettings:
    try:
        return PayrollSettings.model_validate(document)
    except ValueError as exc:
        raise ValidationError(f"invalid payroll configuration: {exc}") from exc


def load_settings(path: Path | None = None, *, overrides: dict[str, Any] | None = None) -> PayrollSettings:
    document = load_config_document(path)
    if overrides:
        document = merge_config(document, overrides)
    return build_settings(apply_env_overrides(document))
