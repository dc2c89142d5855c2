"""Domain entities held by the payroll store."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from payroll_engine.core.schema import (
    AttendanceRecord,
    Employee,
    Holiday,
    PayrollResultModel,
    PayrollRule,
    PayrollSchedule,
    Punch,
    SalaryGrade,
    WorkCalendarOverride,
)

ResultKey = tuple[str, date, date]


@dataclass(slots=True)
class PayrollStoreState:
    """Aggregated persistent state of the engine, kept in memory."""

    employees: dict[str, Employee] = field(default_factory=dict)
    salary_grades: dict[int, SalaryGrade] = field(default_factory=dict)
    punches: list[Punch] = field(default_factory=list)
    attendance: dict[tuple[str, date], AttendanceRecord] = field(default_factory=dict)
    holidays: list[Holiday] = field(default_factory=list)
    overrides: dict[str, WorkCalendarOverride] = field(default_factory=dict)
    schedules: dict[str, PayrollSchedule] = field(default_factory=dict)
    rules: dict[str, PayrollRule] = field(default_factory=dict)
    results: dict[ResultKey, PayrollResultModel] = field(default_factory=dict)
