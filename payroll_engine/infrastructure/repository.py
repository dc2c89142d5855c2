"""Infrastructure layer for payroll persistence."""
from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Iterable, Protocol

from payroll_engine.core.schema import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    Holiday,
    PayrollResultModel,
    PayrollRule,
    PayrollSchedule,
    Punch,
    SalaryGrade,
    WorkCalendarOverride,
)
from payroll_engine.core.errors import ScheduleNotFoundError
from payroll_engine.core.work_calendar import override_key
from payroll_engine.domain import PayrollStoreState, ResultKey

LOCK_STRIPES = 64

_PRESERVED_RESULT_FIELDS = ("status", "is_approved", "is_paid")


class PayrollRepository(Protocol):
    """Persistence contract for engine inputs and derived results."""

    def add_employee(self, employee: Employee) -> None: ...

    def get_employee(self, user_id: str) -> Employee | None: ...

    def list_employees(self) -> list[Employee]: ...

    def add_salary_grade(self, grade: SalaryGrade) -> None: ...

    def list_salary_grades(self) -> dict[int, SalaryGrade]: ...

    def add_punches(self, punches: Iterable[Punch]) -> None: ...

    def list_punches(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Punch]: ...

    def upsert_attendance(self, record: AttendanceRecord) -> AttendanceRecord: ...

    def set_attendance_status(self, user_id: str, day: date, status: AttendanceStatus) -> AttendanceRecord: ...

    def list_attendance(
        self,
        user_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecord]: ...

    def add_holiday(self, holiday: Holiday) -> None: ...

    def list_holidays(self) -> list[Holiday]: ...

    def save_override(self, override: WorkCalendarOverride) -> None: ...

    def list_overrides(self) -> dict[str, WorkCalendarOverride]: ...

    def add_schedule(self, schedule: PayrollSchedule) -> None: ...

    def get_schedule(self, schedule_id: str) -> PayrollSchedule | None: ...

    def get_active_schedule(self) -> PayrollSchedule | None: ...

    def set_active_schedule(self, schedule_id: str) -> PayrollSchedule: ...

    def add_rule(self, rule: PayrollRule) -> None: ...

    def list_rules(self) -> list[PayrollRule]: ...

    def upsert_result(self, result: PayrollResultModel, *, reset_status: bool = False) -> PayrollResultModel: ...

    def get_result(self, key: ResultKey) -> PayrollResultModel | None: ...

    def list_results(
        self,
        start: date | None = None,
        end: date | None = None,
        user_id: str | None = None,
    ) -> list[PayrollResultModel]: ...

    def has_results_for_period(self, start: date, end: date) -> bool: ...

    def has_results_within(self, start: date, end: date) -> bool: ...

    def reset(self) -> None: ...


class InMemoryPayrollRepository:
    """Simple in-memory repository for fast iteration and tests.

    Writes to the same payroll result key are serialised by a striped lock:
    each key hashes onto one of a fixed set of locks, so memory stays bounded.
    """

    def __init__(self) -> None:
        self._state = PayrollStoreState()
        self._lock = threading.RLock()
        self._key_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _lock_for(self, key: object) -> threading.Lock:
        return self._key_locks[hash(key) % len(self._key_locks)]

    # ------------------------------------------------------------------
    # employees & rates
    # ------------------------------------------------------------------
    def add_employee(self, employee: Employee) -> None:
        with self._lock:
            self._state.employees[employee.id] = employee

    def get_employee(self, user_id: str) -> Employee | None:
        return self._state.employees.get(user_id)

    def list_employees(self) -> list[Employee]:
        with self._lock:
            return sorted(self._state.employees.values(), key=lambda item: item.id)

    def add_salary_grade(self, grade: SalaryGrade) -> None:
        with self._lock:
            self._state.salary_grades[grade.grade] = grade

    def list_salary_grades(self) -> dict[int, SalaryGrade]:
        with self._lock:
            return dict(self._state.salary_grades)

    # ------------------------------------------------------------------
    # punches & attendance
    # ------------------------------------------------------------------
    def add_punches(self, punches: Iterable[Punch]) -> None:
        with self._lock:
            self._state.punches.extend(punches)

    def list_punches(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Punch]:
        with self._lock:
            rows = list(self._state.punches)
        return [
            punch
            for punch in rows
            if (user_id is None or punch.user_id == user_id)
            and (start is None or punch.timestamp >= start)
            and (end is None or punch.timestamp < end)
        ]

    def upsert_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        key = (record.user_id, record.date)
        with self._lock_for(("attendance", key)):
            existing = self._state.attendance.get(key)
            if existing is not None:
                record = record.model_copy(update={"status": existing.status})
            self._state.attendance[key] = record
        return record

    def set_attendance_status(self, user_id: str, day: date, status: AttendanceStatus) -> AttendanceRecord:
        """Approval boundary: the only way a record's status changes."""

        key = (user_id, day)
        with self._lock_for(("attendance", key)):
            existing = self._state.attendance.get(key)
            if existing is None:
                raise KeyError(f"no attendance record for {user_id} on {day.isoformat()}")
            updated = existing.model_copy(update={"status": status})
            self._state.attendance[key] = updated
        return updated

    def list_attendance(
        self,
        user_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecord]:
        with self._lock:
            rows = list(self._state.attendance.values())
        selected = [
            record
            for record in rows
            if (user_id is None or record.user_id == user_id)
            and (start is None or record.date >= start)
            and (end is None or record.date <= end)
        ]
        selected.sort(key=lambda record: (record.date, record.user_id))
        return selected

    # ------------------------------------------------------------------
    # calendar
    # ------------------------------------------------------------------
    def add_holiday(self, holiday: Holiday) -> None:
        with self._lock:
            self._state.holidays.append(holiday)

    def list_holidays(self) -> list[Holiday]:
        with self._lock:
            return list(self._state.holidays)

    def save_override(self, override: WorkCalendarOverride) -> None:
        with self._lock:
            self._state.overrides[override_key(override.year, override.month)] = override

    def list_overrides(self) -> dict[str, WorkCalendarOverride]:
        with self._lock:
            return dict(self._state.overrides)

    # ------------------------------------------------------------------
    # schedules & rules
    # ------------------------------------------------------------------
    def add_schedule(self, schedule: PayrollSchedule) -> None:
        with self._lock:
            self._state.schedules[schedule.id] = schedule
            if schedule.is_active:
                self._activate(schedule.id)

    def get_schedule(self, schedule_id: str) -> PayrollSchedule | None:
        return self._state.schedules.get(schedule_id)

    def get_active_schedule(self) -> PayrollSchedule | None:
        with self._lock:
            for schedule in self._state.schedules.values():
                if schedule.is_active:
                    return schedule
        return None

    def _activate(self, schedule_id: str) -> PayrollSchedule:
        if schedule_id not in self._state.schedules:
            raise ScheduleNotFoundError(f"payroll schedule {schedule_id!r} not found")
        self._state.schedules = {
            key: value.model_copy(update={"is_active": key == schedule_id})
            for key, value in self._state.schedules.items()
        }
        return self._state.schedules[schedule_id]

    def set_active_schedule(self, schedule_id: str) -> PayrollSchedule:
        with self._lock:
            return self._activate(schedule_id)

    def add_rule(self, rule: PayrollRule) -> None:
        with self._lock:
            self._state.rules[rule.id] = rule

    def list_rules(self) -> list[PayrollRule]:
        with self._lock:
            return list(self._state.rules.values())

    # ------------------------------------------------------------------
    # results
    # ------------------------------------------------------------------
    def upsert_result(self, result: PayrollResultModel, *, reset_status: bool = False) -> PayrollResultModel:
        key = result.key
        with self._lock_for(("result", key)):
            existing = self._state.results.get(key)
            if existing is not None and not reset_status:
                result = result.model_copy(
                    update={field: getattr(existing, field) for field in _PRESERVED_RESULT_FIELDS}
                )
            self._state.results[key] = result
        return result

    def get_result(self, key: ResultKey) -> PayrollResultModel | None:
        return self._state.results.get(key)

    def list_results(
        self,
        start: date | None = None,
        end: date | None = None,
        user_id: str | None = None,
    ) -> list[PayrollResultModel]:
        with self._lock:
            rows = list(self._state.results.values())
        selected = [
            row
            for row in rows
            if (start is None or row.pay_period_start == start)
            and (end is None or row.pay_period_end == end)
            and (user_id is None or row.user_id == user_id)
        ]
        selected.sort(key=lambda row: (row.pay_period_start, row.user_id))
        return selected

    def has_results_for_period(self, start: date, end: date) -> bool:
        return bool(self.list_results(start, end))

    def has_results_within(self, start: date, end: date) -> bool:
        with self._lock:
            rows = list(self._state.results.values())
        return any(row.pay_period_start >= start and row.pay_period_end <= end for row in rows)

    def reset(self) -> None:
        with self._lock:
            self._state = PayrollStoreState()
