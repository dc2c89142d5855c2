"""Attendance import and recomputation use cases."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from payroll_engine.core.attendance import filter_duplicate_punches, group_punches_by_day, reduce_punches
from payroll_engine.core.schema import AttendanceRecord, EmploymentStatus, Punch, PunchImportSummary
from payroll_engine.core.settings import PayrollSettings
from payroll_engine.core.timezone import manila_day_bounds
from payroll_engine.core.validation import validate_period
from payroll_engine.core.work_calendar import WorkCalendar
from payroll_engine.infrastructure import PayrollRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Turns stored punches into per-day attendance records."""

    def __init__(self, repository: PayrollRepository, settings: PayrollSettings) -> None:
        self._repository = repository
        self._settings = settings
        self._classifier = settings.classifier()

    @property
    def repository(self) -> PayrollRepository:
        return self._repository

    def _calendar(self) -> WorkCalendar:
        return WorkCalendar(self._repository.list_holidays(), self._repository.list_overrides())

    def import_punches(self, punches: Iterable[Punch]) -> PunchImportSummary:
        """Store new punches and rebuild the attendance of every day they touch."""

        incoming = list(punches)
        policy = self._settings.attendance_policy
        if policy.prevent_duplicate_entries:
            users = {punch.user_id for punch in incoming}
            existing = [p for user in users for p in self._repository.list_punches(user_id=user)]
            accepted, duplicates = filter_duplicate_punches(existing, incoming, policy.duplicate_range_hours)
        else:
            accepted, duplicates = incoming, []

        self._repository.add_punches(accepted)
        if duplicates:
            logger.info("ignored %d duplicate punches out of %d", len(duplicates), len(incoming))

        calendar = self._calendar()
        records: list[AttendanceRecord] = []
        for user_id, day in sorted(group_punches_by_day(accepted)):
            record = self._rebuild_day(user_id, day, calendar)
            if record is not None:
                records.append(record)
        return PunchImportSummary(
            received=len(incoming),
            accepted=len(accepted),
            duplicates=len(duplicates),
            records=records,
        )

    def recompute(
        self,
        start: date | None,
        end: date | None,
        user_ids: Iterable[str] | None = None,
    ) -> list[AttendanceRecord]:
        """Rebuild attendance for every day in ``[start, end]``.

        Working days without punches produce an absent record; non-working days
        without punches produce nothing.
        """

        start, end = validate_period(start, end)
        if user_ids is None:
            targets = {
                employee.id
                for employee in self._repository.list_employees()
                if employee.status != EmploymentStatus.INACTIVE
            }
            lower, _ = manila_day_bounds(start)
            _, upper = manila_day_bounds(end)
            targets.update(p.user_id for p in self._repository.list_punches(start=lower, end=upper))
        else:
            targets = set(user_ids)

        calendar = self._calendar()
        records: list[AttendanceRecord] = []
        for user_id in sorted(targets):
            day = start
            while day <= end:
                record = self._rebuild_day(user_id, day, calendar)
                if record is not None:
                    records.append(record)
                day += timedelta(days=1)
        logger.info("recomputed %d attendance records for %d users", len(records), len(targets))
        return records

    def _rebuild_day(self, user_id: str, day: date, calendar: WorkCalendar) -> AttendanceRecord | None:
        lower, upper = manila_day_bounds(day)
        punches = self._repository.list_punches(user_id=user_id, start=lower, end=upper)
        working = calendar.is_working_day(day)
        if not punches and not working:
            return None

        employee = self._repository.get_employee(user_id)
        schedule = self._classifier.schedule_for(employee.employee_type if employee else None)
        record = reduce_punches(
            punches,
            schedule,
            user_id=user_id,
            day=day,
            policy=self._settings.attendance_policy,
            late_grace_minutes=self._settings.working_hours.late_grace_minutes,
            is_working_day=working,
        )
        return self._repository.upsert_attendance(record)

    def list_records(
        self,
        user_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecord]:
        return self._repository.list_attendance(user_id, start, end)
