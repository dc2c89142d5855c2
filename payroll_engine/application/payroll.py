"""Application service layer for payroll generation."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from payroll_engine.core.calculator import PayrollInputs, calculate_payroll, resolve_daily_rate
from payroll_engine.core.errors import EmployeeNotFoundError, NoAttendanceDataError
from payroll_engine.core.periods import DeadlineStatus, check_deadline_status, month_bounds, should_generate_today
from payroll_engine.core.schema import (
    Employee,
    EmployeeRole,
    EmploymentStatus,
    GenerationError,
    GenerationReport,
    PayPeriod,
    PayrollResultModel,
    PayrollRule,
    PayrollSchedule,
    SalaryGrade,
    ShouldGenerateResult,
    WorkCalendarOverride,
    WorkingDaysSummary,
)
from payroll_engine.core.settings import PayrollSettings
from payroll_engine.core.timezone import manila_today
from payroll_engine.core.validation import ValidationError, validate_override, validate_period, validate_scope
from payroll_engine.core.work_calendar import WorkCalendar
from payroll_engine.infrastructure import PayrollRepository
from payroll_engine.workers import BatchRunner

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class GenerationContext:
    """Read-only inputs shared by every user of one generation run."""

    period_start: date
    period_end: date
    rules: Sequence[PayrollRule]
    salary_grades: Mapping[int, SalaryGrade]
    calendar: WorkCalendar
    schedule_id: str | None
    reset_status: bool


class PayrollService:
    """Coordinates payroll generation, scheduling and calendar use cases."""

    def __init__(
        self,
        repository: PayrollRepository,
        settings: PayrollSettings,
        *,
        runner: BatchRunner | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._runner = runner or BatchRunner(
            max_workers=settings.batch.max_workers,
            unit_timeout=settings.batch.unit_timeout_seconds,
        )

    @property
    def repository(self) -> PayrollRepository:
        return self._repository

    @property
    def settings(self) -> PayrollSettings:
        return self._settings

    # ------------------------------------------------------------------
    # work calendar
    # ------------------------------------------------------------------
    def calendar(self) -> WorkCalendar:
        return WorkCalendar(self._repository.list_holidays(), self._repository.list_overrides())

    def working_days(self, year: int, month: int, *, include_annual: bool = False) -> WorkingDaysSummary:
        return self.calendar().working_days(year, month, include_annual=include_annual)

    def save_overrides(
        self,
        year: int,
        month: int,
        *,
        no_work_days: Iterable[int] = (),
        working_weekend_days: Iterable[int] = (),
    ) -> WorkingDaysSummary:
        override = validate_override(
            WorkCalendarOverride(
                year=year,
                month=month,
                no_work_days=list(no_work_days),
                working_weekend_days=list(working_weekend_days),
            )
        )
        self._repository.save_override(override)
        logger.info("saved work calendar override %s", override.key)
        return self.working_days(year, month)

    # ------------------------------------------------------------------
    # schedules
    # ------------------------------------------------------------------
    def set_active_schedule(self, schedule_id: str) -> PayrollSchedule:
        schedule = self._repository.set_active_schedule(schedule_id)
        logger.info("activated payroll schedule %s", schedule_id)
        return schedule

    def should_generate_today(self, today: date | None = None) -> ShouldGenerateResult:
        today = today or manila_today()
        return should_generate_today(
            self._repository.get_active_schedule(),
            today,
            self._repository.has_results_for_period,
        )

    def deadline_status(self, today: date | None = None) -> DeadlineStatus:
        today = today or manila_today()
        return check_deadline_status(
            self._repository.get_active_schedule(),
            today,
            self._repository.has_results_within,
        )

    def auto_generate(
        self,
        today: date | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> GenerationReport:
        decision = self.should_generate_today(today)
        if not decision.should_generate or decision.period is None:
            logger.info("automatic payroll generation skipped: %s", decision.reason)
            return GenerationReport(generated=False, scope="all", period=decision.period, reason=decision.reason)

        report = self.generate(
            decision.period.start,
            decision.period.end,
            scope="all",
            schedule_id=decision.period.schedule_id,
            cancel_event=cancel_event,
        )
        report.period = decision.period
        report.reason = decision.reason
        return report

    # ------------------------------------------------------------------
    # generation
    # ------------------------------------------------------------------
    def _eligible_employees(self, user_ids: Sequence[str] | None) -> list[Employee]:
        employees = [
            employee
            for employee in self._repository.list_employees()
            if employee.role == EmployeeRole.EMPLOYEE and employee.status != EmploymentStatus.INACTIVE
        ]
        if user_ids:
            wanted = set(user_ids)
            employees = [employee for employee in employees if employee.id in wanted]
        return employees

    def compute(self, employee: Employee, context: GenerationContext) -> PayrollResultModel:
        """Pure computation for one employee; nothing is stored."""

        records = self._repository.list_attendance(employee.id, context.period_start, context.period_end)
        daily_rate = resolve_daily_rate(employee, context.salary_grades, context.rules)
        return calculate_payroll(
            PayrollInputs(
                employee=employee,
                period_start=context.period_start,
                period_end=context.period_end,
                daily_rate=Decimal(daily_rate),
                records=records,
                rules=context.rules,
                holiday_on=context.calendar.holiday_on,
                schedule_id=context.schedule_id,
            ),
            self._settings,
        )

    def _generate_one(self, employee: Employee, context: GenerationContext) -> PayrollResultModel:
        result = self.compute(employee, context)
        return self._repository.upsert_result(result, reset_status=context.reset_status)

    def generate(
        self,
        period_start: date | None = None,
        period_end: date | None = None,
        *,
        user_ids: Sequence[str] | None = None,
        scope: str = "all",
        today: date | None = None,
        reset_status: bool = False,
        schedule_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> GenerationReport:
        """Compute and upsert payroll results for a period.

        ``scope="user"`` raises on the first problem; ``"all"`` and
        ``"current_month"`` isolate failures per employee and report them.
        """

        validate_scope(scope)
        if scope == "current_month":
            today = today or manila_today()
            period_start, period_end = month_bounds(today.year, today.month)
        period_start, period_end = validate_period(period_start, period_end)

        if schedule_id is None:
            active = self._repository.get_active_schedule()
            schedule_id = active.id if active else None

        context = GenerationContext(
            period_start=period_start,
            period_end=period_end,
            rules=tuple(self._repository.list_rules()),
            salary_grades=self._repository.list_salary_grades(),
            calendar=self.calendar(),
            schedule_id=schedule_id,
            reset_status=reset_status,
        )
        period = PayPeriod(start=period_start, end=period_end, schedule_id=schedule_id)

        if scope == "user":
            return self._generate_users(user_ids, context, period)

        employees = self._eligible_employees(user_ids)
        logger.info(
            "generating payroll for %d employees, period %s to %s",
            len(employees),
            period_start.isoformat(),
            period_end.isoformat(),
        )
        by_id = {employee.id: employee for employee in employees}
        outcome = self._runner.run(
            [(employee.id, lambda employee=employee: self._generate_one(employee, context)) for employee in employees],
            cancel_event=cancel_event,
        )

        results = [outcome.completed[employee.id] for employee in employees if employee.id in outcome.completed]
        errors = [
            GenerationError(user_id=user_id, user_name=by_id[user_id].full_name, error=message)
            for user_id, message in outcome.failed.items()
        ]
        logger.info(
            "payroll generation finished: %d updated, %d failed, %d skipped",
            len(results),
            len(errors),
            len(outcome.skipped),
        )
        return GenerationReport(
            generated=bool(results),
            scope=scope,
            period=period,
            results=results,
            errors=errors,
            skipped=outcome.skipped,
            users_processed=len(results) + len(errors),
            users_updated=len(results),
            users_failed=len(errors),
        )

    def _generate_users(
        self,
        user_ids: Sequence[str] | None,
        context: GenerationContext,
        period: PayPeriod,
    ) -> GenerationReport:
        if not user_ids:
            raise ValidationError("user_ids is required when scope is 'user'")

        # Every user is checked before anything is written.
        employees: list[Employee] = []
        for user_id in user_ids:
            employee = self._repository.get_employee(user_id)
            if employee is None:
                raise EmployeeNotFoundError(f"employee {user_id!r} not found")
            records = self._repository.list_attendance(user_id, context.period_start, context.period_end)
            if not records:
                raise NoAttendanceDataError(
                    f"no attendance data for {employee.full_name} between "
                    f"{context.period_start.isoformat()} and {context.period_end.isoformat()}"
                )
            employees.append(employee)

        computed = [self.compute(employee, context) for employee in employees]
        results = [
            self._repository.upsert_result(result, reset_status=context.reset_status)
            for result in computed
        ]

        return GenerationReport(
            generated=True,
            scope="user",
            period=period,
            results=results,
            users_processed=len(results),
            users_updated=len(results),
        )

    def list_results(
        self,
        start: date | None = None,
        end: date | None = None,
        user_id: str | None = None,
    ) -> list[PayrollResultModel]:
        return self._repository.list_results(start, end, user_id)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()
