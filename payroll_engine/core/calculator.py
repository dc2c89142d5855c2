"""Per-employee payroll computation over already-fetched inputs.

This is the in-process replacement for the database-side period calculation:
given attendance records, rules, rates and statutory tables for one employee and
one pay period it produces a fully populated payroll result.  It performs no
I/O, so identical inputs always yield identical figures.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Mapping, Sequence

from payroll_engine.core.errors import MissingRateError
from payroll_engine.core.periods import periods_per_year
from payroll_engine.core.rules_engine import apply_rules, resolve_daily_rate_rule
from payroll_engine.core.schema import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    Holiday,
    HolidayType,
    PayrollResultModel,
    PayrollRule,
    RuleCategory,
    SalaryGrade,
)
from payroll_engine.core.settings import PayrollSettings, RatesConfig, WorkingHoursConfig
from payroll_engine.core.statutory import compute_contributions, taxable_income, withholding_tax

_ZERO = Decimal("0")
_CENT = Decimal("0.01")
_SIXTY = Decimal("60")
_WORKING_DAYS_PER_MONTH = Decimal("22")

HolidayLookup = Callable[[date], Holiday | None]


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def hourly_from_daily(daily_rate: Decimal, hours_per_day: Decimal = Decimal("8")) -> Decimal:
    return _quantize(daily_rate / hours_per_day)


def monthly_from_daily(daily_rate: Decimal) -> Decimal:
    return _quantize(daily_rate * _WORKING_DAYS_PER_MONTH)


def daily_from_monthly(monthly_rate: Decimal) -> Decimal:
    return _quantize(monthly_rate / _WORKING_DAYS_PER_MONTH)


def resolve_daily_rate(
    employee: Employee,
    salary_grades: Mapping[int, SalaryGrade],
    rules: Iterable[PayrollRule],
) -> Decimal:
    """Employee override, then salary grade, then a ``daily_rate`` rule."""

    if employee.daily_rate is not None:
        return employee.daily_rate
    if employee.salary_grade is not None and employee.salary_grade in salary_grades:
        return salary_grades[employee.salary_grade].daily_rate
    from_rule = resolve_daily_rate_rule(rules, employee.id)
    if from_rule is not None:
        return from_rule
    raise MissingRateError(f"no salary grade or daily rate configured for {employee.full_name}")


@dataclass(slots=True)
class AttendanceSummary:
    days_worked: Decimal = _ZERO
    hours_worked: Decimal = _ZERO
    overtime_hours: Decimal = _ZERO
    late_minutes: int = 0
    undertime_minutes: int = 0
    regular_holiday_hours: Decimal = _ZERO
    special_holiday_hours: Decimal = _ZERO
    daily_overtime_hours: list[Decimal] = field(default_factory=list)
    record_count: int = 0

    @property
    def holiday_hours(self) -> Decimal:
        return self.regular_holiday_hours + self.special_holiday_hours

    @property
    def late_hours(self) -> Decimal:
        return Decimal(self.late_minutes) / _SIXTY

    @property
    def undertime_hours(self) -> Decimal:
        return Decimal(self.undertime_minutes) / _SIXTY


def summarize_attendance(
    records: Iterable[AttendanceRecord],
    start: date,
    end: date,
    holiday_on: HolidayLookup | None = None,
) -> AttendanceSummary:
    """Sum the per-day attendance facts inside ``[start, end]``.

    Rejected records are ignored.  Half-days count as half a day worked.
    """

    summary = AttendanceSummary()
    for record in sorted(records, key=lambda item: item.date):
        if not start <= record.date <= end or record.status == AttendanceStatus.REJECTED:
            continue
        summary.record_count += 1
        summary.late_minutes += record.late_minutes
        summary.undertime_minutes += record.undertime_minutes
        if record.hours_worked <= 0:
            continue

        summary.days_worked += Decimal("0.5") if record.is_half_day else Decimal("1")
        summary.hours_worked += record.hours_worked
        overtime = Decimal(record.overtime_minutes) / _SIXTY
        summary.overtime_hours += overtime
        summary.daily_overtime_hours.append(overtime)

        holiday = holiday_on(record.date) if holiday_on else None
        if holiday is not None:
            if holiday.type == HolidayType.REGULAR:
                summary.regular_holiday_hours += record.hours_worked
            else:
                summary.special_holiday_hours += record.hours_worked
    return summary


def overtime_pay(daily_overtime_hours: Sequence[Decimal], hourly_rate: Decimal, rates: RatesConfig) -> Decimal:
    """First ``overtime_tier_hours`` of each day at rate 1, the rest at rate 2."""

    total = _ZERO
    for hours in daily_overtime_hours:
        if hours <= 0:
            continue
        first = min(hours, rates.overtime_tier_hours)
        rest = max(_ZERO, hours - rates.overtime_tier_hours)
        total += first * hourly_rate * rates.overtime_rate_1 + rest * hourly_rate * rates.overtime_rate_2
    return total


def holiday_premium(summary: AttendanceSummary, hourly_rate: Decimal, rates: RatesConfig) -> Decimal:
    """Additional pay on top of the regular rate for hours worked on holidays."""

    regular = summary.regular_holiday_hours * hourly_rate * (rates.regular_holiday_rate - 1)
    special = summary.special_holiday_hours * hourly_rate * (rates.special_holiday_rate - 1)
    return max(_ZERO, regular) + max(_ZERO, special)


def late_deduction(late_minutes: int, hourly_rate: Decimal, daily_rate: Decimal, config: WorkingHoursConfig) -> Decimal:
    if late_minutes <= 0:
        return _ZERO
    late_hours = Decimal(late_minutes) / _SIXTY
    basis = config.late_deduction_basis
    amount = config.late_deduction_amount
    if basis == "fixed":
        return late_hours * amount
    if basis == "hourly":
        return late_hours * hourly_rate * amount
    if basis == "daily":
        return late_hours * daily_rate * amount
    return Decimal(late_minutes) * (hourly_rate / _SIXTY) * amount


@dataclass(slots=True)
class PayrollInputs:
    employee: Employee
    period_start: date
    period_end: date
    daily_rate: Decimal
    records: Sequence[AttendanceRecord]
    rules: Sequence[PayrollRule]
    holiday_on: HolidayLookup | None = None
    schedule_id: str | None = None


def calculate_payroll(inputs: PayrollInputs, settings: PayrollSettings) -> PayrollResultModel:
    user_id = inputs.employee.id
    rates = settings.rates
    daily_rate = inputs.daily_rate
    hourly_rate = daily_rate / settings.working_hours.daily_hours

    summary = summarize_attendance(inputs.records, inputs.period_start, inputs.period_end, inputs.holiday_on)

    regular_hours = max(_ZERO, summary.hours_worked - summary.overtime_hours)
    regular_pay = _quantize(regular_hours * hourly_rate)
    ot_pay = _quantize(overtime_pay(summary.daily_overtime_hours, hourly_rate, rates))
    holiday_pay = _quantize(holiday_premium(summary, hourly_rate, rates))
    attendance_gross = regular_pay + ot_pay + holiday_pay

    earnings = apply_rules(inputs.rules, regular_pay, attendance_gross, "earnings", user_id=user_id)
    allowances = _quantize(earnings.total_for(RuleCategory.ALLOWANCE))
    bonuses = _quantize(earnings.total_for(RuleCategory.BONUS))
    thirteenth = _quantize(earnings.total_for(RuleCategory.MANDATORY_BENEFIT))
    sil = _quantize(earnings.total_for(RuleCategory.LEAVE_BENEFIT))
    other_earnings = _quantize(
        earnings.total_excluding(
            RuleCategory.ALLOWANCE,
            RuleCategory.BONUS,
            RuleCategory.MANDATORY_BENEFIT,
            RuleCategory.LEAVE_BENEFIT,
        )
    )
    total_earnings = attendance_gross + allowances + bonuses + thirteenth + sil + other_earnings
    gross_pay = total_earnings

    raw_contributions = compute_contributions(daily_rate * summary.days_worked, settings.contributions)
    gsis = _quantize(raw_contributions.gsis)
    philhealth = _quantize(raw_contributions.philhealth)
    pagibig = _quantize(raw_contributions.pagibig)

    taxable = _quantize(
        taxable_income(
            gross_pay,
            raw_contributions,
            thirteenth_month=thirteenth,
            service_incentive_leave=sil,
            exemptions=settings.tax.exemptions,
        )
    )
    per_year = periods_per_year(inputs.period_start, inputs.period_end)
    monthly_tax = withholding_tax(taxable * per_year, settings.tax.brackets)
    tax = _quantize(monthly_tax * 12 / per_year)

    late = _quantize(late_deduction(summary.late_minutes, hourly_rate, daily_rate, settings.working_hours))
    undertime = _quantize(summary.undertime_hours * hourly_rate)

    deductions = apply_rules(inputs.rules, regular_pay, gross_pay, "deductions", user_id=user_id)
    loans = _quantize(deductions.total_for(RuleCategory.LOAN))
    other_deductions = _quantize(deductions.total_excluding(RuleCategory.LOAN))

    total_deductions = gsis + philhealth + pagibig + tax + late + undertime + loans + other_deductions
    net_pay = max(_ZERO, gross_pay - total_deductions)

    return PayrollResultModel(
        user_id=user_id,
        pay_period_start=inputs.period_start,
        pay_period_end=inputs.period_end,
        payroll_schedule_id=inputs.schedule_id,
        daily_rate=_quantize(daily_rate),
        hourly_rate=_quantize(hourly_rate),
        days_worked=_quantize(summary.days_worked),
        hours_worked=_quantize(summary.hours_worked),
        overtime_hours=_quantize(summary.overtime_hours),
        undertime_hours=_quantize(summary.undertime_hours),
        late_hours=_quantize(summary.late_hours),
        holiday_hours=_quantize(summary.holiday_hours),
        regular_pay=regular_pay,
        overtime_pay=ot_pay,
        holiday_pay=holiday_pay,
        allowances=allowances,
        bonuses=bonuses,
        thirteenth_month_pay=thirteenth,
        service_incentive_leave=sil,
        other_earnings=other_earnings,
        total_earnings=_quantize(total_earnings),
        gross_pay=_quantize(gross_pay),
        gsis_contribution=gsis,
        philhealth_contribution=philhealth,
        pagibig_contribution=pagibig,
        taxable_income=taxable,
        withholding_tax=tax,
        late_deductions=late,
        undertime_deductions=undertime,
        loan_deductions=loans,
        other_deductions=other_deductions,
        total_deductions=_quantize(total_deductions),
        net_pay=_quantize(net_pay),
        applied_rules=[*earnings.breakdown, *deductions.breakdown],
    )
