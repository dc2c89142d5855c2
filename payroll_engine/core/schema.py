from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, constr, field_validator


class PunchType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class AttendanceStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class HolidayType(str, Enum):
    REGULAR = "REGULAR"
    SPECIAL = "SPECIAL"


class EmployeeRole(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"


class EmploymentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PROBATIONARY = "PROBATIONARY"
    ON_LEAVE = "ON_LEAVE"
    INACTIVE = "INACTIVE"


class CutoffType(str, Enum):
    MONTHLY = "monthly"
    BI_MONTHLY = "bi-monthly"
    WEEKLY = "weekly"


class RuleType(str, Enum):
    BASE = "base"
    DAILY_RATE = "daily_rate"
    DEDUCTION = "deduction"
    BONUS = "bonus"
    ALLOWANCE = "allowance"
    ADDITIONAL = "additional"


class RuleCategory(str, Enum):
    ALLOWANCE = "allowance"
    BONUS = "bonus"
    MANDATORY_BENEFIT = "mandatory_benefit"
    LEAVE_BENEFIT = "leave_benefit"
    LOAN = "loan"
    CONTRIBUTION = "contribution"
    TAX = "tax"
    BASE_PAY = "base_pay"
    OTHER = "other"


class ComputationBasis(str, Enum):
    GROSS = "gross"
    BASIC_SALARY = "basic_salary"


class ContributionType(str, Enum):
    GSIS = "gsis"
    PHILHEALTH = "philhealth"
    PAGIBIG = "pagibig"


class Punch(BaseModel):
    user_id: str
    timestamp: datetime
    type: PunchType

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("punch timestamp must be timezone-aware")
        return value


class AttendanceRecord(BaseModel):
    user_id: str
    date: date
    morning_time_in: datetime | None = None
    morning_time_out: datetime | None = None
    afternoon_time_in: datetime | None = None
    afternoon_time_out: datetime | None = None
    hours_worked: Decimal = Decimal("0")
    late_minutes: int = 0
    undertime_minutes: int = 0
    overtime_minutes: int = 0
    is_late: bool = False
    is_absent: bool = False
    is_half_day: bool = False
    is_early_out: bool = False
    total_sessions: int = 0
    needs_review: bool = False
    orphan_punches: list[datetime] = Field(default_factory=list)
    status: AttendanceStatus = AttendanceStatus.PENDING


class Holiday(BaseModel):
    date: date
    name: str
    type: HolidayType = HolidayType.REGULAR
    is_recurring: bool = False


class WorkCalendarOverride(BaseModel):
    year: int
    month: int
    no_work_days: list[int] = Field(default_factory=list)
    working_weekend_days: list[int] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.year}_{self.month:02d}"


class PayrollSchedule(BaseModel):
    id: str
    name: str
    cutoff_type: CutoffType = CutoffType.MONTHLY
    days: list[int] = Field(default_factory=list)
    cutoff_days: list[int] = Field(default_factory=list)
    processing_days: list[int] = Field(default_factory=list)
    payroll_release_day: int | None = None
    is_active: bool = False


class PayrollRule(BaseModel):
    id: str
    name: str
    type: RuleType
    category: RuleCategory = RuleCategory.OTHER
    amount: Decimal
    is_percentage: bool = False
    computation_basis: ComputationBasis = ComputationBasis.GROSS
    apply_to_all: bool = True
    assigned_user_ids: list[str] = Field(default_factory=list)
    is_active: bool = True
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


class AppliedRule(BaseModel):
    rule_id: str
    rule_name: str
    rule_type: RuleType
    category: RuleCategory
    amount: Decimal
    is_percentage: bool
    rate: Decimal | None = None

    model_config = {"frozen": True}


class SalaryGrade(BaseModel):
    grade: int
    daily_rate: Decimal
    position: str | None = None
    rank: int | None = None


class Employee(BaseModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    employee_type: str | None = None
    role: EmployeeRole = EmployeeRole.EMPLOYEE
    status: EmploymentStatus = EmploymentStatus.ACTIVE
    salary_grade: int | None = None
    daily_rate: Decimal | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.id


class PayrollResultModel(BaseModel):
    user_id: str
    pay_period_start: date
    pay_period_end: date
    payroll_schedule_id: str | None = None
    daily_rate: Decimal = Decimal("0")
    hourly_rate: Decimal = Decimal("0")
    days_worked: Decimal = Decimal("0")
    hours_worked: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    undertime_hours: Decimal = Decimal("0")
    late_hours: Decimal = Decimal("0")
    holiday_hours: Decimal = Decimal("0")
    regular_pay: Decimal = Decimal("0")
    overtime_pay: Decimal = Decimal("0")
    holiday_pay: Decimal = Decimal("0")
    allowances: Decimal = Decimal("0")
    bonuses: Decimal = Decimal("0")
    thirteenth_month_pay: Decimal = Decimal("0")
    service_incentive_leave: Decimal = Decimal("0")
    other_earnings: Decimal = Decimal("0")
    total_earnings: Decimal = Decimal("0")
    gross_pay: Decimal = Decimal("0")
    gsis_contribution: Decimal = Decimal("0")
    philhealth_contribution: Decimal = Decimal("0")
    pagibig_contribution: Decimal = Decimal("0")
    taxable_income: Decimal = Decimal("0")
    withholding_tax: Decimal = Decimal("0")
    late_deductions: Decimal = Decimal("0")
    undertime_deductions: Decimal = Decimal("0")
    loan_deductions: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    applied_rules: list[AppliedRule] = Field(default_factory=list)
    status: Literal["GENERATED", "REVIEWED", "APPROVED", "RELEASED"] = "GENERATED"
    is_approved: bool = False
    is_paid: bool = False
    rule_version: str = "rules_v2"

    @property
    def key(self) -> tuple[str, date, date]:
        return (self.user_id, self.pay_period_start, self.pay_period_end)


class PayPeriod(BaseModel):
    start: date
    end: date
    schedule_id: str | None = None
    schedule_name: str | None = None
    schedule_type: CutoffType | None = None


class GenerationError(BaseModel):
    user_id: str
    user_name: str | None = None
    error: str


class GenerationReport(BaseModel):
    generated: bool
    scope: Literal["all", "user", "current_month"]
    period: PayPeriod | None = None
    results: list[PayrollResultModel] = Field(default_factory=list)
    errors: list[GenerationError] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    users_processed: int = 0
    users_updated: int = 0
    users_failed: int = 0
    reason: str | None = None


class ShouldGenerateResult(BaseModel):
    should_generate: bool
    reason: str
    period: PayPeriod | None = None


class WorkingDaysSummary(BaseModel):
    year: int
    month: int
    period_month: constr(pattern=r"^\d{4}-\d{2}$")
    total_days: int
    weekends: list[int]
    holidays: list[int]
    working_days: list[int]
    working_days_count: int
    overrides: WorkCalendarOverride
    annual_working_days: int | None = None


class PunchImportSummary(BaseModel):
    received: int
    accepted: int
    duplicates: int
    records: list[AttendanceRecord] = Field(default_factory=list)
