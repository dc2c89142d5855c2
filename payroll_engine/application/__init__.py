"""Application services."""

from .attendance import AttendanceService
from .payroll import GenerationContext, PayrollService
from .runtime import (
    get_attendance_service,
    get_payroll_service,
    reset_payroll_state,
    settings_from_env,
)

__all__ = [
    "AttendanceService",
    "GenerationContext",
    "PayrollService",
    "get_attendance_service",
    "get_payroll_service",
    "reset_payroll_state",
    "settings_from_env",
]
