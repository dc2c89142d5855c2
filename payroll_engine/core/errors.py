"""Exception hierarchy for payroll computation failures."""
from __future__ import annotations


class PayrollError(RuntimeError):
    """Base class for recoverable payroll failures."""


class MissingRateError(PayrollError):
    """Raised when no daily rate can be resolved for an employee."""


class NoAttendanceDataError(PayrollError):
    """Raised when a single-user computation finds no attendance in range."""


class EmployeeNotFoundError(PayrollError):
    pass


class ScheduleNotFoundError(PayrollError):
    pass


class ConfigurationFetchError(PayrollError):
    """Raised when the remote configuration document cannot be loaded."""
