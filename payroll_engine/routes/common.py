"""Request parsing and error translation shared by the routers."""
from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import HTTPException

from payroll_engine.core.errors import (
    EmployeeNotFoundError,
    NoAttendanceDataError,
    PayrollError,
    ScheduleNotFoundError,
)
from payroll_engine.core.validation import ValidationError

_NOT_FOUND = (NoAttendanceDataError, EmployeeNotFoundError, ScheduleNotFoundError)


def pick(payload: dict, *names: str) -> Any:
    """First non-null value among ``names`` (snake_case and camelCase spellings)."""

    for name in names:
        value = payload.get(name)
        if value is not None:
            return value
    return None


def parse_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{field} must be an ISO date (YYYY-MM-DD)") from exc


def parse_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"{field} must be an integer") from exc


def to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, _NOT_FOUND):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PayrollError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
