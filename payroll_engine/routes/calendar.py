from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from payroll_engine.application import get_payroll_service
from payroll_engine.core.validation import ValidationError

from .common import parse_int, pick, to_http_error

router = APIRouter(prefix="/work-calendar", tags=["work-calendar"])


@router.get("")
async def working_days(
    year: int = Query(...),
    month: int = Query(...),
    include_annual: bool = Query(default=False),
) -> dict:
    service = get_payroll_service()
    try:
        summary = service.working_days(year, month, include_annual=include_annual)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return summary.model_dump(mode="json")


@router.post("/overrides")
async def save_overrides(payload: dict) -> dict:
    year = parse_int(payload.get("year"), "year")
    month = parse_int(payload.get("month"), "month")
    overrides = payload.get("overrides") or payload
    no_work_days = pick(overrides, "no_work_days", "noWorkDays") or []
    working_weekend_days = pick(overrides, "working_weekend_days", "workingWeekendDays") or []
    if not isinstance(no_work_days, list) or not isinstance(working_weekend_days, list):
        raise HTTPException(status_code=400, detail="override days must be lists of day numbers")

    service = get_payroll_service()
    try:
        summary = service.save_overrides(
            year,
            month,
            no_work_days=[parse_int(day, "day") for day in no_work_days],
            working_weekend_days=[parse_int(day, "day") for day in working_weekend_days],
        )
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return summary.model_dump(mode="json")
