from __future__ import annotations

import asyncio
import os
from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import Response

from payroll_engine.application import get_payroll_service
from payroll_engine.core.errors import PayrollError
from payroll_engine.core.validation import ValidationError
from payroll_engine.exporters import bank_payroll_frame

from .common import parse_date, pick, to_http_error

router = APIRouter(prefix="/payroll", tags=["payroll"])
cron_router = APIRouter(prefix="/cron", tags=["cron"])


@router.post("/generate")
async def generate_payroll(payload: dict) -> dict:
    user_ids = pick(payload, "user_ids", "userIds")
    if user_ids is not None and not isinstance(user_ids, list):
        raise HTTPException(status_code=400, detail="user_ids must be a list")

    service = get_payroll_service()
    try:
        report = await asyncio.to_thread(
            service.generate,
            parse_date(pick(payload, "period_start", "periodStart"), "period_start"),
            parse_date(pick(payload, "period_end", "periodEnd"), "period_end"),
            user_ids=[str(item) for item in user_ids] if user_ids else None,
            scope=str(payload.get("scope") or "all"),
            today=parse_date(payload.get("today"), "today"),
            reset_status=bool(pick(payload, "reset_status", "resetStatus")),
        )
    except (ValidationError, PayrollError) as exc:
        raise to_http_error(exc) from exc
    return report.model_dump(mode="json")


@router.get("/should-generate")
async def should_generate(today: str | None = Query(default=None)) -> dict:
    service = get_payroll_service()
    result = service.should_generate_today(parse_date(today, "today"))
    return result.model_dump(mode="json")


@router.post("/auto-generate")
async def auto_generate(payload: dict | None = None) -> dict:
    payload = payload or {}
    service = get_payroll_service()
    report = await asyncio.to_thread(service.auto_generate, parse_date(payload.get("today"), "today"))
    return report.model_dump(mode="json")


@router.get("/deadline-status")
async def deadline_status(today: str | None = Query(default=None)) -> dict:
    service = get_payroll_service()
    status = service.deadline_status(parse_date(today, "today"))
    data = asdict(status)
    for key in ("expected_generation_date", "next_generation_date"):
        if data[key] is not None:
            data[key] = data[key].isoformat()
    return data


@router.get("/results")
async def list_results(
    period_start: str | None = Query(default=None),
    period_end: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
) -> dict:
    service = get_payroll_service()
    rows = service.list_results(
        parse_date(period_start, "period_start"),
        parse_date(period_end, "period_end"),
        user_id,
    )
    return {"items": [row.model_dump(mode="json") for row in rows]}


@router.get("/results/export")
async def export_results(
    period_start: str = Query(...),
    period_end: str = Query(...),
) -> Response:
    service = get_payroll_service()
    start = parse_date(period_start, "period_start")
    end = parse_date(period_end, "period_end")
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="period_start and period_end are required")
    rows = service.list_results(start, end)
    names = {employee.id: employee.full_name for employee in service.repository.list_employees()}
    content = bank_payroll_frame(rows, names).to_csv(index=False)
    filename = f"bank_payroll_{start.isoformat()}_{end.isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/schedules/{schedule_id}/activate")
async def activate_schedule(schedule_id: str) -> dict:
    service = get_payroll_service()
    try:
        schedule = service.set_active_schedule(schedule_id)
    except PayrollError as exc:
        raise to_http_error(exc) from exc
    return schedule.model_dump(mode="json")


@cron_router.get("/payroll-generation")
async def cron_payroll_generation(authorization: str | None = Header(default=None)) -> dict:
    secret = os.getenv("CRON_SECRET")
    if secret and authorization != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")

    service = get_payroll_service()
    report = await asyncio.to_thread(service.auto_generate)
    return {
        "success": True,
        "generated": report.generated,
        "reason": report.reason,
        "users_processed": report.users_processed,
        "users_failed": report.users_failed,
        "period": report.period.model_dump(mode="json") if report.period else None,
    }
