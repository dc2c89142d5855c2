from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from pydantic import ValidationError as PydanticValidationError

from payroll_engine.application import get_attendance_service
from payroll_engine.core.schema import Punch
from payroll_engine.core.validation import ValidationError
from payroll_engine.extractors import PunchSheetError, parse_punch_sheet

from .common import parse_date, pick, to_http_error

router = APIRouter(prefix="/attendance", tags=["attendance"])

ALLOWED_SUFFIXES = {".csv", ".xlsx", ".xlsm"}


@router.post("/punches")
async def import_punches(payload: dict) -> dict:
    items = payload.get("punches")
    if not isinstance(items, list) or not items:
        raise HTTPException(status_code=400, detail="punches must be a non-empty list")
    try:
        punches = [Punch.model_validate(item) for item in items]
    except PydanticValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False)) from exc

    service = get_attendance_service()
    summary = await asyncio.to_thread(service.import_punches, punches)
    return summary.model_dump(mode="json")


@router.post("/upload")
async def upload_punch_sheet(file: UploadFile = File(...)) -> dict:
    """Import a biometric punch export (CSV or Excel)."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
    suffix = Path(file.filename).suffix.lower()
    if suffix not in ALLOWED_SUFFIXES:
        raise HTTPException(status_code=400, detail="punch sheets must be CSV or Excel files")

    try:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / f"upload{suffix}"
            with path.open("wb") as target:
                shutil.copyfileobj(file.file, target)
            try:
                parsed = await asyncio.to_thread(parse_punch_sheet, path)
            except PunchSheetError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        await file.close()

    service = get_attendance_service()
    summary = await asyncio.to_thread(service.import_punches, parsed.punches)
    data = summary.model_dump(mode="json")
    data["rejected_rows"] = parsed.rejected_rows
    return data


@router.post("/recompute")
async def recompute_attendance(payload: dict) -> dict:
    user_ids = pick(payload, "user_ids", "userIds")
    user_id = pick(payload, "user_id", "userId")
    if user_id and not user_ids:
        user_ids = [user_id]

    service = get_attendance_service()
    try:
        records = await asyncio.to_thread(
            service.recompute,
            parse_date(pick(payload, "start", "start_date", "startDate"), "start"),
            parse_date(pick(payload, "end", "end_date", "endDate"), "end"),
            [str(item) for item in user_ids] if user_ids else None,
        )
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return {"items": [record.model_dump(mode="json") for record in records]}


@router.get("")
async def list_attendance(
    user_id: str | None = Query(default=None),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
) -> dict:
    service = get_attendance_service()
    records = service.list_records(user_id, parse_date(start, "start"), parse_date(end, "end"))
    return {"items": [record.model_dump(mode="json") for record in records]}
