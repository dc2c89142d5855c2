import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from openpyxl import Workbook

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.schema import PunchType
from payroll_engine.extractors import PunchSheetError, parse_punch_sheet

MANILA = ZoneInfo("Asia/Manila")


def test_csv_with_timestamp_column(tmp_path):
    path = tmp_path / "punches.csv"
    path.write_text(
        "Employee ID,Timestamp,Punch\n"
        "e1,2025-03-03 08:00,Check In\n"
        "e1,2025-03-03 12:00,c/out\n"
        "e1,2025-03-03 13:00,lunch\n"
        ",2025-03-03 17:00,OUT\n",
        encoding="utf-8",
    )

    result = parse_punch_sheet(path)

    assert [(p.user_id, p.type) for p in result.punches] == [("e1", PunchType.IN), ("e1", PunchType.OUT)]
    assert result.punches[0].timestamp == datetime(2025, 3, 3, 8, 0, tzinfo=MANILA)
    assert result.rejected_rows == [4, 5]


def test_excel_with_separate_date_and_time(tmp_path):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["user_id", "date", "time", "type"])
    sheet.append(["e2", "2025-03-05", "07:45", "in"])
    sheet.append(["e2", "2025-03-05", "16:30", "out"])
    path = tmp_path / "punches.xlsx"
    workbook.save(path)

    result = parse_punch_sheet(path)

    assert len(result.punches) == 2
    assert result.rejected_rows == []
    assert result.punches[1].timestamp.astimezone(MANILA).hour == 16


def test_sheet_without_punch_type_is_rejected(tmp_path):
    path = tmp_path / "punches.csv"
    path.write_text("user_id,timestamp\ne1,2025-03-03 08:00\n", encoding="utf-8")

    with pytest.raises(PunchSheetError):
        parse_punch_sheet(path)
