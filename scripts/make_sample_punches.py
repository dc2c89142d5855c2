#!/usr/bin/env python
from __future__ import annotations

import argparse
from datetime import date, timedelta
from pathlib import Path

from openpyxl import Workbook

DAY_PUNCHES = [("07:55", "IN"), ("12:01", "OUT"), ("12:58", "IN"), ("17:05", "OUT")]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample biometric punch workbook")
    parser.add_argument("--start", required=True, help="first day, YYYY-MM-DD")
    parser.add_argument("--days", type=int, default=5, help="number of consecutive days")
    parser.add_argument("--output", required=True, help="output file path (.xlsx)")
    parser.add_argument("--employee", default="EMP-001", help="employee id")
    args = parser.parse_args()

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Punches"
    sheet.append(["employee_id", "date", "time", "type"])

    first = date.fromisoformat(args.start)
    for offset in range(args.days):
        day = first + timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        for clock, kind in DAY_PUNCHES:
            sheet.append([args.employee, day.isoformat(), clock, kind])

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output)
    print(f"sample punches written to {output}")


if __name__ == "__main__":
    main()
