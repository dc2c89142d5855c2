from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

import pandas as pd

from payroll_engine.core.schema import PayrollResultModel

COLUMNS = ["user_id", "employee", "amount", "period_start", "period_end"]


def bank_payroll_frame(
    rows: Iterable[PayrollResultModel],
    names: Mapping[str, str] | None = None,
) -> pd.DataFrame:
    names = names or {}
    records = []
    for row in rows:
        records.append({
            "user_id": row.user_id,
            "employee": names.get(row.user_id, row.user_id),
            "amount": f"{row.net_pay:.2f}",
            "period_start": row.pay_period_start.isoformat(),
            "period_end": row.pay_period_end.isoformat(),
        })
    return pd.DataFrame(records, columns=COLUMNS)


def export_bank_payroll(
    path: Path,
    rows: Iterable[PayrollResultModel],
    names: Mapping[str, str] | None = None,
) -> Path:
    df = bank_payroll_frame(rows, names)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
