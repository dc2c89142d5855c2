from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from payroll_engine.core.schema import PayrollResultModel

# The applied rules snapshot is nested; the register keeps one flat row per result.
_EXCLUDED = {"applied_rules"}


def payroll_register_frame(rows: Iterable[PayrollResultModel]) -> pd.DataFrame:
    records = []
    for row in rows:
        data = row.model_dump(mode="json", exclude=_EXCLUDED)
        data["applied_rule_count"] = len(row.applied_rules)
        records.append(data)
    return pd.DataFrame(records)


def export_payroll_register(path: Path, rows: Iterable[PayrollResultModel]) -> Path:
    df = payroll_register_frame(rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
