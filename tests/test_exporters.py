import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pandas as pd

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.schema import AppliedRule, PayrollResultModel, RuleCategory, RuleType
from payroll_engine.exporters import export_bank_payroll, export_payroll_register, payroll_register_frame


def _result(user_id: str, net: str) -> PayrollResultModel:
    return PayrollResultModel(
        user_id=user_id,
        pay_period_start=date(2025, 3, 1),
        pay_period_end=date(2025, 3, 15),
        net_pay=Decimal(net),
        applied_rules=[
            AppliedRule(
                rule_id="r1",
                rule_name="Rice subsidy",
                rule_type=RuleType.ALLOWANCE,
                category=RuleCategory.OTHER,
                amount=Decimal("500"),
                is_percentage=False,
            )
        ],
    )


def test_bank_payroll_export_uses_names(tmp_path):
    path = export_bank_payroll(
        tmp_path / "out" / "bank.csv",
        [_result("e1", "6870"), _result("e9", "100.5")],
        {"e1": "Ana Cruz"},
    )

    df = pd.read_csv(path, dtype=str)

    assert list(df.columns) == ["user_id", "employee", "amount", "period_start", "period_end"]
    assert df.iloc[0].tolist() == ["e1", "Ana Cruz", "6870.00", "2025-03-01", "2025-03-15"]
    assert df.iloc[1]["employee"] == "e9"
    assert df.iloc[1]["amount"] == "100.50"


def test_payroll_register_flattens_rules(tmp_path):
    frame = payroll_register_frame([_result("e1", "10")])

    assert "applied_rules" not in frame.columns
    assert frame.loc[0, "applied_rule_count"] == 1
    assert frame.loc[0, "status"] == "GENERATED"

    path = export_payroll_register(tmp_path / "register.csv", [_result("e1", "10")])
    assert path.exists()
