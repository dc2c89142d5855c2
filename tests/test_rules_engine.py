import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payroll_engine.core.rules_engine import apply_rules, infer_legacy_category, resolve_daily_rate_rule, rule_amount
from payroll_engine.core.schema import PayrollRule, RuleCategory, RuleType


def _rule(rule_id="r1", **overrides):
    data = {"id": rule_id, "name": rule_id, "type": RuleType.BONUS, "amount": Decimal("10")}
    data.update(overrides)
    return PayrollRule(**data)


def test_percentage_uses_gross_by_default():
    assert rule_amount(_rule(is_percentage=True), Decimal("1000"), Decimal("2000")) == Decimal("200")


def test_percentage_of_basic_salary():
    rule = _rule(is_percentage=True, computation_basis="basic_salary")

    assert rule_amount(rule, Decimal("1000"), Decimal("2000")) == Decimal("100")


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"is_percentage": True, "max_amount": Decimal("150")}, Decimal("150")),
        ({"is_percentage": True, "min_amount": Decimal("300")}, Decimal("300")),
        ({"amount": Decimal("500"), "max_amount": Decimal("400")}, Decimal("400")),
        ({"amount": Decimal("50"), "min_amount": Decimal("0")}, Decimal("50")),
    ],
)
def test_amounts_are_clamped_after_evaluation(overrides, expected):
    assert rule_amount(_rule(**overrides), Decimal("1000"), Decimal("2000")) == expected


def test_apply_filters_by_kind_activity_and_assignment():
    rules = [
        _rule("bonus", amount=Decimal("100")),
        _rule("allowance", type=RuleType.ALLOWANCE, amount=Decimal("50"), category=RuleCategory.ALLOWANCE),
        _rule("inactive", amount=Decimal("999"), is_active=False),
        _rule("deduction", type=RuleType.DEDUCTION, amount=Decimal("25")),
        _rule("someone-else", amount=Decimal("70"), apply_to_all=False, assigned_user_ids=["u2"]),
        _rule("mine", amount=Decimal("30"), apply_to_all=False, assigned_user_ids=["u1"]),
    ]

    earnings = apply_rules(rules, Decimal("1000"), Decimal("1000"), "earnings", user_id="u1")
    deductions = apply_rules(rules, Decimal("1000"), Decimal("1000"), "deductions", user_id="u1")

    assert [item.rule_id for item in earnings.breakdown] == ["bonus", "allowance", "mine"]
    assert earnings.total == Decimal("180")
    assert earnings.total_for(RuleCategory.ALLOWANCE) == Decimal("50")
    assert earnings.total_excluding(RuleCategory.ALLOWANCE) == Decimal("130")
    assert deductions.total == Decimal("25")


def test_breakdown_records_rate_for_percentage_rules():
    application = apply_rules([_rule(is_percentage=True)], Decimal("0"), Decimal("500"), "earnings")

    entry = application.breakdown[0]
    assert entry.amount == Decimal("50")
    assert entry.rate == Decimal("10")
    assert entry.is_percentage is True
    with pytest.raises(ValueError):
        entry.amount = Decimal("1")


def test_user_specific_daily_rate_rule_wins():
    rules = [
        _rule("everyone", type=RuleType.DAILY_RATE, amount=Decimal("500")),
        _rule("special", type=RuleType.DAILY_RATE, amount=Decimal("700"), apply_to_all=False, assigned_user_ids=["u1"]),
    ]

    assert resolve_daily_rate_rule(rules, "u1") == Decimal("700")
    assert resolve_daily_rate_rule(rules, "u2") == Decimal("500")
    assert resolve_daily_rate_rule([], "u1") is None


@pytest.mark.parametrize(
    "name,rule_type,expected",
    [
        ("GSIS Premium", "deduction", RuleCategory.CONTRIBUTION),
        ("Pag-IBIG", "deduction", RuleCategory.CONTRIBUTION),
        ("Withholding Tax", "deduction", RuleCategory.TAX),
        ("Salary Loan", "deduction", RuleCategory.LOAN),
        ("13th Month Pay", "bonus", RuleCategory.MANDATORY_BENEFIT),
        ("Service Incentive Leave", "additional", RuleCategory.LEAVE_BENEFIT),
        ("Rice Allowance", "allowance", RuleCategory.ALLOWANCE),
        ("Performance bonus", "bonus", RuleCategory.BONUS),
        ("Basic pay", "daily_rate", RuleCategory.BASE_PAY),
        ("Uniform", "deduction", RuleCategory.OTHER),
    ],
)
def test_legacy_category_migration(name, rule_type, expected):
    assert infer_legacy_category(name, rule_type) == expected
