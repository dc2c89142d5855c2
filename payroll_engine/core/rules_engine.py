"""Earnings and deduction rule evaluation."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Literal

from payroll_engine.core.schema import (
    AppliedRule,
    ComputationBasis,
    PayrollRule,
    RuleCategory,
    RuleType,
)

RuleKind = Literal["earnings", "deductions"]

EARNING_TYPES = frozenset({RuleType.BONUS, RuleType.ALLOWANCE, RuleType.ADDITIONAL})
DEDUCTION_TYPES = frozenset({RuleType.DEDUCTION})

_HUNDRED = Decimal("100")


@dataclass(slots=True)
class RuleApplication:
    total: Decimal = Decimal("0")
    breakdown: list[AppliedRule] = field(default_factory=list)

    def total_for(self, *categories: RuleCategory) -> Decimal:
        return sum((item.amount for item in self.breakdown if item.category in categories), Decimal("0"))

    def total_excluding(self, *categories: RuleCategory) -> Decimal:
        return sum((item.amount for item in self.breakdown if item.category not in categories), Decimal("0"))


def applies_to(rule: PayrollRule, user_id: str | None) -> bool:
    if rule.apply_to_all:
        return True
    return user_id is not None and user_id in rule.assigned_user_ids


def rule_amount(rule: PayrollRule, base: Decimal, gross: Decimal) -> Decimal:
    """Evaluate a single rule, then clamp to its optional min/max bounds."""

    if rule.is_percentage:
        basis = base if rule.computation_basis == ComputationBasis.BASIC_SALARY else gross
        amount = basis * rule.amount / _HUNDRED
    else:
        amount = rule.amount

    if rule.min_amount is not None and amount < rule.min_amount:
        amount = rule.min_amount
    if rule.max_amount is not None and amount > rule.max_amount:
        amount = rule.max_amount
    return amount


def apply_rules(
    rules: Iterable[PayrollRule],
    base: Decimal,
    gross: Decimal,
    kind: RuleKind,
    *,
    user_id: str | None = None,
) -> RuleApplication:
    """Apply active rules of the requested kind and return the frozen breakdown.

    When ``user_id`` is given, rules that neither apply to everyone nor list the
    user among their assignees are skipped.
    """

    wanted = EARNING_TYPES if kind == "earnings" else DEDUCTION_TYPES
    result = RuleApplication()
    for rule in rules:
        if not rule.is_active or rule.type not in wanted:
            continue
        if user_id is not None and not applies_to(rule, user_id):
            continue
        amount = rule_amount(rule, base, gross)
        result.total += amount
        result.breakdown.append(
            AppliedRule(
                rule_id=rule.id,
                rule_name=rule.name,
                rule_type=rule.type,
                category=rule.category,
                amount=amount,
                is_percentage=rule.is_percentage,
                rate=rule.amount if rule.is_percentage else None,
            )
        )
    return result


def resolve_daily_rate_rule(rules: Iterable[PayrollRule], user_id: str) -> Decimal | None:
    """Return the amount of the first active ``daily_rate`` rule for the user.

    User-specific assignments take precedence over apply-to-all rules.
    """

    fallback: Decimal | None = None
    for rule in rules:
        if not rule.is_active or rule.type != RuleType.DAILY_RATE:
            continue
        if not rule.apply_to_all and user_id in rule.assigned_user_ids:
            return rule.amount
        if rule.apply_to_all and fallback is None:
            fallback = rule.amount
    return fallback


_LEGACY_KEYWORDS: tuple[tuple[tuple[str, ...], RuleCategory], ...] = (
    (("gsis", "sss", "philhealth", "pag-ibig", "pagibig", "hdmf"), RuleCategory.CONTRIBUTION),
    (("withholding", "tax"), RuleCategory.TAX),
    (("loan", "salary advance", "cash advance"), RuleCategory.LOAN),
    (("13th", "thirteenth"), RuleCategory.MANDATORY_BENEFIT),
    (("service incentive",), RuleCategory.LEAVE_BENEFIT),
)


def infer_legacy_category(name: str, rule_type: RuleType | str) -> RuleCategory:
    """One-time migration for rules that were categorised by name matching."""

    lowered = name.lower()
    for keywords, category in _LEGACY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category

    rule_type = RuleType(rule_type)
    if rule_type == RuleType.ALLOWANCE:
        return RuleCategory.ALLOWANCE
    if rule_type == RuleType.BONUS:
        return RuleCategory.BONUS
    if rule_type in (RuleType.BASE, RuleType.DAILY_RATE):
        return RuleCategory.BASE_PAY
    return RuleCategory.OTHER
