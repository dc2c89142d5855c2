"""Government contributions and progressive withholding tax."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

from payroll_engine.core.schema import ContributionType
from payroll_engine.core.settings import ContributionTable, TaxBracket, TaxExemptions

_ZERO = Decimal("0")
_MONTHS = Decimal("12")


def _clamp(value: Decimal, lower: Decimal | None, upper: Decimal | None) -> Decimal:
    if lower is not None and value < lower:
        value = lower
    if upper is not None and value > upper:
        value = upper
    return value


def contribution(salary: Decimal, table: ContributionTable | None) -> Decimal:
    """Employee share of one contribution scheme.

    Salary brackets, when configured and matched, take precedence.  Otherwise a
    salary below ``min_salary`` is charged the flat ``min_contribution`` (or the
    rate applied to ``min_salary`` if no flat amount exists), and anything above
    ``max_salary`` is capped at the rate applied to ``max_salary``.
    """

    if table is None:
        return _ZERO

    for bracket in table.brackets:
        if bracket.salary_min <= salary <= bracket.salary_max:
            amount = salary * bracket.employee_rate
            return _clamp(
                amount,
                bracket.min_contribution if bracket.min_contribution is not None else table.min_contribution,
                bracket.max_contribution if bracket.max_contribution is not None else table.max_contribution,
            )

    if salary < table.min_salary and table.min_contribution is not None:
        return table.min_contribution

    base = _clamp(salary, table.min_salary, table.max_salary)
    return _clamp(base * table.employee_rate, table.min_contribution, table.max_contribution)


@dataclass(frozen=True, slots=True)
class Contributions:
    gsis: Decimal = _ZERO
    philhealth: Decimal = _ZERO
    pagibig: Decimal = _ZERO

    @property
    def total(self) -> Decimal:
        return self.gsis + self.philhealth + self.pagibig


def compute_contributions(salary: Decimal, tables: Mapping[ContributionType, ContributionTable]) -> Contributions:
    return Contributions(
        gsis=contribution(salary, tables.get(ContributionType.GSIS)),
        philhealth=contribution(salary, tables.get(ContributionType.PHILHEALTH)),
        pagibig=contribution(salary, tables.get(ContributionType.PAGIBIG)),
    )


def annual_tax(annual_taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    for bracket in brackets:
        upper = bracket.max
        if annual_taxable_income > bracket.min and (upper is None or annual_taxable_income <= upper):
            return bracket.fixed_amount + (annual_taxable_income - bracket.min) * bracket.rate
    if brackets and annual_taxable_income > brackets[-1].min:
        last = brackets[-1]
        return last.fixed_amount + (annual_taxable_income - last.min) * last.rate
    return _ZERO


def withholding_tax(annual_taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """Monthly withholding for an annualised taxable income."""

    return annual_tax(annual_taxable_income, brackets) / _MONTHS


def exempt_earnings(thirteenth_month: Decimal, service_incentive_leave: Decimal, exemptions: TaxExemptions) -> Decimal:
    return min(thirteenth_month, exemptions.thirteenth_month) + min(
        service_incentive_leave, exemptions.service_incentive_leave
    )


def taxable_income(
    gross: Decimal,
    contributions: Contributions,
    *,
    thirteenth_month: Decimal = _ZERO,
    service_incentive_leave: Decimal = _ZERO,
    exemptions: TaxExemptions | None = None,
) -> Decimal:
    exemptions = exemptions or TaxExemptions()
    exempt = exempt_earnings(thirteenth_month, service_incentive_leave, exemptions)
    return max(_ZERO, gross - contributions.total - exempt)
