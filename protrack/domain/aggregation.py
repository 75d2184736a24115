"""Cost, budget and billing aggregation.

All figures are ``Decimal`` and left unrounded; callers quantize with ``q2``
when serializing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from protrack.domain.categories import CATEGORY_DESCRIPTORS, CostCategory, TotalFormula, describe, parse_category
from protrack.domain.filters import CostFilterSpec, apply_filters, project_scope
from protrack.domain.records import (
    ZERO,
    BudgetRecord,
    ChangeOrderRecord,
    CostRecord,
    InvoiceRecord,
    ProjectRecord,
    as_decimal,
)

Q2 = Decimal("0.01")
HUNDRED = Decimal("100")

STATUS_OVER = "over"
STATUS_ON_TRACK = "ontrack"
STATUS_UNDER = "under"

REPORT_OVERALL = "overall"
REPORT_CATEGORY = "category"


def q2(value: Decimal) -> Decimal:
    return as_decimal(value).quantize(Q2)


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return numerator / denominator


def labor_entry_cost(record: CostRecord) -> Decimal:
    return (
        as_decimal(record.st_hours) * as_decimal(record.st_rate)
        + as_decimal(record.ot_hours) * as_decimal(record.ot_rate)
        + as_decimal(record.dt_hours) * as_decimal(record.dt_rate)
        + as_decimal(record.per_diem)
        + as_decimal(record.mob_qty) * as_decimal(record.mob_rate)
    )


def entry_cost(record: CostRecord, category: CostCategory | str) -> Decimal:
    if describe(category).formula is TotalFormula.LABOR:
        return labor_entry_cost(record)
    return as_decimal(record.cost)


def category_total(records: Iterable[CostRecord], category: CostCategory | str) -> Decimal:
    return sum((entry_cost(record, category) for record in records), ZERO)


def format_margin(profit_margin: Decimal, total_billed: Decimal) -> str:
    """Margin as a one-decimal percentage; ``0.0%`` when nothing has been billed."""

    if total_billed <= ZERO:
        return "0.0%"
    return f"{(profit_margin * HUNDRED).quantize(Decimal('0.1'))}%"


def format_percent(value: Decimal) -> str:
    return f"{as_decimal(value).quantize(Decimal('0.1'))}%"


@dataclass(slots=True)
class Totals:
    category_totals: dict[CostCategory, Decimal]
    budgets: dict[CostCategory, Decimal]
    variances: dict[CostCategory, Decimal]
    total_costs: Decimal = ZERO
    total_budget: Decimal = ZERO
    total_variance: Decimal = ZERO
    total_billed_to_date: Decimal = ZERO
    gross_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO

    @classmethod
    def empty(cls) -> Totals:
        return cls(category_totals=dict.fromkeys(CostCategory, ZERO), budgets={}, variances={})

    @property
    def margin_text(self) -> str:
        return format_margin(self.profit_margin, self.total_billed_to_date)


def _records_for(costs_by_category: Mapping[CostCategory | str, Iterable[CostRecord]], category: CostCategory) -> list[CostRecord]:
    for key, records in costs_by_category.items():
        if parse_category(key) is category:
            return list(records)
    return []


def calculate_totals(
    costs_by_category: Mapping[CostCategory | str, Iterable[CostRecord]],
    budget: BudgetRecord | None,
    invoices: Iterable[InvoiceRecord],
    active_project: ProjectRecord | None,
) -> Totals:
    """Per-category actuals, budget variances and billing summary for one project.

    Cost entries count when they belong to ``active_project`` or to no project
    at all. Invoices count only when they belong to ``active_project``.
    Categories missing from ``costs_by_category`` aggregate as empty.
    """

    if active_project is None:
        return Totals.empty()

    budget = budget or BudgetRecord()
    category_totals: dict[CostCategory, Decimal] = {}
    budgets: dict[CostCategory, Decimal] = {}
    variances: dict[CostCategory, Decimal] = {}

    for category in CATEGORY_DESCRIPTORS:
        visible = project_scope(_records_for(costs_by_category, category), active_project.id)
        actual = category_total(visible, category)
        planned = budget.amount_for(category)
        category_totals[category] = actual
        budgets[category] = planned
        variances[category] = planned - actual

    total_costs = sum(category_totals.values(), ZERO)
    total_budget = sum(budgets.values(), ZERO)
    total_billed = sum(
        (as_decimal(invoice.amount) for invoice in invoices if invoice.project_id == active_project.id),
        ZERO,
    )
    gross_profit = total_billed - total_costs

    return Totals(
        category_totals=category_totals,
        budgets=budgets,
        variances=variances,
        total_costs=total_costs,
        total_budget=total_budget,
        total_variance=total_budget - total_costs,
        total_billed_to_date=total_billed,
        gross_profit=gross_profit,
        profit_margin=safe_div(gross_profit, total_billed) if total_billed > ZERO else ZERO,
    )


@dataclass(slots=True)
class ContractSummary:
    base_contract_value: Decimal
    change_order_value: Decimal
    grand_total: Decimal
    total_billed: Decimal
    remaining_to_bill: Decimal
    change_order_count: int = 0


def contract_summary(
    project: ProjectRecord,
    change_orders: Iterable[ChangeOrderRecord],
    total_billed: Decimal,
) -> ContractSummary:
    # Remaining-to-bill is measured against the base contract only.
    base = as_decimal(project.total_contract_value)
    own = [order for order in change_orders if order.project_id == project.id]
    change_order_value = sum((as_decimal(order.additional_contract_value) for order in own), ZERO)
    billed = as_decimal(total_billed)
    return ContractSummary(
        base_contract_value=base,
        change_order_value=change_order_value,
        grand_total=base + change_order_value,
        total_billed=billed,
        remaining_to_bill=base - billed,
        change_order_count=len(own),
    )


def budget_status(variance: Decimal) -> str:
    if variance < ZERO:
        return STATUS_OVER
    if variance == ZERO:
        return STATUS_ON_TRACK
    return STATUS_UNDER


def percent_used(actual: Decimal, budget: Decimal) -> Decimal:
    if budget > ZERO:
        return actual / budget * HUNDRED
    return ZERO


def period_label(start_date: str | None, end_date: str | None) -> str:
    if start_date and end_date:
        return f"{start_date} to {end_date}"
    if start_date:
        return f"From {start_date}"
    if end_date:
        return f"Until {end_date}"
    return "All Time"


@dataclass(slots=True)
class BudgetLine:
    category: CostCategory
    budget: Decimal
    actual: Decimal
    variance: Decimal
    percent_used: Decimal
    status: str


@dataclass(slots=True)
class BudgetVsActual:
    report_type: str
    project: ProjectRecord
    period: str
    lines: list[BudgetLine] = field(default_factory=list)
    total_budget: Decimal = ZERO
    total_actual: Decimal = ZERO
    total_variance: Decimal = ZERO
    total_percent_used: Decimal = ZERO
    details: list[CostRecord] = field(default_factory=list)


def _budget_line(category: CostCategory, records: list[CostRecord], budget: BudgetRecord) -> BudgetLine:
    actual = category_total(records, category)
    planned = budget.amount_for(category)
    variance = planned - actual
    return BudgetLine(
        category=category,
        budget=planned,
        actual=actual,
        variance=variance,
        percent_used=percent_used(actual, planned),
        status=budget_status(variance),
    )


def budget_vs_actual(
    *,
    project: ProjectRecord,
    costs_by_category: Mapping[CostCategory | str, Iterable[CostRecord]],
    budget: BudgetRecord | None,
    categories: Iterable[CostCategory],
    report_type: str = REPORT_OVERALL,
    category: CostCategory | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> BudgetVsActual:
    """Budget against actual spend, overall or for one category.

    ``categories`` lists the categories the caller may see; the overall report
    has one line per listed category. An optional inclusive date range
    restricts the cost entries that count.
    """

    budget = budget or BudgetRecord()
    date_range = CostFilterSpec(start_date=start_date or "", end_date=end_date or "")
    report = BudgetVsActual(report_type=report_type, project=project, period=period_label(start_date, end_date))

    def scoped(target: CostCategory) -> list[CostRecord]:
        visible = project_scope(_records_for(costs_by_category, target), project.id)
        return apply_filters(visible, target, date_range)

    if report_type == REPORT_CATEGORY:
        if category is None:
            raise ValueError("A category report needs a category.")
        details = scoped(category)
        line = _budget_line(category, details, budget)
        report.lines = [line]
        report.details = details
        report.total_budget = line.budget
        report.total_actual = line.actual
        report.total_variance = line.variance
        report.total_percent_used = line.percent_used
        return report

    report.lines = [_budget_line(target, scoped(target), budget) for target in categories]
    report.total_budget = sum((line.budget for line in report.lines), ZERO)
    report.total_actual = sum((line.actual for line in report.lines), ZERO)
    report.total_variance = report.total_budget - report.total_actual
    report.total_percent_used = percent_used(report.total_actual, report.total_budget)
    return report
