"""Dashboard, budget-vs-actual and export service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, ensure_permission
from protrack.core.config import get_settings
from protrack.core.permissions import AccessLevel, PermissionArea, has_permission
from protrack.domain.aggregation import (
    REPORT_CATEGORY,
    REPORT_OVERALL,
    BudgetVsActual,
    ContractSummary,
    Totals,
    budget_vs_actual,
    calculate_totals,
    category_total,
    contract_summary,
    format_percent,
    q2,
)
from protrack.domain.categories import CATEGORY_DESCRIPTORS, CostCategory
from protrack.domain.filters import (
    CostFilterSpec,
    InvoiceFilterSpec,
    apply_filters,
    apply_invoice_filters,
    partition_by_change_order,
    project_scope,
)
from protrack.domain.records import BudgetRecord, CostRecord, InvoiceRecord, ProjectRecord
from protrack.domain.reports import (
    ExportFilePayload,
    export_budget_vs_actual,
    export_category,
    export_invoices,
    export_performance_report,
)
from protrack.models.entities import Project
from protrack.services.cost_tracking_service import (
    CostTrackingService,
    to_budget_record,
    to_change_order_record,
    to_project_record,
)

logger = logging.getLogger(__name__)

PERFORMANCE_FORMATS = {"txt", "csv", "xlsx"}
CATEGORY_EXPORT_FORMATS = {"csv", "xlsx"}
BUDGET_REPORT_FORMATS = {"txt", "csv"}


@dataclass(slots=True)
class ProjectSnapshot:
    """Rows of one project converted to records, limited to what the caller may read."""

    project: Project
    record: ProjectRecord
    costs: dict[CostCategory, list[CostRecord]]
    budget: BudgetRecord
    invoices: list[InvoiceRecord]
    readable: list[CostCategory]


def _money(value: Decimal) -> str:
    return str(q2(value))


def _normalize_format(format_name: str, allowed: set[str]) -> str:
    normalized = format_name.strip().lower()
    if normalized not in allowed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"format must be one of: {', '.join(sorted(allowed))}.",
        )
    return normalized


class ReportingService:
    """Service computing project totals and building exports."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.tracking = CostTrackingService(db)
        self.repo = self.tracking.repo
        self.settings = get_settings()

    @staticmethod
    def readable_categories(context: RequestUserContext) -> list[CostCategory]:
        return [category for category in CostCategory if has_permission(context, category.value, AccessLevel.READ)]

    @staticmethod
    def _today() -> date:
        return date.today()

    def _snapshot(self, context: RequestUserContext, project_id: UUID) -> ProjectSnapshot:
        project = self.tracking.require_project(context, project_id)
        readable = self.readable_categories(context)
        grouped = self.tracking.cost_records(tenant_id=context.tenant_id, project_id=project.id)
        costs = {category: (grouped[category] if category in readable else []) for category in CostCategory}
        budget = self.tracking.get_or_create_budget(tenant_id=context.tenant_id, project=project)
        return ProjectSnapshot(
            project=project,
            record=to_project_record(project),
            costs=costs,
            budget=to_budget_record(budget),
            invoices=self.tracking.invoice_records(tenant_id=context.tenant_id, project_id=project.id),
            readable=readable,
        )

    # ---------- Serialization ----------
    @staticmethod
    def serialize_totals(totals: Totals, readable: list[CostCategory]) -> dict[str, object]:
        categories = []
        for category in readable:
            descriptor = CATEGORY_DESCRIPTORS[category]
            entry: dict[str, object] = {
                "category": category.value,
                "label": descriptor.label,
                "total": _money(totals.category_totals.get(category, Decimal("0"))),
            }
            if category in totals.budgets:
                entry["budget"] = _money(totals.budgets[category])
                entry["variance"] = _money(totals.variances[category])
            categories.append(entry)

        return {
            "categories": categories,
            "total_costs": _money(totals.total_costs),
            "total_budget": _money(totals.total_budget),
            "total_variance": _money(totals.total_variance),
            "total_billed_to_date": _money(totals.total_billed_to_date),
            "gross_profit": _money(totals.gross_profit),
            "profit_margin": totals.margin_text,
        }

    @staticmethod
    def serialize_contract(summary: ContractSummary) -> dict[str, object]:
        return {
            "base_contract_value": _money(summary.base_contract_value),
            "change_order_value": _money(summary.change_order_value),
            "change_order_count": summary.change_order_count,
            "grand_total": _money(summary.grand_total),
            "total_billed": _money(summary.total_billed),
            "remaining_to_bill": _money(summary.remaining_to_bill),
        }

    @staticmethod
    def serialize_budget_report(report: BudgetVsActual) -> dict[str, object]:
        payload: dict[str, object] = {
            "report_type": report.report_type,
            "project_id": str(report.project.id),
            "period": report.period,
            "summary": {
                "total_budget": _money(report.total_budget),
                "total_actual": _money(report.total_actual),
                "total_variance": _money(report.total_variance),
                "percent_used": format_percent(report.total_percent_used),
            },
            "lines": [
                {
                    "category": line.category.value,
                    "label": CATEGORY_DESCRIPTORS[line.category].label,
                    "budget": _money(line.budget),
                    "actual": _money(line.actual),
                    "variance": _money(line.variance),
                    "percent_used": format_percent(line.percent_used),
                    "status": line.status,
                }
                for line in report.lines
            ],
        }
        if report.report_type == REPORT_CATEGORY:
            payload["details"] = [
                {"id": str(record.id) if record.id else None, "date": record.date}
                for record in report.details
            ]
        return payload

    # ---------- Dashboard ----------
    def project_totals(self, *, context: RequestUserContext, project_id: UUID) -> tuple[ProjectSnapshot, Totals]:
        snapshot = self._snapshot(context, project_id)
        totals = calculate_totals(snapshot.costs, snapshot.budget, snapshot.invoices, snapshot.record)
        return snapshot, totals

    def project_dashboard(self, *, context: RequestUserContext, project_id: UUID) -> dict[str, object]:
        snapshot, totals = self.project_totals(context=context, project_id=project_id)
        change_orders = [to_change_order_record(row) for row in self.repo.list_change_orders(snapshot.project.id)]
        summary = contract_summary(snapshot.record, change_orders, totals.total_billed_to_date)
        return {
            "project": self.tracking.serialize_project(snapshot.project),
            "totals": self.serialize_totals(totals, snapshot.readable),
            "contract": self.serialize_contract(summary),
        }

    def budget_vs_actual_report(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        report_type: str = REPORT_OVERALL,
        category: CostCategory | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> BudgetVsActual:
        if report_type not in {REPORT_OVERALL, REPORT_CATEGORY}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="report_type must be one of: category, overall.",
            )
        if report_type == REPORT_CATEGORY:
            if category is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="category is required for a category report.",
                )
            ensure_permission(context, category.value, AccessLevel.READ)

        snapshot = self._snapshot(context, project_id)
        return budget_vs_actual(
            project=snapshot.record,
            costs_by_category=snapshot.costs,
            budget=snapshot.budget,
            categories=snapshot.readable,
            report_type=report_type,
            category=category,
            start_date=start_date.isoformat() if start_date else None,
            end_date=end_date.isoformat() if end_date else None,
        )

    # ---------- Exports ----------
    def export_performance_report(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        format_name: str,
    ) -> ExportFilePayload:
        normalized = _normalize_format(format_name, PERFORMANCE_FORMATS)
        snapshot, totals = self.project_totals(context=context, project_id=project_id)
        labor = project_scope(snapshot.costs[CostCategory.LABOR], snapshot.record.id)
        exported = export_performance_report(
            project=snapshot.record,
            totals=totals,
            labor_records=labor,
            format_name=normalized,
            report_date=self._today(),
        )
        logger.info("Exported performance report for project %s as %s", project_id, normalized)
        return exported

    def export_category(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        format_name: str,
        filters: CostFilterSpec | None,
        change_order: str | None = None,
    ) -> ExportFilePayload:
        normalized = _normalize_format(format_name, CATEGORY_EXPORT_FORMATS)
        ensure_permission(context, category.value, AccessLevel.READ)
        project = self.tracking.require_project(context, project_id)
        grouped = self.tracking.cost_records(tenant_id=context.tenant_id, project_id=project.id)

        records = partition_by_change_order(project_scope(grouped[category], project.id), change_order)
        if filters is not None:
            records = apply_filters(records, category, filters)
        return export_category(
            project=to_project_record(project),
            category=category,
            records=records,
            filters=filters,
            total=category_total(records, category),
            format_name=normalized,
            report_date=self._today(),
            date_format=self.settings.export_date_format,
        )

    def export_invoices(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        filters: InvoiceFilterSpec | None,
        change_order: str | None = None,
    ) -> ExportFilePayload:
        ensure_permission(context, PermissionArea.INVOICES, AccessLevel.READ)
        project = self.tracking.require_project(context, project_id)
        invoices = partition_by_change_order(
            self.tracking.invoice_records(tenant_id=context.tenant_id, project_id=project.id),
            change_order,
        )
        if filters is not None:
            invoices = apply_invoice_filters(invoices, filters)
        return export_invoices(
            project=to_project_record(project),
            invoices=invoices,
            filters=filters,
            report_date=self._today(),
            date_format=self.settings.export_date_format,
        )

    def export_budget_vs_actual(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        format_name: str,
        report_type: str = REPORT_OVERALL,
        category: CostCategory | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ExportFilePayload:
        normalized = _normalize_format(format_name, BUDGET_REPORT_FORMATS)
        report = self.budget_vs_actual_report(
            context=context,
            project_id=project_id,
            report_type=report_type,
            category=category,
            start_date=start_date,
            end_date=end_date,
        )
        return export_budget_vs_actual(report, format_name=normalized, report_date=self._today())
