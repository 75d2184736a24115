"""Export endpoints for reports, category ledgers and invoices."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from protrack.api.dependencies import cost_filter_params, invoice_filter_params
from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.domain.aggregation import REPORT_OVERALL
from protrack.domain.filters import CostFilterSpec, InvoiceFilterSpec
from protrack.domain.reports import ExportFilePayload
from protrack.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports/projects/{project_id}", tags=["exports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


def _file_response(exported: ExportFilePayload) -> Response:
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.get("/performance-report")
def export_performance_report(
    project_id: UUID,
    format: str = Query(default="txt"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_performance_report(context=context, project_id=project_id, format_name=format)
    return _file_response(exported)


@router.get("/costs/{category}")
def export_category(
    project_id: UUID,
    category: str,
    format: str = Query(default="csv"),
    use_filters: bool = Query(default=False),
    change_order: str = Query(default="all"),
    filters: CostFilterSpec = Depends(cost_filter_params),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_category(
        context=context,
        project_id=project_id,
        category=service.tracking.require_category(category),
        format_name=format,
        filters=filters if use_filters else None,
        change_order=change_order,
    )
    return _file_response(exported)


@router.get("/invoices")
def export_invoices(
    project_id: UUID,
    use_filters: bool = Query(default=True),
    change_order: str = Query(default="all"),
    filters: InvoiceFilterSpec = Depends(invoice_filter_params),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_invoices(
        context=context,
        project_id=project_id,
        filters=filters if use_filters else None,
        change_order=change_order,
    )
    return _file_response(exported)


@router.get("/budget-vs-actual")
def export_budget_vs_actual(
    project_id: UUID,
    format: str = Query(default="txt"),
    report_type: str = Query(default=REPORT_OVERALL),
    category: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_budget_vs_actual(
        context=context,
        project_id=project_id,
        format_name=format,
        report_type=report_type,
        category=service.tracking.require_category(category) if category else None,
        start_date=start_date,
        end_date=end_date,
    )
    return _file_response(exported)
