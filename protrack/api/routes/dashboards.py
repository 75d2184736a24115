"""Dashboard endpoints for project totals and budget tracking."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.domain.aggregation import REPORT_OVERALL
from protrack.services.reporting_service import ReportingService

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/projects/{project_id}")
def get_project_dashboard(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).project_dashboard(context=context, project_id=project_id)


@router.get("/projects/{project_id}/budget-vs-actual")
def get_budget_vs_actual(
    project_id: UUID,
    report_type: str = Query(default=REPORT_OVERALL),
    category: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    report = service.budget_vs_actual_report(
        context=context,
        project_id=project_id,
        report_type=report_type,
        category=service.tracking.require_category(category) if category else None,
        start_date=start_date,
        end_date=end_date,
    )
    return service.serialize_budget_report(report)
