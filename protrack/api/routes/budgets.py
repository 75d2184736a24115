"""Project budget endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.domain.categories import BUDGET_FIELDS
from protrack.services.cost_tracking_service import CostTrackingService

router = APIRouter(prefix="/projects/{project_id}/budget", tags=["budgets"])


class BudgetPayload(BaseModel):
    material_budget: Decimal | None = Field(default=None, ge=0)
    labor_budget: Decimal | None = Field(default=None, ge=0)
    equipment_budget: Decimal | None = Field(default=None, ge=0)
    subcontractor_budget: Decimal | None = Field(default=None, ge=0)
    others_budget: Decimal | None = Field(default=None, ge=0)
    cap_leases_budget: Decimal | None = Field(default=None, ge=0)
    consumable_budget: Decimal | None = Field(default=None, ge=0)


class BudgetCategoryPayload(BaseModel):
    amount: Decimal = Field(ge=0)


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("")
def get_budget(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Return the project budget; a zero budget is created on first read."""

    service = _service(db)
    return service.serialize_budget(service.get_budget(context=context, project_id=project_id))


@router.put("")
def update_budget(
    project_id: UUID,
    payload: BudgetPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    values = payload.model_dump()
    amounts = {
        category: values[field_name]
        for category, field_name in BUDGET_FIELDS.items()
        if values[field_name] is not None
    }
    budget = service.update_budget(context=context, project_id=project_id, amounts=amounts)
    return service.serialize_budget(budget)


@router.put("/{category}")
def update_budget_category(
    project_id: UUID,
    category: str,
    payload: BudgetCategoryPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    budget = service.update_budget_category(
        context=context,
        project_id=project_id,
        category=service.require_category(category),
        amount=payload.amount,
    )
    return service.serialize_budget(budget)
