"""Cost entry endpoints for the seven cost categories."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.api.dependencies import cost_filter_params
from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.domain.filters import CostFilterSpec
from protrack.services.cost_tracking_service import CostEntryData, CostTrackingService

router = APIRouter(prefix="/projects/{project_id}/costs", tags=["costs"])


class CostFieldsPayload(BaseModel):
    change_order_id: UUID | None = None
    vendor: str | None = Field(default=None, max_length=255)
    invoice_number: str | None = Field(default=None, max_length=128)
    cost: Decimal | None = None
    description: str | None = Field(default=None, max_length=2000)
    subcontractor_name: str | None = Field(default=None, max_length=255)
    employee_id: UUID | None = None
    employee_name: str | None = Field(default=None, max_length=255)
    st_hours: Decimal | None = Field(default=None, ge=0)
    st_rate: Decimal | None = Field(default=None, ge=0)
    ot_hours: Decimal | None = Field(default=None, ge=0)
    ot_rate: Decimal | None = Field(default=None, ge=0)
    dt_hours: Decimal | None = Field(default=None, ge=0)
    dt_rate: Decimal | None = Field(default=None, ge=0)
    per_diem: Decimal | None = Field(default=None, ge=0)
    mob_qty: Decimal | None = Field(default=None, ge=0)
    mob_rate: Decimal | None = Field(default=None, ge=0)


class CostCreatePayload(CostFieldsPayload):
    entry_date: date = Field(alias="date")
    in_system: bool = True


class CostUpdatePayload(CostFieldsPayload):
    entry_date: date | None = Field(default=None, alias="date")
    in_system: bool | None = None
    clear_change_order: bool = False


def _entry_data(payload: CostFieldsPayload, **extra: object) -> CostEntryData:
    values = payload.model_dump(exclude={"entry_date", "in_system", "clear_change_order"})
    return CostEntryData(**values, **extra)


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("/{category}")
def list_costs(
    project_id: UUID,
    category: str,
    change_order: str = Query(default="all"),
    filters: CostFilterSpec = Depends(cost_filter_params),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    resolved = service.require_category(category)
    rows = service.list_costs(
        context=context,
        project_id=project_id,
        category=resolved,
        filters=filters,
        change_order=change_order,
    )
    return {"category": resolved.value, "items": [service.serialize_cost(row) for row in rows]}


@router.post("/{category}", status_code=status.HTTP_201_CREATED)
def create_cost(
    project_id: UUID,
    category: str,
    payload: CostCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.create_cost(
        context=context,
        project_id=project_id,
        category=service.require_category(category),
        data=_entry_data(payload, entry_date=payload.entry_date, in_system=payload.in_system),
    )
    return service.serialize_cost(entry)


@router.patch("/{category}/{cost_id}")
def update_cost(
    project_id: UUID,
    category: str,
    cost_id: UUID,
    payload: CostUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.update_cost(
        context=context,
        project_id=project_id,
        category=service.require_category(category),
        cost_id=cost_id,
        data=_entry_data(
            payload,
            entry_date=payload.entry_date,
            in_system=payload.in_system,
            clear_change_order=payload.clear_change_order,
        ),
    )
    return service.serialize_cost(entry)


@router.delete("/{category}/{cost_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cost(
    project_id: UUID,
    category: str,
    cost_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    service.delete_cost(
        context=context,
        project_id=project_id,
        category=service.require_category(category),
        cost_id=cost_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
