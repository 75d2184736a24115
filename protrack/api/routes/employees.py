"""Employee rate card endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, require_permission
from protrack.core.permissions import AccessLevel, PermissionArea
from protrack.db.dependencies import get_db_session
from protrack.services.cost_tracking_service import CostTrackingService, EmployeeCreateData, EmployeeUpdateData

router = APIRouter(prefix="/employees", tags=["employees"])


class EmployeeCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    standard_rate: Decimal = Field(default=Decimal("0.00"), ge=0)
    ot_rate: Decimal = Field(default=Decimal("0.00"), ge=0)
    dt_rate: Decimal = Field(default=Decimal("0.00"), ge=0)
    mob_rate: Decimal = Field(default=Decimal("0.00"), ge=0)
    project_id: UUID | None = None


class EmployeeUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    standard_rate: Decimal | None = Field(default=None, ge=0)
    ot_rate: Decimal | None = Field(default=None, ge=0)
    dt_rate: Decimal | None = Field(default=None, ge=0)
    mob_rate: Decimal | None = Field(default=None, ge=0)


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("")
def list_employees(
    project_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(require_permission(PermissionArea.LABOR)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_employees(context=context, project_id=project_id)
    return {"items": [service.serialize_employee(row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreatePayload,
    context: RequestUserContext = Depends(require_permission(PermissionArea.LABOR, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    employee = service.create_employee(
        context=context,
        data=EmployeeCreateData(
            name=payload.name,
            standard_rate=payload.standard_rate,
            ot_rate=payload.ot_rate,
            dt_rate=payload.dt_rate,
            mob_rate=payload.mob_rate,
            project_id=payload.project_id,
        ),
    )
    return service.serialize_employee(employee)


@router.patch("/{employee_id}")
def update_employee(
    employee_id: UUID,
    payload: EmployeeUpdatePayload,
    context: RequestUserContext = Depends(require_permission(PermissionArea.LABOR, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    employee = service.update_employee(
        context=context,
        employee_id=employee_id,
        data=EmployeeUpdateData(
            name=payload.name,
            standard_rate=payload.standard_rate,
            ot_rate=payload.ot_rate,
            dt_rate=payload.dt_rate,
            mob_rate=payload.mob_rate,
        ),
    )
    return service.serialize_employee(employee)


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_employee(
    employee_id: UUID,
    context: RequestUserContext = Depends(require_permission(PermissionArea.LABOR, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_employee(context=context, employee_id=employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
