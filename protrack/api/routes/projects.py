"""Project and change order endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.models.entities import FieldShopBoth, ProjectStatus
from protrack.services.cost_tracking_service import (
    ChangeOrderCreateData,
    ChangeOrderUpdateData,
    CostTrackingService,
    ProjectCreateData,
    ProjectUpdateData,
)

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    job_number: str = Field(min_length=1, max_length=64)
    job_name: str = Field(min_length=1, max_length=255)
    customer: str = Field(min_length=1, max_length=255)
    field_shop_both: FieldShopBoth = FieldShopBoth.FIELD
    total_contract_value: Decimal = Field(default=Decimal("0.00"), ge=0)
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdatePayload(BaseModel):
    job_number: str | None = Field(default=None, min_length=1, max_length=64)
    job_name: str | None = Field(default=None, min_length=1, max_length=255)
    customer: str | None = Field(default=None, min_length=1, max_length=255)
    field_shop_both: FieldShopBoth | None = None
    total_contract_value: Decimal | None = Field(default=None, ge=0)
    status: ProjectStatus | None = None


class ProjectStatusPayload(BaseModel):
    status: ProjectStatus


class ChangeOrderCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    additional_contract_value: Decimal = Decimal("0.00")


class ChangeOrderUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    additional_contract_value: Decimal | None = None


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("")
def list_projects(
    include_inactive: bool = Query(default=False),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_projects(context=context, include_inactive=include_inactive)
    return {"items": [service.serialize_project(project) for project in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.create_project(
        context=context,
        data=ProjectCreateData(
            job_number=payload.job_number,
            job_name=payload.job_name,
            customer=payload.customer,
            field_shop_both=payload.field_shop_both,
            total_contract_value=payload.total_contract_value,
            status=payload.status,
        ),
    )
    return service.serialize_project(project)


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_project(service.get_project(context=context, project_id=project_id))


@router.patch("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.update_project(
        context=context,
        project_id=project_id,
        data=ProjectUpdateData(
            job_number=payload.job_number,
            job_name=payload.job_name,
            customer=payload.customer,
            field_shop_both=payload.field_shop_both,
            total_contract_value=payload.total_contract_value,
            status=payload.status,
        ),
    )
    return service.serialize_project(project)


@router.patch("/{project_id}/status")
def update_project_status(
    project_id: UUID,
    payload: ProjectStatusPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.update_project_status(context=context, project_id=project_id, project_status=payload.status)
    return service.serialize_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    confirm: bool = Query(default=False),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_project(context=context, project_id=project_id, confirm=confirm)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/change-orders")
def list_change_orders(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_change_orders(context=context, project_id=project_id)
    return {"items": [service.serialize_change_order(row) for row in rows]}


@router.post("/{project_id}/change-orders", status_code=status.HTTP_201_CREATED)
def create_change_order(
    project_id: UUID,
    payload: ChangeOrderCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    change_order = service.create_change_order(
        context=context,
        project_id=project_id,
        data=ChangeOrderCreateData(
            name=payload.name,
            description=payload.description,
            additional_contract_value=payload.additional_contract_value,
        ),
    )
    return service.serialize_change_order(change_order)


@router.patch("/{project_id}/change-orders/{change_order_id}")
def update_change_order(
    project_id: UUID,
    change_order_id: UUID,
    payload: ChangeOrderUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    change_order = service.update_change_order(
        context=context,
        project_id=project_id,
        change_order_id=change_order_id,
        data=ChangeOrderUpdateData(
            name=payload.name,
            description=payload.description,
            additional_contract_value=payload.additional_contract_value,
        ),
    )
    return service.serialize_change_order(change_order)


@router.delete("/{project_id}/change-orders/{change_order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_change_order(
    project_id: UUID,
    change_order_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_change_order(context=context, project_id=project_id, change_order_id=change_order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
