"""Customer invoice endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.api.dependencies import invoice_filter_params
from protrack.core.auth import RequestUserContext, get_current_user_context
from protrack.db.dependencies import get_db_session
from protrack.domain.filters import InvoiceFilterSpec
from protrack.services.cost_tracking_service import CostTrackingService, InvoiceCreateData, InvoiceUpdateData

router = APIRouter(prefix="/projects/{project_id}/invoices", tags=["invoices"])


class InvoiceCreatePayload(BaseModel):
    invoice_number: str = Field(min_length=1, max_length=128)
    amount: Decimal
    date_billed: date
    change_order_id: UUID | None = None


class InvoiceUpdatePayload(BaseModel):
    invoice_number: str | None = Field(default=None, min_length=1, max_length=128)
    amount: Decimal | None = None
    date_billed: date | None = None
    change_order_id: UUID | None = None
    clear_change_order: bool = False


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("")
def list_invoices(
    project_id: UUID,
    change_order: str = Query(default="all"),
    filters: InvoiceFilterSpec = Depends(invoice_filter_params),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_invoices(context=context, project_id=project_id, filters=filters, change_order=change_order)
    return {"items": [service.serialize_invoice(row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_invoice(
    project_id: UUID,
    payload: InvoiceCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    invoice = service.create_invoice(
        context=context,
        project_id=project_id,
        data=InvoiceCreateData(
            invoice_number=payload.invoice_number,
            amount=payload.amount,
            date_billed=payload.date_billed,
            change_order_id=payload.change_order_id,
        ),
    )
    return service.serialize_invoice(invoice)


@router.patch("/{invoice_id}")
def update_invoice(
    project_id: UUID,
    invoice_id: UUID,
    payload: InvoiceUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    invoice = service.update_invoice(
        context=context,
        project_id=project_id,
        invoice_id=invoice_id,
        data=InvoiceUpdateData(
            invoice_number=payload.invoice_number,
            amount=payload.amount,
            date_billed=payload.date_billed,
            change_order_id=payload.change_order_id,
            clear_change_order=payload.clear_change_order,
        ),
    )
    return service.serialize_invoice(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    project_id: UUID,
    invoice_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_invoice(context=context, project_id=project_id, invoice_id=invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
