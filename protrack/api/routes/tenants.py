"""Tenant registration endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.db.dependencies import get_db_session
from protrack.services.cost_tracking_service import CostTrackingService, TenantCreateData

router = APIRouter(prefix="/tenants", tags=["tenants"])


class TenantCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    subdomain: str = Field(min_length=3, max_length=63, pattern=r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")
    admin_email: str = Field(min_length=3, max_length=320)
    admin_name: str = Field(min_length=1, max_length=255)


@router.post("", status_code=status.HTTP_201_CREATED)
def register_tenant(payload: TenantCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    """Create a tenant together with its first master user."""

    service = CostTrackingService(db)
    tenant, user = service.register_tenant(
        TenantCreateData(
            name=payload.name,
            subdomain=payload.subdomain,
            admin_email=payload.admin_email,
            admin_name=payload.admin_name,
        )
    )
    return {"tenant": service.serialize_tenant(tenant), "user": service.serialize_user(user)}
