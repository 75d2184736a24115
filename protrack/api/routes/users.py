"""Tenant user management endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, require_permission
from protrack.core.permissions import AccessLevel, PermissionArea, UserRole
from protrack.db.dependencies import get_db_session
from protrack.services.cost_tracking_service import CostTrackingService, UserCreateData, UserUpdateData

router = APIRouter(prefix="/users", tags=["users"])


class UserCreatePayload(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.ENTRY
    permissions: dict[str, str] | None = None


class UserUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: UserRole | None = None
    permissions: dict[str, str] | None = None


def _service(db: Session) -> CostTrackingService:
    return CostTrackingService(db)


@router.get("")
def list_users(
    context: RequestUserContext = Depends(require_permission(PermissionArea.USERS)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_user(user) for user in service.list_users(context=context)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreatePayload,
    context: RequestUserContext = Depends(require_permission(PermissionArea.USERS, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    user = service.create_user(
        context=context,
        data=UserCreateData(
            email=payload.email,
            name=payload.name,
            role=payload.role,
            permissions=payload.permissions,
        ),
    )
    return service.serialize_user(user)


@router.patch("/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdatePayload,
    context: RequestUserContext = Depends(require_permission(PermissionArea.USERS, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    user = service.update_user(
        context=context,
        user_id=user_id,
        data=UserUpdateData(name=payload.name, role=payload.role, permissions=payload.permissions),
    )
    return service.serialize_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    context: RequestUserContext = Depends(require_permission(PermissionArea.USERS, AccessLevel.WRITE)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_user(context=context, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
