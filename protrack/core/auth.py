"""Authentication context extraction and permission guard utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from protrack.core.config import get_settings
from protrack.core.permissions import (
    DEFAULT_ENTRY_PERMISSIONS,
    AccessLevel,
    PermissionArea,
    UserRole,
    has_permission,
    normalize_permissions,
)
from protrack.db.dependencies import get_db_session
from protrack.models.entities import Tenant, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    tenant_id: UUID
    email: str
    name: str
    role: UserRole
    permissions: dict[str, str] = field(default_factory=dict)

    @property
    def is_master(self) -> bool:
        return self.role == UserRole.MASTER


@dataclass(frozen=True)
class _Identity:
    tenant: Tenant
    email: str
    name: str
    default_role: UserRole


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _find_tenant(db: Session, tenant_ref: str) -> Tenant | None:
    """Resolve a tenant by id or by subdomain."""

    ref = tenant_ref.strip()
    try:
        tenant_id = UUID(ref)
    except ValueError:
        return db.scalar(select(Tenant).where(Tenant.subdomain == ref.lower()))
    return db.scalar(select(Tenant).where(Tenant.id == tenant_id))


def _ensure_dev_tenant(db: Session) -> Tenant:
    settings = get_settings()
    subdomain = settings.auth_dev_tenant_subdomain.strip().lower()
    tenant = db.scalar(select(Tenant).where(Tenant.subdomain == subdomain))
    if tenant is None:
        tenant = Tenant(name=settings.auth_dev_tenant_name, subdomain=subdomain, status="active")
        db.add(tenant)
        db.flush()
        logger.info("Created development tenant %s", subdomain)
    return tenant


def _resolve_identity(
    db: Session,
    x_tenant_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
) -> _Identity:
    settings = get_settings()
    if x_tenant_id and x_user_email:
        tenant = _find_tenant(db, x_tenant_id)
        if tenant is None or tenant.status != "active":
            raise _unauthorized("Unknown or inactive tenant.")
        email = x_user_email.strip().lower()
        name = (x_user_name or "").strip() or email
        return _Identity(tenant=tenant, email=email, name=name, default_role=UserRole.ENTRY)

    if settings.auth_allow_dev_principal and not x_tenant_id and not x_user_email:
        return _Identity(
            tenant=_ensure_dev_tenant(db),
            email=settings.auth_dev_email.strip().lower(),
            name=settings.auth_dev_display_name.strip(),
            default_role=UserRole(settings.auth_dev_role),
        )

    raise _unauthorized(
        "Missing identity headers. Expected X-Tenant-ID and X-User-Email or enable development principal fallback."
    )


def upsert_tenant_user(
    db: Session,
    *,
    tenant_id: UUID,
    email: str,
    name: str,
    role: UserRole = UserRole.ENTRY,
) -> User:
    """Return the tenant user for ``email``, creating it with default permissions."""

    normalized_email = email.strip().lower()
    user = db.scalar(select(User).where(User.tenant_id == tenant_id, User.email == normalized_email))
    now = datetime.utcnow()

    if user is None:
        user = User(
            tenant_id=tenant_id,
            email=normalized_email,
            name=name.strip() or normalized_email,
            role=role,
            permissions=dict(DEFAULT_ENTRY_PERMISSIONS),
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        logger.info("Registered user %s in tenant %s as %s", normalized_email, tenant_id, role.value)
        return user

    if name and user.name != name:
        user.name = name
        user.updated_at = now
        db.flush()
    return user


def get_current_user_context(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve the current request user within its tenant.

    Identity comes from trusted headers set by the fronting proxy or by test
    clients. Unknown users are created on first request as ``entry`` users.
    """

    identity = _resolve_identity(db, x_tenant_id, x_user_email, x_user_name)
    user = upsert_tenant_user(
        db,
        tenant_id=identity.tenant.id,
        email=identity.email,
        name=identity.name,
        role=identity.default_role,
    )
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        tenant_id=user.tenant_id,
        email=user.email,
        name=user.name,
        role=UserRole(user.role),
        permissions=normalize_permissions(user.permissions),
    )


def ensure_permission(
    context: RequestUserContext,
    area: PermissionArea | str,
    level: AccessLevel | str = AccessLevel.READ,
) -> None:
    """Raise 403 unless ``context`` holds ``level`` access on ``area``."""

    if not has_permission(context, area, level):
        area_name = area.value if isinstance(area, PermissionArea) else str(area)
        level_name = level.value if isinstance(level, AccessLevel) else str(level)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions: {level_name} access to {area_name} required.",
        )


def require_permission(area: PermissionArea, level: AccessLevel = AccessLevel.READ):
    """Dependency factory requiring ``level`` access on ``area``."""

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        ensure_permission(context, area, level)
        return context

    return dependency
