"""Role and per-area permission model."""

from __future__ import annotations

from enum import Enum
from typing import Any


class UserRole(str, Enum):
    """Tenant user roles. ``master`` bypasses the permission map."""

    MASTER = "master"
    MANAGER = "manager"
    ENTRY = "entry"


class PermissionArea(str, Enum):
    MATERIAL = "material"
    LABOR = "labor"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"
    OTHERS = "others"
    CAP_LEASES = "capLeases"
    CONSUMABLE = "consumable"
    INVOICES = "invoices"
    PROJECTS = "projects"
    USERS = "users"


class AccessLevel(str, Enum):
    NONE = "none"
    READ = "read"
    WRITE = "write"


# Stored levels that satisfy each requested level.
_GRANTING_LEVELS: dict[AccessLevel, frozenset[str]] = {
    AccessLevel.READ: frozenset({AccessLevel.READ.value, AccessLevel.WRITE.value}),
    AccessLevel.WRITE: frozenset({AccessLevel.WRITE.value}),
}

DEFAULT_ENTRY_PERMISSIONS: dict[str, str] = {
    PermissionArea.MATERIAL.value: AccessLevel.READ.value,
    PermissionArea.LABOR.value: AccessLevel.READ.value,
    PermissionArea.EQUIPMENT.value: AccessLevel.READ.value,
    PermissionArea.SUBCONTRACTOR.value: AccessLevel.READ.value,
    PermissionArea.OTHERS.value: AccessLevel.READ.value,
    PermissionArea.CAP_LEASES.value: AccessLevel.READ.value,
    PermissionArea.CONSUMABLE.value: AccessLevel.READ.value,
    PermissionArea.INVOICES.value: AccessLevel.READ.value,
    PermissionArea.PROJECTS.value: AccessLevel.READ.value,
    PermissionArea.USERS.value: AccessLevel.NONE.value,
}


def _enum_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def has_permission(user: Any, area: str | PermissionArea, level: str | AccessLevel = AccessLevel.READ) -> bool:
    """Check whether ``user`` holds ``level`` access on ``area``.

    ``user`` is any object exposing ``role`` and ``permissions`` (the request
    context or an ORM row). Missing users, missing areas, ``none`` entries and
    unknown levels all deny access.
    """

    if user is None:
        return False
    if _enum_value(getattr(user, "role", None)) == UserRole.MASTER.value:
        return True

    permissions = getattr(user, "permissions", None) or {}
    stored = permissions.get(_enum_value(area))
    if not stored or stored == AccessLevel.NONE.value:
        return False

    try:
        requested = AccessLevel(_enum_value(level))
    except ValueError:
        return False
    return _enum_value(stored) in _GRANTING_LEVELS.get(requested, frozenset())


def normalize_permissions(raw: dict[str, str] | None) -> dict[str, str]:
    """Return a full permission map, keeping only known areas and levels."""

    normalized = dict.fromkeys((area.value for area in PermissionArea), AccessLevel.NONE.value)
    for area, level in (raw or {}).items():
        try:
            normalized[PermissionArea(area).value] = AccessLevel(_enum_value(level)).value
        except ValueError:
            continue
    return normalized
