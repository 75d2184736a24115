"""ORM model package."""

from protrack.models.entities import (
    Budget,
    ChangeOrder,
    CostEntry,
    Employee,
    FieldShopBoth,
    Invoice,
    Project,
    ProjectStatus,
    Tenant,
    User,
)

__all__ = [
    "Budget",
    "ChangeOrder",
    "CostEntry",
    "Employee",
    "FieldShopBoth",
    "Invoice",
    "Project",
    "ProjectStatus",
    "Tenant",
    "User",
]
