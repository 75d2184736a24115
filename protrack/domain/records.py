"""In-memory records consumed by the filter, aggregation and report code."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from protrack.domain.categories import BUDGET_FIELDS, CostCategory

ZERO = Decimal("0")


def as_decimal(value: Any) -> Decimal:
    """Coerce a stored numeric to ``Decimal``; absent or unparsable values are 0."""

    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return ZERO if value.is_nan() else value
    if isinstance(value, bool):
        return ZERO
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if result.is_nan() or result.is_infinite():
        return ZERO
    return result


@dataclass(slots=True)
class ProjectRecord:
    id: UUID
    job_number: str
    job_name: str
    customer: str
    field_shop_both: str
    total_contract_value: Decimal = ZERO
    status: str = "Active"


@dataclass(slots=True)
class ChangeOrderRecord:
    id: UUID
    project_id: UUID
    name: str
    description: str | None = None
    additional_contract_value: Decimal | None = None


@dataclass(slots=True)
class CostRecord:
    """A cost line in any category; fields not used by the category stay ``None``."""

    id: UUID | None
    project_id: UUID | None
    date: str
    in_system: bool | None = True
    change_order_id: UUID | None = None
    vendor: str | None = None
    invoice_number: str | None = None
    cost: Decimal | None = None
    description: str | None = None
    subcontractor_name: str | None = None
    employee_id: UUID | None = None
    employee_name: str | None = None
    st_hours: Decimal | None = None
    st_rate: Decimal | None = None
    ot_hours: Decimal | None = None
    ot_rate: Decimal | None = None
    dt_hours: Decimal | None = None
    dt_rate: Decimal | None = None
    per_diem: Decimal | None = None
    mob_qty: Decimal | None = None
    mob_rate: Decimal | None = None


@dataclass(slots=True)
class InvoiceRecord:
    id: UUID | None
    project_id: UUID | None
    invoice_number: str | None
    amount: Decimal | None
    date_billed: str
    change_order_id: UUID | None = None


@dataclass(slots=True)
class BudgetRecord:
    material_budget: Decimal = ZERO
    labor_budget: Decimal = ZERO
    equipment_budget: Decimal = ZERO
    subcontractor_budget: Decimal = ZERO
    others_budget: Decimal = ZERO
    cap_leases_budget: Decimal = ZERO
    consumable_budget: Decimal = ZERO

    def amount_for(self, category: CostCategory) -> Decimal:
        return as_decimal(getattr(self, BUDGET_FIELDS[category]))

    @classmethod
    def from_mapping(cls, values: dict[str, Any] | None) -> BudgetRecord:
        values = values or {}
        known = {name: as_decimal(values.get(name)) for name in BUDGET_FIELDS.values()}
        return cls(**known)
