"""Cost categories and the per-category descriptor table.

Form fields, filter predicates, CSV columns, the budget field and the total
formula of a category are all read from its descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CostCategory(str, Enum):
    MATERIAL = "material"
    LABOR = "labor"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"
    OTHERS = "others"
    CAP_LEASES = "capLeases"
    CONSUMABLE = "consumable"


class TotalFormula(str, Enum):
    """How the cost of a single entry is derived."""

    FLAT_COST = "flat_cost"
    LABOR = "labor"


class FilterKind(str, Enum):
    """Which predicate set the filter engine applies."""

    VENDOR = "vendor"
    LABOR = "labor"
    SUBCONTRACTOR = "subcontractor"


@dataclass(frozen=True)
class CategoryDescriptor:
    category: CostCategory
    label: str
    budget_field: str
    formula: TotalFormula
    filter_kind: FilterKind
    entry_fields: tuple[str, ...]
    csv_columns: tuple[str, ...]


_VENDOR_FIELDS = ("vendor", "invoice_number", "cost")
_FIVE_COLUMN_LAYOUT = ("Date", "Vendor/Subcontractor", "Invoice Number", "Cost", "In System")

CATEGORY_DESCRIPTORS: dict[CostCategory, CategoryDescriptor] = {
    CostCategory.MATERIAL: CategoryDescriptor(
        category=CostCategory.MATERIAL,
        label="Material",
        budget_field="material_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.VENDOR,
        entry_fields=_VENDOR_FIELDS,
        csv_columns=_FIVE_COLUMN_LAYOUT,
    ),
    CostCategory.LABOR: CategoryDescriptor(
        category=CostCategory.LABOR,
        label="Labor",
        budget_field="labor_budget",
        formula=TotalFormula.LABOR,
        filter_kind=FilterKind.LABOR,
        entry_fields=(
            "employee_id",
            "employee_name",
            "st_hours",
            "st_rate",
            "ot_hours",
            "ot_rate",
            "dt_hours",
            "dt_rate",
            "per_diem",
            "mob_qty",
            "mob_rate",
        ),
        csv_columns=(
            "Date",
            "Employee Name",
            "ST Hours",
            "ST Rate",
            "OT Hours",
            "OT Rate",
            "DT Hours",
            "DT Rate",
            "Per Diem",
            "MOB Quantity",
            "MOB Rate",
            "Total Cost",
        ),
    ),
    CostCategory.EQUIPMENT: CategoryDescriptor(
        category=CostCategory.EQUIPMENT,
        label="Equipment",
        budget_field="equipment_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.VENDOR,
        entry_fields=_VENDOR_FIELDS,
        csv_columns=_FIVE_COLUMN_LAYOUT,
    ),
    CostCategory.SUBCONTRACTOR: CategoryDescriptor(
        category=CostCategory.SUBCONTRACTOR,
        label="Subcontractors",
        budget_field="subcontractor_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.SUBCONTRACTOR,
        entry_fields=("subcontractor_name",) + _VENDOR_FIELDS,
        csv_columns=_FIVE_COLUMN_LAYOUT,
    ),
    CostCategory.OTHERS: CategoryDescriptor(
        category=CostCategory.OTHERS,
        label="Other",
        budget_field="others_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.VENDOR,
        entry_fields=_VENDOR_FIELDS + ("description",),
        csv_columns=("Date", "Vendor", "Description", "Invoice Number", "Cost", "In System"),
    ),
    CostCategory.CAP_LEASES: CategoryDescriptor(
        category=CostCategory.CAP_LEASES,
        label="Cap Leases",
        budget_field="cap_leases_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.VENDOR,
        entry_fields=_VENDOR_FIELDS,
        csv_columns=_FIVE_COLUMN_LAYOUT,
    ),
    CostCategory.CONSUMABLE: CategoryDescriptor(
        category=CostCategory.CONSUMABLE,
        label="Consumables",
        budget_field="consumable_budget",
        formula=TotalFormula.FLAT_COST,
        filter_kind=FilterKind.VENDOR,
        entry_fields=_VENDOR_FIELDS,
        csv_columns=_FIVE_COLUMN_LAYOUT,
    ),
}

BUDGET_FIELDS: dict[CostCategory, str] = {
    category: descriptor.budget_field for category, descriptor in CATEGORY_DESCRIPTORS.items()
}


def parse_category(value: str | CostCategory) -> CostCategory | None:
    """Resolve a category name; ``None`` for unknown names."""

    if isinstance(value, CostCategory):
        return value
    try:
        return CostCategory(value)
    except ValueError:
        return None


def describe(category: str | CostCategory) -> CategoryDescriptor:
    resolved = parse_category(category)
    if resolved is None:
        raise KeyError(f"Unknown cost category: {category}")
    return CATEGORY_DESCRIPTORS[resolved]


def budget_field_for(category: str | CostCategory) -> str:
    """Budget column holding the amount for ``category``; raises ``KeyError`` when unknown."""

    resolved = parse_category(category)
    if resolved is None:
        raise KeyError(f"Unknown cost category: {category}")
    return BUDGET_FIELDS[resolved]
