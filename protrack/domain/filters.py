"""Filter engine for cost and invoice records.

Every function here is pure: inputs are never mutated and the relative order
of surviving records is preserved. Empty filter values are no-ops.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TypeVar
from uuid import UUID

from protrack.domain.categories import CostCategory, FilterKind, describe
from protrack.domain.records import CostRecord, InvoiceRecord, as_decimal

CHANGE_ORDER_ALL = "all"
CHANGE_ORDER_BASE = "base"

IN_SYSTEM_ALL = "all"
_IN_SYSTEM_VALUES = {"true": True, "false": False}

RecordT = TypeVar("RecordT", CostRecord, InvoiceRecord)


@dataclass(slots=True)
class CostFilterSpec:
    """Per-category filter state; only the fields relevant to a category apply."""

    start_date: str = ""
    end_date: str = ""
    vendor: str = ""
    employee_name: str = ""
    subcontractor_name: str = ""
    min_cost: str = ""
    max_cost: str = ""
    min_hours: str = ""
    max_hours: str = ""
    in_system: str = IN_SYSTEM_ALL

    def is_active(self, category: CostCategory | str) -> bool:
        return bool(describe_active_filters(category, self))


@dataclass(slots=True)
class InvoiceFilterSpec:
    start_date: str = ""
    end_date: str = ""
    invoice_number: str = ""
    min_amount: str = ""
    max_amount: str = ""

    def is_active(self) -> bool:
        return bool(describe_active_invoice_filters(self))


def _bound(value: str | None) -> Decimal | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if parsed.is_nan():
        return None
    return parsed


def _contains(haystack: str | None, needle: str) -> bool:
    if not haystack:
        return False
    return needle.lower() in haystack.lower()


def _in_system_expected(value: str | None) -> bool | None:
    if value is None:
        return None
    return _IN_SYSTEM_VALUES.get(str(value).strip().lower())


def _within_dates(value: str | None, start_date: str, end_date: str) -> bool:
    current = value or ""
    if start_date and current < start_date:
        return False
    if end_date and current > end_date:
        return False
    return True


def _within_bounds(value: Decimal, minimum: str, maximum: str) -> bool:
    lower = _bound(minimum)
    if lower is not None and value < lower:
        return False
    upper = _bound(maximum)
    if upper is not None and value > upper:
        return False
    return True


def labor_hours(record: CostRecord) -> Decimal:
    """Straight, overtime and double-time hours; per diem and mobilization excluded."""

    return as_decimal(record.st_hours) + as_decimal(record.ot_hours) + as_decimal(record.dt_hours)


def _matches_vendor_predicates(record: CostRecord, spec: CostFilterSpec) -> bool:
    if spec.vendor and not _contains(record.vendor, spec.vendor):
        return False
    if not _within_bounds(as_decimal(record.cost), spec.min_cost, spec.max_cost):
        return False
    expected = _in_system_expected(spec.in_system)
    if expected is not None and record.in_system is not expected:
        return False
    return True


def cost_record_matches(record: CostRecord, category: CostCategory | str, spec: CostFilterSpec) -> bool:
    """Whether ``record`` satisfies every active predicate of ``spec``."""

    if not _within_dates(record.date, spec.start_date, spec.end_date):
        return False

    kind = describe(category).filter_kind
    if kind is FilterKind.LABOR:
        if spec.employee_name and not _contains(record.employee_name, spec.employee_name):
            return False
        return _within_bounds(labor_hours(record), spec.min_hours, spec.max_hours)

    if kind is FilterKind.SUBCONTRACTOR:
        if spec.subcontractor_name and not _contains(record.subcontractor_name, spec.subcontractor_name):
            return False
    return _matches_vendor_predicates(record, spec)


def apply_filters(
    records: Iterable[CostRecord],
    category: CostCategory | str,
    spec: CostFilterSpec | None,
) -> list[CostRecord]:
    if spec is None:
        return list(records)
    return [record for record in records if cost_record_matches(record, category, spec)]


def invoice_matches(invoice: InvoiceRecord, spec: InvoiceFilterSpec) -> bool:
    if not _within_dates(invoice.date_billed, spec.start_date, spec.end_date):
        return False
    if spec.invoice_number and not _contains(invoice.invoice_number, spec.invoice_number):
        return False
    return _within_bounds(as_decimal(invoice.amount), spec.min_amount, spec.max_amount)


def apply_invoice_filters(invoices: Iterable[InvoiceRecord], spec: InvoiceFilterSpec | None) -> list[InvoiceRecord]:
    if spec is None:
        return list(invoices)
    return [invoice for invoice in invoices if invoice_matches(invoice, spec)]


def partition_by_change_order(records: Iterable[RecordT], selection: str | UUID | None) -> list[RecordT]:
    """Restrict records to ``all``, the ``base`` contract, or one change order id."""

    if selection is None or selection == "" or selection == CHANGE_ORDER_ALL:
        return list(records)
    if selection == CHANGE_ORDER_BASE:
        return [record for record in records if record.change_order_id is None]

    wanted = str(selection)
    return [
        record
        for record in records
        if record.change_order_id is not None and str(record.change_order_id) == wanted
    ]


def describe_active_filters(category: CostCategory | str, spec: CostFilterSpec) -> list[str]:
    """Human-readable labels for the predicates that apply to ``category``."""

    kind = describe(category).filter_kind
    labels: list[str] = []
    if spec.start_date:
        labels.append(f"Start Date: {spec.start_date}")
    if spec.end_date:
        labels.append(f"End Date: {spec.end_date}")

    if kind is FilterKind.LABOR:
        if spec.employee_name:
            labels.append(f"Employee: {spec.employee_name}")
        if _bound(spec.min_hours) is not None:
            labels.append(f"Min Hours: {spec.min_hours}")
        if _bound(spec.max_hours) is not None:
            labels.append(f"Max Hours: {spec.max_hours}")
        return labels

    if spec.vendor:
        labels.append(f"Vendor: {spec.vendor}")
    if kind is FilterKind.SUBCONTRACTOR and spec.subcontractor_name:
        labels.append(f"Subcontractor: {spec.subcontractor_name}")
    if _bound(spec.min_cost) is not None:
        labels.append(f"Min Cost: {spec.min_cost}")
    if _bound(spec.max_cost) is not None:
        labels.append(f"Max Cost: {spec.max_cost}")
    expected = _in_system_expected(spec.in_system)
    if expected is not None:
        labels.append(f"In System: {'Yes' if expected else 'No'}")
    return labels


def describe_active_invoice_filters(spec: InvoiceFilterSpec) -> list[str]:
    labels: list[str] = []
    if spec.start_date:
        labels.append(f"Start Date: {spec.start_date}")
    if spec.end_date:
        labels.append(f"End Date: {spec.end_date}")
    if spec.invoice_number:
        labels.append(f"Invoice Number: {spec.invoice_number}")
    if _bound(spec.min_amount) is not None:
        labels.append(f"Min Amount: {spec.min_amount}")
    if _bound(spec.max_amount) is not None:
        labels.append(f"Max Amount: {spec.max_amount}")
    return labels


def project_scope(records: Sequence[CostRecord], project_id: UUID | None) -> list[CostRecord]:
    """Records owned by ``project_id`` plus global (project-less) records."""

    return [record for record in records if record.project_id is None or record.project_id == project_id]
