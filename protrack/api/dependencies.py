"""Query-parameter dependencies shared by list and export endpoints."""

from __future__ import annotations

from fastapi import Query

from protrack.domain.filters import CostFilterSpec, InvoiceFilterSpec


def cost_filter_params(
    start_date: str = Query(default=""),
    end_date: str = Query(default=""),
    vendor: str = Query(default=""),
    employee_name: str = Query(default=""),
    subcontractor_name: str = Query(default=""),
    min_cost: str = Query(default=""),
    max_cost: str = Query(default=""),
    min_hours: str = Query(default=""),
    max_hours: str = Query(default=""),
    in_system: str = Query(default="all"),
) -> CostFilterSpec:
    """Collect cost filter query parameters; empty values leave a predicate off."""

    return CostFilterSpec(
        start_date=start_date,
        end_date=end_date,
        vendor=vendor,
        employee_name=employee_name,
        subcontractor_name=subcontractor_name,
        min_cost=min_cost,
        max_cost=max_cost,
        min_hours=min_hours,
        max_hours=max_hours,
        in_system=in_system,
    )


def invoice_filter_params(
    start_date: str = Query(default=""),
    end_date: str = Query(default=""),
    invoice_number: str = Query(default=""),
    min_amount: str = Query(default=""),
    max_amount: str = Query(default=""),
) -> InvoiceFilterSpec:
    return InvoiceFilterSpec(
        start_date=start_date,
        end_date=end_date,
        invoice_number=invoice_number,
        min_amount=min_amount,
        max_amount=max_amount,
    )
