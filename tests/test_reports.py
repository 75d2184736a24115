from __future__ import annotations

import csv
import io
import uuid
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from protrack.domain.aggregation import REPORT_CATEGORY, budget_vs_actual, calculate_totals, category_total
from protrack.domain.categories import CostCategory
from protrack.domain.filters import CostFilterSpec, apply_filters
from protrack.domain.records import BudgetRecord, CostRecord, InvoiceRecord, ProjectRecord
from protrack.domain.reports import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    category_export_rows,
    export_budget_vs_actual,
    export_category,
    export_invoices,
    export_performance_report,
    performance_report_text,
)

REPORT_DATE = date(2024, 6, 1)
PROJECT = ProjectRecord(
    id=uuid.uuid4(),
    job_number="J-7",
    job_name="Water Tower",
    customer="City",
    field_shop_both="Both",
    total_contract_value=Decimal("80000"),
)


def _equipment(vendor: str, cost: str, date_text: str = "2024-05-01") -> CostRecord:
    return CostRecord(id=uuid.uuid4(), project_id=PROJECT.id, date=date_text, vendor=vendor, cost=Decimal(cost))


def _labor(name: str, hours: str) -> CostRecord:
    return CostRecord(
        id=uuid.uuid4(),
        project_id=PROJECT.id,
        date="2024-05-02",
        employee_name=name,
        st_hours=Decimal(hours),
        st_rate=Decimal("40"),
        per_diem=Decimal("10"),
    )


def _rows(content: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


def test_category_csv_total_matches_dashboard_total() -> None:
    records = [_equipment("Crane Co", "1200.00"), _equipment("Lift Rentals", "300.25")]
    totals = calculate_totals({CostCategory.EQUIPMENT: records}, None, [], PROJECT)

    exported = export_category(
        project=PROJECT,
        category=CostCategory.EQUIPMENT,
        records=records,
        filters=None,
        total=category_total(records, CostCategory.EQUIPMENT),
        format_name="csv",
        report_date=REPORT_DATE,
    )
    rows = _rows(exported.content)

    assert exported.media_type == CSV_MEDIA_TYPE
    assert exported.filename == "J-7_equipment_06-01-2024.csv"
    assert rows[0] == ["Equipment Export - Water Tower"]
    assert rows[2] == ["Date", "Vendor/Subcontractor", "Invoice Number", "Cost", "In System"]
    assert rows[3] == ["2024-05-01", "Crane Co", "", "1200.00", "Yes"]
    assert rows[-1] == ["Total Cost", "", "", "1500.25", ""]
    assert Decimal(rows[-1][3]) == totals.category_totals[CostCategory.EQUIPMENT]


def test_filtered_category_export_lists_applied_filters() -> None:
    records = [_equipment("Crane Co", "1200.00"), _equipment("Lift Rentals", "300.25")]
    spec = CostFilterSpec(vendor="crane")
    filtered = apply_filters(records, CostCategory.EQUIPMENT, spec)

    rows = category_export_rows(
        project=PROJECT,
        category=CostCategory.EQUIPMENT,
        records=filtered,
        filters=spec,
        total=category_total(filtered, CostCategory.EQUIPMENT),
    )

    assert rows[0] == ["Equipment Export - Water Tower_filtered"]
    assert ["Applied Filters:"] in rows
    assert ["Vendor: crane"] in rows
    assert ["Total Records: 1"] in rows
    assert rows[-1][0] == "Total Cost"
    assert rows[-1][3] == "1200.00"


def test_labor_export_puts_total_under_total_cost_column() -> None:
    records = [_labor("Dana", "8"), _labor("Sam", "4")]

    rows = category_export_rows(
        project=PROJECT,
        category=CostCategory.LABOR,
        records=records,
        filters=None,
        total=category_total(records, CostCategory.LABOR),
    )

    header = rows[2]
    assert header[-1] == "Total Cost"
    assert rows[3][-1] == "330.00"
    assert rows[-1][0] == "Total Cost"
    assert rows[-1][-1] == "500.00"


def test_labor_rows_keep_sub_cent_totals_that_add_up_to_the_trailer() -> None:
    records = [
        CostRecord(
            id=uuid.uuid4(),
            project_id=PROJECT.id,
            date="2024-05-03",
            employee_name=name,
            st_hours=Decimal("1.25"),
            st_rate=Decimal("10.33"),
        )
        for name in ("Dana", "Sam")
    ]

    rows = category_export_rows(
        project=PROJECT,
        category=CostCategory.LABOR,
        records=records,
        filters=None,
        total=category_total(records, CostCategory.LABOR),
    )

    row_totals = [Decimal(row[-1]) for row in rows[3:-1]]
    assert [row[-1] for row in rows[3:-1]] == ["12.9125", "12.9125"]
    assert sum(row_totals) == Decimal("25.825")
    assert rows[-1][-1] == str(sum(row_totals).quantize(Decimal("0.01")))


def test_category_xlsx_export_is_a_workbook() -> None:
    records = [_equipment("Crane Co", "1200.00")]
    exported = export_category(
        project=PROJECT,
        category="capLeases",
        records=records,
        filters=None,
        total=category_total(records, CostCategory.CAP_LEASES),
        format_name="xlsx",
        report_date=REPORT_DATE,
    )

    workbook = load_workbook(io.BytesIO(exported.content))
    sheet = workbook.active
    assert exported.media_type == XLSX_MEDIA_TYPE
    assert exported.filename.endswith(".xlsx")
    assert sheet.title == "Cap Leases"
    assert sheet.cell(row=1, column=1).value == "Cap Leases Export - Water Tower"


def test_unsupported_category_format_raises() -> None:
    with pytest.raises(ValueError):
        export_category(
            project=PROJECT,
            category=CostCategory.MATERIAL,
            records=[],
            filters=None,
            total=Decimal("0"),
            format_name="pdf",
            report_date=REPORT_DATE,
        )


def test_performance_report_text_includes_summary_and_labor_ledger() -> None:
    labor = [_labor("Dana", "8")]
    invoices = [
        InvoiceRecord(id=uuid.uuid4(), project_id=PROJECT.id, invoice_number="1", amount=Decimal("1000"), date_billed="2024-05-31")
    ]
    totals = calculate_totals({CostCategory.LABOR: labor}, None, invoices, PROJECT)

    text = performance_report_text(PROJECT, totals, labor, REPORT_DATE)

    assert text.startswith("PROJECT PERFORMANCE REPORT")
    assert "Job Number: J-7" in text
    assert "Labor: 330.00" in text
    assert "Total Billed: 1,000.00" in text
    assert "Gross Profit: 670.00" in text
    assert "Profit Margin: 67.0%" in text
    assert "DETAILED LABOR BREAKDOWN:" in text
    assert "Dana" in text


def test_performance_report_without_labor_omits_ledger() -> None:
    totals = calculate_totals({}, None, [], PROJECT)

    exported = export_performance_report(
        project=PROJECT,
        totals=totals,
        labor_records=[],
        format_name="txt",
        report_date=REPORT_DATE,
    )

    assert exported.filename == "J-7_Water_Tower_Report.txt"
    assert b"DETAILED LABOR BREAKDOWN" not in exported.content
    assert b"Profit Margin: 0.0%" in exported.content


def test_performance_report_csv_rows() -> None:
    totals = calculate_totals({CostCategory.MATERIAL: [_equipment("Steel", "50")]}, None, [], PROJECT)

    exported = export_performance_report(
        project=PROJECT,
        totals=totals,
        labor_records=[],
        format_name="csv",
        report_date=REPORT_DATE,
    )
    rows = _rows(exported.content)

    assert rows[0] == ["Project Performance Report"]
    assert ["Material", "50.00"] in rows
    assert ["Total Costs", "50.00"] in rows
    assert ["Profit Margin", "0.0%"] in rows


def test_invoice_export_totals_amounts() -> None:
    invoices = [
        InvoiceRecord(id=uuid.uuid4(), project_id=PROJECT.id, invoice_number="INV-1", amount=Decimal("100"), date_billed="2024-04-30"),
        InvoiceRecord(id=uuid.uuid4(), project_id=PROJECT.id, invoice_number="INV-2", amount=Decimal("250.5"), date_billed="2024-05-31"),
    ]

    exported = export_invoices(project=PROJECT, invoices=invoices, filters=None, report_date=REPORT_DATE)
    rows = _rows(exported.content)

    assert exported.filename == "J-7_invoices_06-01-2024.csv"
    assert rows[0] == ["Customer Invoices Export - Water Tower"]
    assert ["Invoice Number", "Amount", "Date Billed"] in rows
    assert rows[-1] == ["Total Amount", "350.50"]


def test_budget_vs_actual_text_and_csv() -> None:
    costs = {CostCategory.MATERIAL: [_equipment("Steel", "1500")]}
    budget = BudgetRecord(material_budget=Decimal("1000"))
    report = budget_vs_actual(project=PROJECT, costs_by_category=costs, budget=budget, categories=list(CostCategory))

    text = export_budget_vs_actual(report, format_name="txt", report_date=REPORT_DATE)
    body = text.content.decode("utf-8")
    assert text.filename == "BudgetVsActual_J-7_2024-06-01.txt"
    assert "PROJECT SUMMARY:" in body
    assert "Total Variance: -$500.00" in body
    assert "Status: OVER" in body

    table = export_budget_vs_actual(report, format_name="csv", report_date=REPORT_DATE)
    rows = _rows(table.content)
    assert ["material", "1000.00", "1500.00", "-500.00", "150.0%", "over"] in rows


def test_budget_vs_actual_category_text() -> None:
    costs = {CostCategory.MATERIAL: [_equipment("Steel", "250")]}
    report = budget_vs_actual(
        project=PROJECT,
        costs_by_category=costs,
        budget=BudgetRecord(material_budget=Decimal("1000")),
        categories=list(CostCategory),
        report_type=REPORT_CATEGORY,
        category=CostCategory.MATERIAL,
    )

    body = export_budget_vs_actual(report, format_name="txt", report_date=REPORT_DATE).content.decode("utf-8")

    assert "MATERIAL DETAILED REPORT:" in body
    assert "Budget Used: 25.0%" in body
