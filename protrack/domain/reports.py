"""Text, CSV and XLSX export payloads."""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from io import BytesIO

from openpyxl import Workbook

from protrack.domain.aggregation import (
    REPORT_CATEGORY,
    BudgetVsActual,
    Totals,
    format_percent,
    labor_entry_cost,
    q2,
)
from protrack.domain.categories import CATEGORY_DESCRIPTORS, CostCategory, TotalFormula, describe
from protrack.domain.filters import (
    CostFilterSpec,
    InvoiceFilterSpec,
    describe_active_filters,
    describe_active_invoice_filters,
)
from protrack.domain.records import ZERO, CostRecord, InvoiceRecord, ProjectRecord, as_decimal

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_DATE_FORMAT = "%m-%d-%Y"
UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Cost summary order used by the performance report.
SUMMARY_ORDER: tuple[CostCategory, ...] = (
    CostCategory.MATERIAL,
    CostCategory.LABOR,
    CostCategory.EQUIPMENT,
    CostCategory.SUBCONTRACTOR,
    CostCategory.CAP_LEASES,
    CostCategory.CONSUMABLE,
    CostCategory.OTHERS,
)

LABOR_LEDGER_COLUMNS = (
    "Date",
    "Employee",
    "ST Hours",
    "ST Rate",
    "OT Hours",
    "OT Rate",
    "DT Hours",
    "DT Rate",
    "Per Diem",
    "MOB Qty",
    "MOB Rate",
    "Total Cost",
)

Row = list[str]


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def _amount(value: Decimal | None) -> str:
    return str(q2(as_decimal(value)))


def _display_amount(value: Decimal | None) -> str:
    return f"{q2(as_decimal(value)):,}"


def _number(value: Decimal | None) -> str:
    return str(as_decimal(value))


def _exact_amount(value: Decimal) -> str:
    """Cents when the amount has no finer fraction, otherwise every significant digit."""

    amount = as_decimal(value)
    rounded = q2(amount)
    return str(rounded) if rounded == amount else str(amount.normalize())


def _yes_no(value: bool | None) -> str:
    return "Yes" if value else "No"


def _csv_bytes(rows: Sequence[Sequence[str]]) -> bytes:
    sio = io.StringIO()
    writer = csv.writer(sio)
    writer.writerows(rows)
    return sio.getvalue().encode("utf-8")


def _xlsx_bytes(rows: Sequence[Sequence[str]], sheet_title: str) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title[:31]
    for row in rows:
        sheet.append(list(row))
    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def _file_stem(*parts: str) -> str:
    """Join parts into an ASCII-only filename stem safe for a quoted header value."""

    cleaned = (UNSAFE_FILENAME_CHARS.sub("_", part.replace("/", "-")).strip("_") for part in parts if part)
    return "_".join(part for part in cleaned if part)


# ---------- Performance report ----------
def labor_ledger_row(record: CostRecord) -> Row:
    return [
        record.date,
        record.employee_name or "",
        _number(record.st_hours),
        _number(record.st_rate),
        _number(record.ot_hours),
        _number(record.ot_rate),
        _number(record.dt_hours),
        _number(record.dt_rate),
        _number(record.per_diem),
        _number(record.mob_qty),
        _number(record.mob_rate),
        _exact_amount(labor_entry_cost(record)),
    ]


def performance_report_rows(project: ProjectRecord, totals: Totals, report_date: date) -> list[Row]:
    rows: list[Row] = [
        ["Project Performance Report"],
        [],
        ["Project Information"],
        ["Field", "Value"],
        ["Job Number", project.job_number],
        ["Job Name", project.job_name],
        ["Customer", project.customer],
        ["Field/Shop/Both", project.field_shop_both],
        ["Total Billed", _amount(totals.total_billed_to_date)],
        ["Report Date", report_date.isoformat()],
        [],
        ["Cost Summary"],
        ["Category", "Amount"],
    ]
    for category in SUMMARY_ORDER:
        rows.append([describe(category).label, _amount(totals.category_totals.get(category, ZERO))])
    rows.extend(
        [
            ["Total Costs", _amount(totals.total_costs)],
            ["Gross Profit", _amount(totals.gross_profit)],
            ["Profit Margin", totals.margin_text],
        ]
    )
    return rows


def performance_report_text(
    project: ProjectRecord,
    totals: Totals,
    labor_records: Sequence[CostRecord],
    report_date: date,
) -> str:
    """Plain-text project performance report with an optional labor ledger."""

    lines = [
        "PROJECT PERFORMANCE REPORT",
        "==========================",
        "",
        "Project Information:",
        f"Job Number: {project.job_number}",
        f"Job Name: {project.job_name}",
        f"Customer: {project.customer}",
        f"Field/Shop/Both: {project.field_shop_both}",
        f"Total Billed: {_display_amount(totals.total_billed_to_date)}",
        f"Report Date: {report_date.isoformat()}",
        "",
        "COST SUMMARY:",
        "=============",
    ]
    for category in SUMMARY_ORDER:
        lines.append(f"{describe(category).label}: {_display_amount(totals.category_totals.get(category, ZERO))}")
    lines.extend(
        [
            "",
            f"Total Costs: {_display_amount(totals.total_costs)}",
            f"Gross Profit: {_display_amount(totals.gross_profit)}",
            f"Profit Margin: {totals.margin_text}",
        ]
    )

    if labor_records:
        lines.extend(["", "", "DETAILED LABOR BREAKDOWN:", "=" * 50, "\t".join(LABOR_LEDGER_COLUMNS)])
        lines.extend("\t".join(labor_ledger_row(record)) for record in labor_records)

    return "\n".join(lines) + "\n"


def export_performance_report(
    *,
    project: ProjectRecord,
    totals: Totals,
    labor_records: Sequence[CostRecord],
    format_name: str,
    report_date: date,
) -> ExportFilePayload:
    stem = _file_stem(project.job_number, project.job_name, "Report")
    if format_name == "txt":
        content = performance_report_text(project, totals, labor_records, report_date)
        return ExportFilePayload(media_type=TEXT_MEDIA_TYPE, filename=f"{stem}.txt", content=content.encode("utf-8"))

    rows = performance_report_rows(project, totals, report_date)
    if format_name == "csv":
        return ExportFilePayload(media_type=CSV_MEDIA_TYPE, filename=f"{stem}.csv", content=_csv_bytes(rows))
    if format_name == "xlsx":
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=f"{stem}.xlsx",
            content=_xlsx_bytes(rows, "Performance"),
        )
    raise ValueError(f"Unsupported performance report format: {format_name}")


# ---------- Category export ----------
def category_record_row(record: CostRecord, category: CostCategory | str) -> Row:
    descriptor = describe(category)
    if descriptor.formula is TotalFormula.LABOR:
        return labor_ledger_row(record)
    if descriptor.category is CostCategory.OTHERS:
        return [
            record.date,
            record.vendor or "",
            record.description or "",
            record.invoice_number or "",
            _amount(record.cost),
            _yes_no(record.in_system),
        ]
    return [
        record.date,
        record.vendor or record.subcontractor_name or "",
        record.invoice_number or "",
        _amount(record.cost),
        _yes_no(record.in_system),
    ]


def category_export_rows(
    *,
    project: ProjectRecord,
    category: CostCategory | str,
    records: Sequence[CostRecord],
    filters: CostFilterSpec | None,
    total: Decimal,
) -> list[Row]:
    """Rows of a category export; ``filters`` is set when the records were filtered.

    ``total`` is the category total of ``records`` and lands under the cost
    column of a trailing ``Total Cost`` row.
    """

    descriptor = describe(category)
    suffix = "_filtered" if filters is not None else ""
    rows: list[Row] = [[f"{descriptor.label} Export - {project.job_name}{suffix}"], []]

    if filters is not None:
        rows.append(["Applied Filters:"])
        rows.extend([label] for label in describe_active_filters(descriptor.category, filters))
        rows.extend([[], [f"Total Records: {len(records)}"], []])

    columns = list(descriptor.csv_columns)
    rows.append(columns)
    rows.extend(category_record_row(record, descriptor.category) for record in records)

    cost_column = columns.index("Total Cost") if "Total Cost" in columns else columns.index("Cost")
    trailer = [""] * len(columns)
    trailer[0] = "Total Cost"
    trailer[cost_column] = _amount(total)
    rows.append(trailer)
    return rows


def export_category(
    *,
    project: ProjectRecord,
    category: CostCategory | str,
    records: Sequence[CostRecord],
    filters: CostFilterSpec | None,
    total: Decimal,
    format_name: str,
    report_date: date,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> ExportFilePayload:
    descriptor = describe(category)
    rows = category_export_rows(project=project, category=descriptor.category, records=records, filters=filters, total=total)
    suffix = "filtered" if filters is not None else ""
    stem = _file_stem(project.job_number, descriptor.category.value, suffix, report_date.strftime(date_format))

    if format_name == "csv":
        return ExportFilePayload(media_type=CSV_MEDIA_TYPE, filename=f"{stem}.csv", content=_csv_bytes(rows))
    if format_name == "xlsx":
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=f"{stem}.xlsx",
            content=_xlsx_bytes(rows, descriptor.label),
        )
    raise ValueError(f"Unsupported category export format: {format_name}")


# ---------- Invoice export ----------
def invoice_export_rows(
    *,
    project: ProjectRecord,
    invoices: Sequence[InvoiceRecord],
    filters: InvoiceFilterSpec | None,
) -> list[Row]:
    suffix = "_filtered" if filters is not None else ""
    rows: list[Row] = [[f"Customer Invoices Export - {project.job_name}{suffix}"], []]
    if filters is not None:
        rows.append(["Applied Filters:"])
        rows.extend([label] for label in describe_active_invoice_filters(filters))
        rows.extend([[], [f"Total Records: {len(invoices)}"], []])

    rows.append(["Invoice Number", "Amount", "Date Billed"])
    for invoice in invoices:
        rows.append([invoice.invoice_number or "", _amount(invoice.amount), invoice.date_billed])

    total = sum((as_decimal(invoice.amount) for invoice in invoices), ZERO)
    rows.extend([[], ["Total Amount", _amount(total)]])
    return rows


def export_invoices(
    *,
    project: ProjectRecord,
    invoices: Sequence[InvoiceRecord],
    filters: InvoiceFilterSpec | None,
    report_date: date,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> ExportFilePayload:
    rows = invoice_export_rows(project=project, invoices=invoices, filters=filters)
    suffix = "filtered" if filters is not None else ""
    stem = _file_stem(project.job_number, "invoices", suffix, report_date.strftime(date_format))
    return ExportFilePayload(media_type=CSV_MEDIA_TYPE, filename=f"{stem}.csv", content=_csv_bytes(rows))


# ---------- Budget vs actual ----------
def _signed_display(value: Decimal) -> str:
    sign = "-" if value < ZERO else ""
    return f"{sign}${_display_amount(abs(value))}"


def budget_vs_actual_text(report: BudgetVsActual, report_date: date) -> str:
    project = report.project
    lines = [
        "BUDGET VS ACTUAL REPORT",
        "=" * 50,
        "",
        f"Project: {project.job_number} - {project.job_name}",
        f"Customer: {project.customer}",
        f"Period: {report.period}",
        f"Report Generated: {report_date.isoformat()}",
        "",
    ]

    if report.report_type == REPORT_CATEGORY:
        line = report.lines[0]
        lines.extend(
            [
                f"{CATEGORY_DESCRIPTORS[line.category].label.upper()} DETAILED REPORT:",
                "-" * 30,
                f"Budget: ${_display_amount(line.budget)}",
                f"Actual: ${_display_amount(line.actual)}",
                f"Variance: {_signed_display(line.variance)}",
                f"Budget Used: {format_percent(line.percent_used)}",
            ]
        )
        return "\n".join(lines) + "\n"

    lines.extend(
        [
            "PROJECT SUMMARY:",
            "-" * 20,
            f"Total Budget: ${_display_amount(report.total_budget)}",
            f"Total Actual: ${_display_amount(report.total_actual)}",
            f"Total Variance: {_signed_display(report.total_variance)}",
            f"Budget Used: {format_percent(report.total_percent_used)}",
            "",
            "CATEGORY BREAKDOWN:",
            "-" * 20,
        ]
    )
    for line in report.lines:
        lines.extend(
            [
                f"{CATEGORY_DESCRIPTORS[line.category].label.upper()}:",
                f"  Budget: ${_display_amount(line.budget)}",
                f"  Actual: ${_display_amount(line.actual)}",
                f"  Variance: {_signed_display(line.variance)}",
                f"  Status: {line.status.upper()}",
                "",
            ]
        )
    return "\n".join(lines) + "\n"


def budget_vs_actual_rows(report: BudgetVsActual, report_date: date) -> list[Row]:
    project = report.project
    rows: list[Row] = [
        ["Budget vs Actual Report"],
        ["Project", f"{project.job_number} - {project.job_name}"],
        ["Customer", project.customer],
        ["Period", report.period],
        ["Report Date", report_date.isoformat()],
        [],
    ]

    if report.report_type == REPORT_CATEGORY:
        line = report.lines[0]
        rows.append(["Category", "Budget", "Actual", "Variance", "Percent Used"])
        rows.append(
            [
                line.category.value,
                _amount(line.budget),
                _amount(line.actual),
                _amount(line.variance),
                format_percent(line.percent_used),
            ]
        )
        return rows

    rows.extend(
        [
            ["Summary"],
            ["Metric", "Amount"],
            ["Total Budget", _amount(report.total_budget)],
            ["Total Actual", _amount(report.total_actual)],
            ["Total Variance", _amount(report.total_variance)],
            ["Percent Used", format_percent(report.total_percent_used)],
            [],
            ["Category Breakdown"],
            ["Category", "Budget", "Actual", "Variance", "Percent Used", "Status"],
        ]
    )
    for line in report.lines:
        rows.append(
            [
                line.category.value,
                _amount(line.budget),
                _amount(line.actual),
                _amount(line.variance),
                format_percent(line.percent_used),
                line.status,
            ]
        )
    return rows


def export_budget_vs_actual(report: BudgetVsActual, *, format_name: str, report_date: date) -> ExportFilePayload:
    stem = _file_stem("BudgetVsActual", report.project.job_number, report_date.isoformat())
    if format_name == "txt":
        content = budget_vs_actual_text(report, report_date)
        return ExportFilePayload(media_type=TEXT_MEDIA_TYPE, filename=f"{stem}.txt", content=content.encode("utf-8"))
    if format_name == "csv":
        rows = budget_vs_actual_rows(report, report_date)
        return ExportFilePayload(media_type=CSV_MEDIA_TYPE, filename=f"{stem}.csv", content=_csv_bytes(rows))
    raise ValueError(f"Unsupported budget report format: {format_name}")
