from __future__ import annotations

import csv
import io

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def populated_project(
    client: TestClient,
    master_headers: dict[str, str],
    project: dict[str, object],
) -> dict[str, object]:
    project_id = project["id"]
    costs = f"/api/v1/projects/{project_id}/costs"

    for payload in (
        {"date": "2024-01-15", "vendor": "Acme Supply", "cost": "1000.00"},
        {"date": "2024-02-15", "vendor": "Bolt Depot", "cost": "250.50", "in_system": False},
    ):
        assert client.post(f"{costs}/material", headers=master_headers, json=payload).status_code == 201

    labor = client.post(
        f"{costs}/labor",
        headers=master_headers,
        json={
            "date": "2024-02-01",
            "employee_name": "Dana Reyes",
            "st_hours": "8",
            "st_rate": "50",
            "ot_hours": "2",
            "ot_rate": "75",
            "per_diem": "25",
            "mob_qty": "1",
            "mob_rate": "200",
        },
    )
    assert labor.status_code == 201

    invoice = client.post(
        f"/api/v1/projects/{project_id}/invoices",
        headers=master_headers,
        json={"invoice_number": "INV-1", "amount": "4000.00", "date_billed": "2024-02-28"},
    )
    assert invoice.status_code == 201

    change_order = client.post(
        f"/api/v1/projects/{project_id}/change-orders",
        headers=master_headers,
        json={"name": "CO-1", "additional_contract_value": "5000.00"},
    )
    assert change_order.status_code == 201

    budget = client.put(
        f"/api/v1/projects/{project_id}/budget",
        headers=master_headers,
        json={"material_budget": "1000", "labor_budget": "1000"},
    )
    assert budget.status_code == 200
    return project


def _csv_rows(content: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


def test_project_dashboard_totals(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    response = client.get(f"/api/v1/dashboards/projects/{populated_project['id']}", headers=master_headers)

    assert response.status_code == 200
    body = response.json()
    categories = {item["category"]: item for item in body["totals"]["categories"]}
    assert categories["material"]["total"] == "1250.50"
    assert categories["material"]["variance"] == "-250.50"
    assert categories["labor"]["total"] == "775.00"
    assert categories["labor"]["label"] == "Labor"
    assert categories["equipment"]["total"] == "0.00"
    assert body["totals"]["total_costs"] == "2025.50"
    assert body["totals"]["total_budget"] == "2000.00"
    assert body["totals"]["total_billed_to_date"] == "4000.00"
    assert body["totals"]["gross_profit"] == "1974.50"
    assert body["totals"]["profit_margin"] == "49.4%"

    contract = body["contract"]
    assert contract["base_contract_value"] == "100000.00"
    assert contract["change_order_value"] == "5000.00"
    assert contract["grand_total"] == "105000.00"
    assert contract["remaining_to_bill"] == "96000.00"
    assert contract["change_order_count"] == 1


def test_dashboard_skips_categories_the_user_cannot_read(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    created = client.post(
        "/api/v1/users",
        headers=master_headers,
        json={
            "email": "buyer@acme.test",
            "name": "Buyer",
            "role": "manager",
            "permissions": {"material": "write", "projects": "read"},
        },
    )
    assert created.status_code == 201
    buyer_headers = {"X-Tenant-ID": "acme", "X-User-Email": "buyer@acme.test", "X-User-Name": "Buyer"}

    response = client.get(f"/api/v1/dashboards/projects/{populated_project['id']}", headers=buyer_headers)

    assert response.status_code == 200
    totals = response.json()["totals"]
    assert [item["category"] for item in totals["categories"]] == ["material"]
    assert totals["total_costs"] == "1250.50"
    assert totals["total_budget"] == "2000.00"

    labor_export = client.get(
        f"/api/v1/exports/projects/{populated_project['id']}/costs/labor",
        headers=buyer_headers,
    )
    assert labor_export.status_code == 403


def test_budget_vs_actual_labor_matches_dashboard(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    project_id = populated_project["id"]
    dashboard = client.get(f"/api/v1/dashboards/projects/{project_id}", headers=master_headers).json()
    dashboard_labor = next(item for item in dashboard["totals"]["categories"] if item["category"] == "labor")

    report = client.get(f"/api/v1/dashboards/projects/{project_id}/budget-vs-actual", headers=master_headers)

    assert report.status_code == 200
    body = report.json()
    lines = {line["category"]: line for line in body["lines"]}
    assert lines["labor"]["actual"] == dashboard_labor["total"]
    assert lines["labor"]["status"] == "under"
    assert lines["material"]["status"] == "over"
    assert lines["equipment"]["status"] == "ontrack"
    assert body["period"] == "All Time"
    assert body["summary"]["total_actual"] == dashboard["totals"]["total_costs"]


def test_budget_vs_actual_category_report(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    report = client.get(
        f"/api/v1/dashboards/projects/{populated_project['id']}/budget-vs-actual",
        headers=master_headers,
        params={"report_type": "category", "category": "material", "start_date": "2024-02-01"},
    )

    assert report.status_code == 200
    body = report.json()
    assert body["period"] == "From 2024-02-01"
    assert body["summary"]["total_actual"] == "250.50"
    assert len(body["details"]) == 1

    missing_category = client.get(
        f"/api/v1/dashboards/projects/{populated_project['id']}/budget-vs-actual",
        headers=master_headers,
        params={"report_type": "category"},
    )
    assert missing_category.status_code == 422

    bad_type = client.get(
        f"/api/v1/dashboards/projects/{populated_project['id']}/budget-vs-actual",
        headers=master_headers,
        params={"report_type": "weekly"},
    )
    assert bad_type.status_code == 422


def test_category_csv_export_matches_dashboard_total(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    project_id = populated_project["id"]

    response = client.get(f"/api/v1/exports/projects/{project_id}/costs/material", headers=master_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/csv; charset=utf-8"
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="J-100_material_')
    assert disposition.endswith('.csv"')

    rows = _csv_rows(response.content)
    assert rows[0] == ["Material Export - North Plant"]
    assert rows[2] == ["Date", "Vendor/Subcontractor", "Invoice Number", "Cost", "In System"]
    assert rows[3] == ["2024-02-15", "Bolt Depot", "", "250.50", "No"]
    assert rows[-1][0] == "Total Cost"
    assert rows[-1][3] == "1250.50"


def test_filtered_category_export(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    response = client.get(
        f"/api/v1/exports/projects/{populated_project['id']}/costs/material",
        headers=master_headers,
        params={"use_filters": True, "in_system": "true"},
    )

    assert response.status_code == 200
    assert "_filtered_" in response.headers["content-disposition"]
    rows = _csv_rows(response.content)
    assert rows[0] == ["Material Export - North Plant_filtered"]
    assert ["In System: Yes"] in rows
    assert ["Total Records: 1"] in rows
    assert rows[-1][3] == "1000.00"


def test_export_rejects_unknown_format(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    project_id = populated_project["id"]

    category = client.get(
        f"/api/v1/exports/projects/{project_id}/costs/material",
        headers=master_headers,
        params={"format": "pdf"},
    )
    performance = client.get(
        f"/api/v1/exports/projects/{project_id}/performance-report",
        headers=master_headers,
        params={"format": "docx"},
    )

    assert category.status_code == 422
    assert performance.status_code == 422


def test_performance_report_exports(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    project_id = populated_project["id"]

    text = client.get(f"/api/v1/exports/projects/{project_id}/performance-report", headers=master_headers)
    assert text.status_code == 200
    assert text.headers["content-disposition"] == 'attachment; filename="J-100_North_Plant_Report.txt"'
    body = text.text
    assert body.startswith("PROJECT PERFORMANCE REPORT")
    assert "Material: 1,250.50" in body
    assert "Labor: 775.00" in body
    assert "Profit Margin: 49.4%" in body
    assert "DETAILED LABOR BREAKDOWN:" in body
    assert "Dana Reyes" in body

    workbook = client.get(
        f"/api/v1/exports/projects/{project_id}/performance-report",
        headers=master_headers,
        params={"format": "xlsx"},
    )
    assert workbook.status_code == 200
    assert workbook.headers["content-type"] == (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert workbook.content[:2] == b"PK"


def test_invoice_export(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    response = client.get(
        f"/api/v1/exports/projects/{populated_project['id']}/invoices",
        headers=master_headers,
        params={"use_filters": False},
    )

    assert response.status_code == 200
    rows = _csv_rows(response.content)
    assert rows[0] == ["Customer Invoices Export - North Plant"]
    assert ["INV-1", "4000.00", "2024-02-28"] in rows
    assert rows[-1] == ["Total Amount", "4000.00"]


def test_budget_vs_actual_export(
    client: TestClient,
    master_headers: dict[str, str],
    populated_project: dict[str, object],
) -> None:
    response = client.get(
        f"/api/v1/exports/projects/{populated_project['id']}/budget-vs-actual",
        headers=master_headers,
        params={"format": "csv"},
    )

    assert response.status_code == 200
    assert 'filename="BudgetVsActual_J-100_' in response.headers["content-disposition"]
    rows = _csv_rows(response.content)
    assert ["labor", "1000.00", "775.00", "225.00", "77.5%", "under"] in rows


@pytest.mark.parametrize(
    ("job_name", "expected_filename"),
    [
        ("North Plant – Phase 2", "J-200_North_Plant_Phase_2_Report.txt"),
        ('Plant "A"', "J-200_Plant_A_Report.txt"),
        ("北工場", "J-200_Report.txt"),
    ],
)
def test_export_filenames_are_header_safe(
    client: TestClient,
    master_headers: dict[str, str],
    job_name: str,
    expected_filename: str,
) -> None:
    created = client.post(
        "/api/v1/projects",
        headers=master_headers,
        json={"job_number": "J-200", "job_name": job_name, "customer": "Globex"},
    )
    assert created.status_code == 201
    project_id = created.json()["id"]

    report = client.get(f"/api/v1/exports/projects/{project_id}/performance-report", headers=master_headers)

    assert report.status_code == 200
    assert report.headers["content-disposition"] == f'attachment; filename="{expected_filename}"'
    assert f"Job Name: {job_name}" in report.text

    ledger = client.get(f"/api/v1/exports/projects/{project_id}/costs/material", headers=master_headers)
    assert ledger.status_code == 200
    assert ledger.headers["content-disposition"].count('"') == 2
