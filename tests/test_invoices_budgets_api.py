from __future__ import annotations

from fastapi.testclient import TestClient


def _invoices_url(project: dict[str, object]) -> str:
    return f"/api/v1/projects/{project['id']}/invoices"


def _budget_url(project: dict[str, object]) -> str:
    return f"/api/v1/projects/{project['id']}/budget"


def test_invoice_crud_and_filters(client: TestClient, master_headers: dict[str, str], project: dict[str, object]) -> None:
    first = client.post(
        _invoices_url(project),
        headers=master_headers,
        json={"invoice_number": "INV-001", "amount": "2500.00", "date_billed": "2024-01-31"},
    )
    second = client.post(
        _invoices_url(project),
        headers=master_headers,
        json={"invoice_number": "INV-002", "amount": "7500.00", "date_billed": "2024-02-29"},
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["amount"] == "2500.00"

    listed = client.get(_invoices_url(project), headers=master_headers)
    assert [item["invoice_number"] for item in listed.json()["items"]] == ["INV-002", "INV-001"]

    filtered = client.get(_invoices_url(project), headers=master_headers, params={"min_amount": "5000"})
    assert [item["invoice_number"] for item in filtered.json()["items"]] == ["INV-002"]

    updated = client.patch(
        f"{_invoices_url(project)}/{first.json()['id']}",
        headers=master_headers,
        json={"amount": "2600"},
    )
    assert updated.status_code == 200
    assert updated.json()["amount"] == "2600.00"
    assert updated.json()["invoice_number"] == "INV-001"

    deleted = client.delete(f"{_invoices_url(project)}/{second.json()['id']}", headers=master_headers)
    assert deleted.status_code == 204
    assert len(client.get(_invoices_url(project), headers=master_headers).json()["items"]) == 1


def test_entry_user_cannot_create_invoices(
    client: TestClient,
    entry_headers: dict[str, str],
    project: dict[str, object],
) -> None:
    response = client.post(
        _invoices_url(project),
        headers=entry_headers,
        json={"invoice_number": "INV-9", "amount": "1", "date_billed": "2024-01-01"},
    )

    assert response.status_code == 403


def test_budget_is_created_lazily_with_zero_amounts(
    client: TestClient,
    master_headers: dict[str, str],
    project: dict[str, object],
) -> None:
    response = client.get(_budget_url(project), headers=master_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["project_id"] == project["id"]
    assert body["material_budget"] == "0.00"
    assert body["cap_leases_budget"] == "0.00"

    again = client.get(_budget_url(project), headers=master_headers)
    assert again.json() == body


def test_update_budget_amounts(client: TestClient, master_headers: dict[str, str], project: dict[str, object]) -> None:
    whole = client.put(
        _budget_url(project),
        headers=master_headers,
        json={"material_budget": "5000", "labor_budget": "12000.50"},
    )
    assert whole.status_code == 200
    assert whole.json()["material_budget"] == "5000.00"
    assert whole.json()["labor_budget"] == "12000.50"
    assert whole.json()["equipment_budget"] == "0.00"

    single = client.put(f"{_budget_url(project)}/equipment", headers=master_headers, json={"amount": "800"})
    assert single.status_code == 200
    assert single.json()["equipment_budget"] == "800.00"
    assert single.json()["material_budget"] == "5000.00"

    unknown = client.put(f"{_budget_url(project)}/fuel", headers=master_headers, json={"amount": "1"})
    assert unknown.status_code == 404

    negative = client.put(f"{_budget_url(project)}/equipment", headers=master_headers, json={"amount": "-1"})
    assert negative.status_code == 422


def test_entry_user_cannot_change_budget(
    client: TestClient,
    entry_headers: dict[str, str],
    project: dict[str, object],
) -> None:
    assert client.get(_budget_url(project), headers=entry_headers).status_code == 200
    assert client.put(_budget_url(project), headers=entry_headers, json={"material_budget": "1"}).status_code == 403
    assert (
        client.put(f"{_budget_url(project)}/material", headers=entry_headers, json={"amount": "1"}).status_code == 403
    )
