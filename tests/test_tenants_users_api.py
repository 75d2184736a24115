from __future__ import annotations

from fastapi.testclient import TestClient

from protrack.models.entities import Tenant


def _headers(tenant: str, email: str, name: str) -> dict[str, str]:
    return {
        "X-Tenant-ID": tenant,
        "X-User-Email": email,
        "X-User-Name": name,
    }


def test_register_tenant_creates_master_user(client: TestClient) -> None:
    response = client.post(
        "/api/v1/tenants",
        json={"name": "Initech", "subdomain": "initech", "admin_email": "Boss@Initech.test", "admin_name": "Bill"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["tenant"]["subdomain"] == "initech"
    assert body["user"]["role"] == "master"
    assert body["user"]["email"] == "boss@initech.test"

    me = client.get("/api/v1/me", headers=_headers("initech", "boss@initech.test", "Bill"))
    assert me.status_code == 200
    assert me.json()["role"] == "master"
    assert me.json()["tenant_id"] == body["tenant"]["id"]

    by_id = client.get("/api/v1/me", headers=_headers(body["tenant"]["id"], "boss@initech.test", "Bill"))
    assert by_id.json()["id"] == me.json()["id"]


def test_register_tenant_rejects_taken_or_invalid_subdomain(client: TestClient) -> None:
    payload = {"name": "Initech", "subdomain": "initech", "admin_email": "a@initech.test", "admin_name": "A"}
    assert client.post("/api/v1/tenants", json=payload).status_code == 201
    assert client.post("/api/v1/tenants", json=payload).status_code == 409

    invalid = dict(payload, subdomain="Not_Valid")
    assert client.post("/api/v1/tenants", json=invalid).status_code == 422


def test_first_request_creates_entry_user(client: TestClient, entry_headers: dict[str, str]) -> None:
    response = client.get("/api/v1/me", headers=entry_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "entry"
    assert body["email"] == "clerk@acme.test"
    assert body["permissions"]["material"] == "read"
    assert body["permissions"]["users"] == "none"


def test_missing_or_unknown_identity_is_unauthorized(client: TestClient, tenant: Tenant) -> None:
    partial = client.get("/api/v1/me", headers={"X-Tenant-ID": "acme"})
    unknown = client.get("/api/v1/me", headers=_headers("nowhere", "x@nowhere.test", "X"))

    assert partial.status_code == 401
    assert unknown.status_code == 401


def test_development_principal_when_no_headers(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 200
    assert response.json()["role"] == "master"
    assert response.json()["email"] == "dev.user@local.test"


def test_tenants_are_isolated(client: TestClient, master_headers: dict[str, str], project: dict[str, object]) -> None:
    client.post(
        "/api/v1/tenants",
        json={"name": "Initech", "subdomain": "initech", "admin_email": "boss@initech.test", "admin_name": "Bill"},
    )
    outsider = _headers("initech", "boss@initech.test", "Bill")

    assert client.get("/api/v1/projects", headers=outsider).json()["items"] == []
    assert client.get(f"/api/v1/projects/{project['id']}", headers=outsider).status_code == 404


def test_user_management(client: TestClient, master_headers: dict[str, str]) -> None:
    created = client.post(
        "/api/v1/users",
        headers=master_headers,
        json={"email": "Foreman@Acme.test", "name": "Foreman", "role": "manager"},
    )
    assert created.status_code == 201
    user = created.json()
    assert user["email"] == "foreman@acme.test"
    assert user["permissions"]["labor"] == "read"

    duplicate = client.post(
        "/api/v1/users",
        headers=master_headers,
        json={"email": "foreman@acme.test", "name": "Again"},
    )
    assert duplicate.status_code == 409

    updated = client.patch(
        f"/api/v1/users/{user['id']}",
        headers=master_headers,
        json={"permissions": {"labor": "write", "unknown": "write"}},
    )
    assert updated.status_code == 200
    assert updated.json()["permissions"]["labor"] == "write"
    assert "unknown" not in updated.json()["permissions"]

    listed = client.get("/api/v1/users", headers=master_headers)
    assert [item["email"] for item in listed.json()["items"]] == ["foreman@acme.test", "owner@acme.test"]

    deleted = client.delete(f"/api/v1/users/{user['id']}", headers=master_headers)
    assert deleted.status_code == 204


def test_users_cannot_delete_themselves(client: TestClient, master_headers: dict[str, str]) -> None:
    me = client.get("/api/v1/me", headers=master_headers).json()

    response = client.delete(f"/api/v1/users/{me['id']}", headers=master_headers)

    assert response.status_code == 422


def test_entry_user_cannot_manage_users(client: TestClient, entry_headers: dict[str, str]) -> None:
    assert client.get("/api/v1/users", headers=entry_headers).status_code == 403


def test_employee_rate_cards(client: TestClient, master_headers: dict[str, str], entry_headers: dict[str, str]) -> None:
    created = client.post(
        "/api/v1/employees",
        headers=master_headers,
        json={"name": "Sam Ortiz", "standard_rate": "45", "ot_rate": "67.5"},
    )
    assert created.status_code == 201
    employee_id = created.json()["id"]
    assert created.json()["ot_rate"] == "67.50"
    assert created.json()["project_id"] is None

    updated = client.patch(f"/api/v1/employees/{employee_id}", headers=master_headers, json={"dt_rate": "90"})
    assert updated.json()["dt_rate"] == "90.00"
    assert updated.json()["standard_rate"] == "45.00"

    assert len(client.get("/api/v1/employees", headers=entry_headers).json()["items"]) == 1
    assert client.post("/api/v1/employees", headers=entry_headers, json={"name": "Nope"}).status_code == 403

    assert client.delete(f"/api/v1/employees/{employee_id}", headers=master_headers).status_code == 204
    assert client.get("/api/v1/employees", headers=master_headers).json()["items"] == []


def test_user_routes_follow_read_and_write_grants(client: TestClient, master_headers: dict[str, str]) -> None:
    created = client.post(
        "/api/v1/users",
        headers=master_headers,
        json={"email": "office@acme.test", "name": "Office", "role": "manager", "permissions": {"users": "read"}},
    )
    assert created.status_code == 201
    office = _headers("acme", "office@acme.test", "Office")

    assert client.get("/api/v1/users", headers=office).status_code == 200
    denied = client.post("/api/v1/users", headers=office, json={"email": "x@acme.test", "name": "X"})
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Insufficient permissions: write access to users required."
