from __future__ import annotations

from collections.abc import Generator
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from protrack.core.auth import upsert_tenant_user
from protrack.core.permissions import UserRole
from protrack.db.base import Base
from protrack.db.dependencies import get_db_session
import protrack.models.entities  # noqa: F401
from protrack.main import create_app
from protrack.models.entities import (
    Budget,
    ChangeOrder,
    CostEntry,
    Employee,
    Invoice,
    Project,
    Tenant,
    User,
)

TEST_TABLES = [
    Tenant.__table__,
    User.__table__,
    Project.__table__,
    ChangeOrder.__table__,
    Employee.__table__,
    CostEntry.__table__,
    Invoice.__table__,
    Budget.__table__,
]

MASTER_EMAIL = "owner@acme.test"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(*, tenant: str = "acme", email: str = MASTER_EMAIL, name: str = "Acme Owner") -> dict[str, str]:
    return {
        "X-Tenant-ID": tenant,
        "X-User-Email": email,
        "X-User-Name": name,
    }


@pytest.fixture()
def tenant(db_session: Session) -> Tenant:
    """The ``acme`` tenant with a master user behind ``auth_headers()``."""

    row = Tenant(name="Acme Builders", subdomain="acme", status="active", created_at=datetime.utcnow())
    db_session.add(row)
    db_session.flush()
    upsert_tenant_user(db_session, tenant_id=row.id, email=MASTER_EMAIL, name="Acme Owner", role=UserRole.MASTER)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture()
def master_headers(tenant: Tenant) -> dict[str, str]:
    return auth_headers()


@pytest.fixture()
def entry_headers(tenant: Tenant) -> dict[str, str]:
    """Headers of a user created on first request with the default entry permissions."""

    return auth_headers(email="clerk@acme.test", name="Acme Clerk")


@pytest.fixture()
def project(client: TestClient, master_headers: dict[str, str]) -> dict[str, object]:
    response = client.post(
        "/api/v1/projects",
        headers=master_headers,
        json={
            "job_number": "J-100",
            "job_name": "North Plant",
            "customer": "Globex",
            "field_shop_both": "Field",
            "total_contract_value": "100000.00",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()
