"""Application service for tenant-scoped projects, costs, invoices and budgets."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from protrack.core.auth import RequestUserContext, ensure_permission, upsert_tenant_user
from protrack.core.permissions import (
    DEFAULT_ENTRY_PERMISSIONS,
    AccessLevel,
    PermissionArea,
    UserRole,
    normalize_permissions,
)
from protrack.domain.categories import (
    CATEGORY_DESCRIPTORS,
    CostCategory,
    TotalFormula,
    budget_field_for,
    describe,
    parse_category,
)
from protrack.domain.filters import (
    CHANGE_ORDER_ALL,
    CostFilterSpec,
    InvoiceFilterSpec,
    apply_filters,
    apply_invoice_filters,
    partition_by_change_order,
)
from protrack.domain.records import (
    BudgetRecord,
    ChangeOrderRecord,
    CostRecord,
    InvoiceRecord,
    ProjectRecord,
)
from protrack.models.entities import (
    Budget,
    ChangeOrder,
    CostEntry,
    Employee,
    FieldShopBoth,
    Invoice,
    Project,
    ProjectStatus,
    Tenant,
    User,
)
from protrack.repositories.cost_tracking_repository import CostTrackingRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Optional cost-entry columns; each category keeps only those named in its descriptor.
COST_DETAIL_FIELDS = (
    "vendor",
    "invoice_number",
    "cost",
    "description",
    "subcontractor_name",
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
)

# Employee rate column used when a labor entry omits the rate.
EMPLOYEE_RATE_DEFAULTS = {
    "st_rate": "standard_rate",
    "ot_rate": "ot_rate",
    "dt_rate": "dt_rate",
    "mob_rate": "mob_rate",
}


@dataclass(slots=True)
class TenantCreateData:
    name: str
    subdomain: str
    admin_email: str
    admin_name: str


@dataclass(slots=True)
class ProjectCreateData:
    job_number: str
    job_name: str
    customer: str
    field_shop_both: FieldShopBoth
    total_contract_value: Decimal
    status: ProjectStatus = ProjectStatus.ACTIVE


@dataclass(slots=True)
class ProjectUpdateData:
    job_number: str | None = None
    job_name: str | None = None
    customer: str | None = None
    field_shop_both: FieldShopBoth | None = None
    total_contract_value: Decimal | None = None
    status: ProjectStatus | None = None


@dataclass(slots=True)
class ChangeOrderCreateData:
    name: str
    description: str | None
    additional_contract_value: Decimal


@dataclass(slots=True)
class ChangeOrderUpdateData:
    name: str | None = None
    description: str | None = None
    additional_contract_value: Decimal | None = None


@dataclass(slots=True)
class CostEntryData:
    """Cost entry values; ``None`` means absent on create and unchanged on update."""

    entry_date: date | None = None
    in_system: bool | None = None
    change_order_id: UUID | None = None
    clear_change_order: bool = False
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
class InvoiceCreateData:
    invoice_number: str
    amount: Decimal
    date_billed: date
    change_order_id: UUID | None = None


@dataclass(slots=True)
class InvoiceUpdateData:
    invoice_number: str | None = None
    amount: Decimal | None = None
    date_billed: date | None = None
    change_order_id: UUID | None = None
    clear_change_order: bool = False


@dataclass(slots=True)
class EmployeeCreateData:
    name: str
    standard_rate: Decimal
    ot_rate: Decimal
    dt_rate: Decimal
    mob_rate: Decimal
    project_id: UUID | None = None


@dataclass(slots=True)
class EmployeeUpdateData:
    name: str | None = None
    standard_rate: Decimal | None = None
    ot_rate: Decimal | None = None
    dt_rate: Decimal | None = None
    mob_rate: Decimal | None = None


@dataclass(slots=True)
class UserCreateData:
    email: str
    name: str
    role: UserRole = UserRole.ENTRY
    permissions: dict[str, str] | None = None


@dataclass(slots=True)
class UserUpdateData:
    name: str | None = None
    role: UserRole | None = None
    permissions: dict[str, str] | None = None


# ---------- Row to record conversion ----------
def to_project_record(project: Project) -> ProjectRecord:
    return ProjectRecord(
        id=project.id,
        job_number=project.job_number,
        job_name=project.job_name,
        customer=project.customer,
        field_shop_both=FieldShopBoth(project.field_shop_both).value,
        total_contract_value=project.total_contract_value,
        status=ProjectStatus(project.status).value,
    )


def to_change_order_record(change_order: ChangeOrder) -> ChangeOrderRecord:
    return ChangeOrderRecord(
        id=change_order.id,
        project_id=change_order.project_id,
        name=change_order.name,
        description=change_order.description,
        additional_contract_value=change_order.additional_contract_value,
    )


def to_cost_record(entry: CostEntry) -> CostRecord:
    return CostRecord(
        id=entry.id,
        project_id=entry.project_id,
        date=entry.entry_date.isoformat(),
        in_system=entry.in_system,
        change_order_id=entry.change_order_id,
        **{name: getattr(entry, name) for name in COST_DETAIL_FIELDS},
    )


def to_invoice_record(invoice: Invoice) -> InvoiceRecord:
    return InvoiceRecord(
        id=invoice.id,
        project_id=invoice.project_id,
        invoice_number=invoice.invoice_number,
        amount=invoice.amount,
        date_billed=invoice.date_billed.isoformat(),
        change_order_id=invoice.change_order_id,
    )


def to_budget_record(budget: Budget | None) -> BudgetRecord:
    if budget is None:
        return BudgetRecord()
    return BudgetRecord.from_mapping({name: getattr(budget, name) for name in _budget_fields()})


def _budget_fields() -> list[str]:
    return [descriptor.budget_field for descriptor in CATEGORY_DESCRIPTORS.values()]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class CostTrackingService:
    """Service implementing project, cost, invoice, budget and user management."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = CostTrackingRepository(db)

    # ---------- Transactions ----------
    @contextmanager
    def _write(self, conflict_detail: str) -> Iterator[None]:
        """Run the mutations of the block and commit them.

        Flushes inside the block and the commit share one guard, so a constraint
        violation surfaces as 409 whichever of them triggers it.
        """

        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Write rejected: %s (%s)", conflict_detail, exc.orig)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Database write failed")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The change could not be saved.") from exc

    # ---------- Lookups ----------
    def require_project(self, context: RequestUserContext, project_id: UUID) -> Project:
        project = self.repo.get_project(context.tenant_id, project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    @staticmethod
    def require_category(category_name: str) -> CostCategory:
        category = parse_category(category_name)
        if category is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown cost category.")
        return category

    def _resolve_change_order(self, project: Project, change_order_id: UUID | None) -> UUID | None:
        if change_order_id is None:
            return None
        change_order = self.repo.get_change_order(project.id, change_order_id)
        if change_order is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="change_order_id does not belong to this project.",
            )
        return change_order.id

    # ---------- Serialization ----------
    @staticmethod
    def serialize_tenant(tenant: Tenant) -> dict[str, object]:
        return {
            "id": str(tenant.id),
            "name": tenant.name,
            "subdomain": tenant.subdomain,
            "status": tenant.status,
        }

    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "job_number": project.job_number,
            "job_name": project.job_name,
            "customer": project.customer,
            "field_shop_both": FieldShopBoth(project.field_shop_both).value,
            "total_contract_value": str(project.total_contract_value),
            "status": ProjectStatus(project.status).value,
        }

    @staticmethod
    def serialize_change_order(change_order: ChangeOrder) -> dict[str, object]:
        return {
            "id": str(change_order.id),
            "project_id": str(change_order.project_id),
            "name": change_order.name,
            "description": change_order.description,
            "additional_contract_value": str(change_order.additional_contract_value),
        }

    @staticmethod
    def serialize_cost(entry: CostEntry) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(entry.id),
            "category": entry.category,
            "project_id": str(entry.project_id) if entry.project_id is not None else None,
            "change_order_id": str(entry.change_order_id) if entry.change_order_id is not None else None,
            "date": entry.entry_date.isoformat(),
            "in_system": entry.in_system,
        }
        descriptor = describe(entry.category)
        for name in descriptor.entry_fields:
            value = getattr(entry, name)
            if isinstance(value, Decimal):
                payload[name] = str(value)
            elif isinstance(value, UUID):
                payload[name] = str(value)
            else:
                payload[name] = value
        return payload

    @staticmethod
    def serialize_invoice(invoice: Invoice) -> dict[str, object]:
        return {
            "id": str(invoice.id),
            "project_id": str(invoice.project_id),
            "change_order_id": str(invoice.change_order_id) if invoice.change_order_id is not None else None,
            "invoice_number": invoice.invoice_number,
            "amount": str(invoice.amount),
            "date_billed": invoice.date_billed.isoformat(),
        }

    @staticmethod
    def serialize_budget(budget: Budget) -> dict[str, object]:
        payload: dict[str, object] = {"project_id": str(budget.project_id)}
        for name in _budget_fields():
            payload[name] = str(getattr(budget, name))
        return payload

    @staticmethod
    def serialize_employee(employee: Employee) -> dict[str, object]:
        return {
            "id": str(employee.id),
            "project_id": str(employee.project_id) if employee.project_id is not None else None,
            "name": employee.name,
            "standard_rate": str(employee.standard_rate),
            "ot_rate": str(employee.ot_rate),
            "dt_rate": str(employee.dt_rate),
            "mob_rate": str(employee.mob_rate),
        }

    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": str(user.id),
            "tenant_id": str(user.tenant_id),
            "email": user.email,
            "name": user.name,
            "role": UserRole(user.role).value,
            "permissions": normalize_permissions(user.permissions),
        }

    # ---------- Tenants ----------
    def register_tenant(self, data: TenantCreateData) -> tuple[Tenant, User]:
        """Create a tenant and its first ``master`` user."""

        subdomain = data.subdomain.strip().lower()
        if self.repo.get_tenant_by_subdomain(subdomain) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subdomain is already taken.")

        with self._write("Subdomain is already taken."):
            tenant = self.repo.add_tenant(Tenant(name=data.name.strip(), subdomain=subdomain, status="active"))
            user = upsert_tenant_user(
                self.db,
                tenant_id=tenant.id,
                email=data.admin_email,
                name=data.admin_name,
                role=UserRole.MASTER,
            )
        self.db.refresh(tenant)
        self.db.refresh(user)
        logger.info("Registered tenant %s", subdomain)
        return tenant, user

    # ---------- Projects ----------
    def list_projects(self, *, context: RequestUserContext, include_inactive: bool = False) -> list[Project]:
        if include_inactive:
            ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.READ)
        return self.repo.list_projects(context.tenant_id, include_inactive=include_inactive)

    def get_project(self, *, context: RequestUserContext, project_id: UUID) -> Project:
        return self.require_project(context, project_id)

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        now = datetime.utcnow()
        project = Project(
            tenant_id=context.tenant_id,
            job_number=data.job_number.strip(),
            job_name=data.job_name.strip(),
            customer=data.customer.strip(),
            field_shop_both=data.field_shop_both,
            total_contract_value=data.total_contract_value,
            status=data.status,
            created_at=now,
            updated_at=now,
        )
        with self._write("Job number already exists in this tenant."):
            self.repo.add_project(project)
        self.db.refresh(project)
        return project

    def update_project(self, *, context: RequestUserContext, project_id: UUID, data: ProjectUpdateData) -> Project:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)

        with self._write("Job number already exists in this tenant."):
            if data.job_number is not None:
                project.job_number = data.job_number.strip()
            if data.job_name is not None:
                project.job_name = data.job_name.strip()
            if data.customer is not None:
                project.customer = data.customer.strip()
            if data.field_shop_both is not None:
                project.field_shop_both = data.field_shop_both
            if data.total_contract_value is not None:
                project.total_contract_value = data.total_contract_value
            if data.status is not None:
                project.status = data.status
            project.updated_at = datetime.utcnow()
        self.db.refresh(project)
        return project

    def update_project_status(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        project_status: ProjectStatus,
    ) -> Project:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        with self._write("Project status could not be updated."):
            self.repo.update_project_status(project, project_status)
        self.db.refresh(project)
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: UUID, confirm: bool) -> None:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        if not confirm:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Deleting a project removes all of its data; repeat with confirm=true.",
            )
        job_number = project.job_number
        with self._write("Project could not be deleted."):
            self.repo.delete_project(project)
        logger.info("Deleted project %s (%s) in tenant %s", job_number, project_id, context.tenant_id)

    # ---------- Change orders ----------
    def list_change_orders(self, *, context: RequestUserContext, project_id: UUID) -> list[ChangeOrder]:
        project = self.require_project(context, project_id)
        return self.repo.list_change_orders(project.id)

    def create_change_order(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        data: ChangeOrderCreateData,
    ) -> ChangeOrder:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        change_order = ChangeOrder(
            tenant_id=context.tenant_id,
            project_id=project.id,
            name=data.name.strip(),
            description=_clean(data.description),
            additional_contract_value=data.additional_contract_value,
            created_at=datetime.utcnow(),
        )
        with self._write("Change order could not be created."):
            self.repo.add_change_order(change_order)
        self.db.refresh(change_order)
        return change_order

    def _require_change_order(self, project: Project, change_order_id: UUID) -> ChangeOrder:
        change_order = self.repo.get_change_order(project.id, change_order_id)
        if change_order is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Change order not found.")
        return change_order

    def update_change_order(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        change_order_id: UUID,
        data: ChangeOrderUpdateData,
    ) -> ChangeOrder:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        change_order = self._require_change_order(project, change_order_id)
        with self._write("Change order could not be updated."):
            if data.name is not None:
                change_order.name = data.name.strip()
            if data.description is not None:
                change_order.description = _clean(data.description)
            if data.additional_contract_value is not None:
                change_order.additional_contract_value = data.additional_contract_value
        self.db.refresh(change_order)
        return change_order

    def delete_change_order(self, *, context: RequestUserContext, project_id: UUID, change_order_id: UUID) -> None:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        change_order = self._require_change_order(project, change_order_id)
        with self._write("Change order could not be deleted."):
            self.repo.delete_change_order(change_order)

    # ---------- Cost entries ----------
    def list_costs(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        filters: CostFilterSpec | None = None,
        change_order: str | None = None,
    ) -> list[CostEntry]:
        """Visible entries of one category, narrowed by change order and filters."""

        ensure_permission(context, category.value, AccessLevel.READ)
        project = self.require_project(context, project_id)
        entries = self.repo.list_costs(context.tenant_id, project.id, category.value)
        if filters is None and change_order in (None, "", CHANGE_ORDER_ALL):
            return entries

        by_id = {entry.id: entry for entry in entries}
        records = partition_by_change_order([to_cost_record(entry) for entry in entries], change_order)
        return [by_id[record.id] for record in apply_filters(records, category, filters)]

    def cost_records(self, *, tenant_id: UUID, project_id: UUID) -> dict[CostCategory, list[CostRecord]]:
        """All visible cost records of a project grouped by category."""

        grouped: dict[CostCategory, list[CostRecord]] = {category: [] for category in CostCategory}
        for entry in self.repo.list_costs(tenant_id, project_id):
            category = parse_category(entry.category)
            if category is not None:
                grouped[category].append(to_cost_record(entry))
        return grouped

    def _apply_labor_defaults(self, context: RequestUserContext, values: dict[str, object]) -> None:
        employee_id = values.get("employee_id")
        if employee_id is not None:
            employee = self.repo.get_employee(context.tenant_id, employee_id)
            if employee is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
            values["employee_name"] = employee.name
            for rate_field, employee_field in EMPLOYEE_RATE_DEFAULTS.items():
                if values.get(rate_field) is None:
                    values[rate_field] = getattr(employee, employee_field)
        if not values.get("employee_name"):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Labor entries need an employee_id or employee_name.",
            )

    @staticmethod
    def _detail_values(category: CostCategory, data: CostEntryData) -> dict[str, object]:
        allowed = set(describe(category).entry_fields)
        values: dict[str, object] = {}
        for item in fields(data):
            if item.name not in allowed:
                continue
            value = getattr(data, item.name)
            if isinstance(value, str):
                value = _clean(value)
            if value is not None:
                values[item.name] = value
        return values

    def create_cost(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        data: CostEntryData,
    ) -> CostEntry:
        ensure_permission(context, category.value, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        if data.entry_date is None:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="date is required.")

        values = self._detail_values(category, data)
        if describe(category).formula is TotalFormula.LABOR:
            self._apply_labor_defaults(context, values)

        now = datetime.utcnow()
        entry = CostEntry(
            tenant_id=context.tenant_id,
            project_id=project.id,
            change_order_id=self._resolve_change_order(project, data.change_order_id),
            category=category.value,
            entry_date=data.entry_date,
            in_system=True if data.in_system is None else data.in_system,
            created_at=now,
            updated_at=now,
            **values,
        )
        with self._write("Cost entry could not be saved."):
            self.repo.add_cost(entry)
        self.db.refresh(entry)
        return entry

    def _require_cost(
        self,
        context: RequestUserContext,
        project: Project,
        category: CostCategory,
        cost_id: UUID,
    ) -> CostEntry:
        entry = self.repo.get_cost(context.tenant_id, category.value, cost_id)
        if entry is None or (entry.project_id is not None and entry.project_id != project.id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cost entry not found.")
        return entry

    def update_cost(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        cost_id: UUID,
        data: CostEntryData,
    ) -> CostEntry:
        ensure_permission(context, category.value, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        entry = self._require_cost(context, project, category, cost_id)

        values = self._detail_values(category, data)
        if describe(category).formula is TotalFormula.LABOR and "employee_id" in values:
            self._apply_labor_defaults(context, values)
        if data.clear_change_order:
            values["change_order_id"] = None
        elif data.change_order_id is not None:
            values["change_order_id"] = self._resolve_change_order(project, data.change_order_id)

        with self._write("Cost entry could not be saved."):
            for name, value in values.items():
                setattr(entry, name, value)
            if data.entry_date is not None:
                entry.entry_date = data.entry_date
            if data.in_system is not None:
                entry.in_system = data.in_system
            entry.updated_at = datetime.utcnow()
        self.db.refresh(entry)
        return entry

    def delete_cost(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        cost_id: UUID,
    ) -> None:
        ensure_permission(context, category.value, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        entry = self._require_cost(context, project, category, cost_id)
        with self._write("Cost entry could not be deleted."):
            self.repo.delete_cost(entry)

    # ---------- Invoices ----------
    def list_invoices(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        filters: InvoiceFilterSpec | None = None,
        change_order: str | None = None,
    ) -> list[Invoice]:
        ensure_permission(context, PermissionArea.INVOICES, AccessLevel.READ)
        project = self.require_project(context, project_id)
        invoices = self.repo.list_invoices(context.tenant_id, project.id)
        if filters is None and change_order in (None, "", CHANGE_ORDER_ALL):
            return invoices

        by_id = {invoice.id: invoice for invoice in invoices}
        records = partition_by_change_order([to_invoice_record(invoice) for invoice in invoices], change_order)
        return [by_id[record.id] for record in apply_invoice_filters(records, filters)]

    def invoice_records(self, *, tenant_id: UUID, project_id: UUID) -> list[InvoiceRecord]:
        return [to_invoice_record(invoice) for invoice in self.repo.list_invoices(tenant_id, project_id)]

    def create_invoice(self, *, context: RequestUserContext, project_id: UUID, data: InvoiceCreateData) -> Invoice:
        ensure_permission(context, PermissionArea.INVOICES, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        invoice = Invoice(
            tenant_id=context.tenant_id,
            project_id=project.id,
            change_order_id=self._resolve_change_order(project, data.change_order_id),
            invoice_number=data.invoice_number.strip(),
            amount=data.amount,
            date_billed=data.date_billed,
            created_at=datetime.utcnow(),
        )
        with self._write("Invoice could not be saved."):
            self.repo.add_invoice(invoice)
        self.db.refresh(invoice)
        return invoice

    def _require_invoice(self, context: RequestUserContext, project: Project, invoice_id: UUID) -> Invoice:
        invoice = self.repo.get_invoice(context.tenant_id, project.id, invoice_id)
        if invoice is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")
        return invoice

    def update_invoice(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        invoice_id: UUID,
        data: InvoiceUpdateData,
    ) -> Invoice:
        ensure_permission(context, PermissionArea.INVOICES, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        invoice = self._require_invoice(context, project, invoice_id)
        change_order_id = invoice.change_order_id
        if data.clear_change_order:
            change_order_id = None
        elif data.change_order_id is not None:
            change_order_id = self._resolve_change_order(project, data.change_order_id)

        with self._write("Invoice could not be saved."):
            if data.invoice_number is not None:
                invoice.invoice_number = data.invoice_number.strip()
            if data.amount is not None:
                invoice.amount = data.amount
            if data.date_billed is not None:
                invoice.date_billed = data.date_billed
            invoice.change_order_id = change_order_id
        self.db.refresh(invoice)
        return invoice

    def delete_invoice(self, *, context: RequestUserContext, project_id: UUID, invoice_id: UUID) -> None:
        ensure_permission(context, PermissionArea.INVOICES, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        invoice = self._require_invoice(context, project, invoice_id)
        with self._write("Invoice could not be deleted."):
            self.repo.delete_invoice(invoice)

    # ---------- Budgets ----------
    def get_or_create_budget(self, *, tenant_id: UUID, project: Project) -> Budget:
        """Return the project budget, creating an all-zero row when missing."""

        budget = self.repo.get_budget(project.id)
        if budget is not None:
            return budget
        budget = Budget(
            tenant_id=tenant_id,
            project_id=project.id,
            updated_at=datetime.utcnow(),
            **dict.fromkeys(_budget_fields(), ZERO),
        )
        with self._write("Budget could not be created."):
            self.repo.add_budget(budget)
        self.db.refresh(budget)
        logger.info("Created empty budget for project %s", project.id)
        return budget

    def get_budget(self, *, context: RequestUserContext, project_id: UUID) -> Budget:
        project = self.require_project(context, project_id)
        return self.get_or_create_budget(tenant_id=context.tenant_id, project=project)

    def update_budget(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        amounts: dict[CostCategory, Decimal],
    ) -> Budget:
        ensure_permission(context, PermissionArea.PROJECTS, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        budget = self.get_or_create_budget(tenant_id=context.tenant_id, project=project)
        with self._write("Budget could not be saved."):
            for category, amount in amounts.items():
                self.repo.update_budget_category(budget, budget_field_for(category), amount)
        self.db.refresh(budget)
        return budget

    def update_budget_category(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        category: CostCategory,
        amount: Decimal,
    ) -> Budget:
        ensure_permission(context, category.value, AccessLevel.WRITE)
        project = self.require_project(context, project_id)
        budget = self.get_or_create_budget(tenant_id=context.tenant_id, project=project)
        with self._write("Budget could not be saved."):
            self.repo.update_budget_category(budget, budget_field_for(category), amount)
        self.db.refresh(budget)
        return budget

    # ---------- Employees ----------
    def list_employees(self, *, context: RequestUserContext, project_id: UUID | None = None) -> list[Employee]:
        ensure_permission(context, PermissionArea.LABOR, AccessLevel.READ)
        if project_id is not None:
            self.require_project(context, project_id)
        return self.repo.list_employees(context.tenant_id, project_id)

    def create_employee(self, *, context: RequestUserContext, data: EmployeeCreateData) -> Employee:
        ensure_permission(context, PermissionArea.LABOR, AccessLevel.WRITE)
        if data.project_id is not None:
            self.require_project(context, data.project_id)
        now = datetime.utcnow()
        employee = Employee(
            tenant_id=context.tenant_id,
            project_id=data.project_id,
            name=data.name.strip(),
            standard_rate=data.standard_rate,
            ot_rate=data.ot_rate,
            dt_rate=data.dt_rate,
            mob_rate=data.mob_rate,
            created_at=now,
            updated_at=now,
        )
        with self._write("Employee could not be saved."):
            self.repo.add_employee(employee)
        self.db.refresh(employee)
        return employee

    def _require_employee(self, context: RequestUserContext, employee_id: UUID) -> Employee:
        employee = self.repo.get_employee(context.tenant_id, employee_id)
        if employee is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
        return employee

    def update_employee(self, *, context: RequestUserContext, employee_id: UUID, data: EmployeeUpdateData) -> Employee:
        ensure_permission(context, PermissionArea.LABOR, AccessLevel.WRITE)
        employee = self._require_employee(context, employee_id)
        with self._write("Employee could not be saved."):
            if data.name is not None:
                employee.name = data.name.strip()
            for name in ("standard_rate", "ot_rate", "dt_rate", "mob_rate"):
                value = getattr(data, name)
                if value is not None:
                    setattr(employee, name, value)
            employee.updated_at = datetime.utcnow()
        self.db.refresh(employee)
        return employee

    def delete_employee(self, *, context: RequestUserContext, employee_id: UUID) -> None:
        ensure_permission(context, PermissionArea.LABOR, AccessLevel.WRITE)
        employee = self._require_employee(context, employee_id)
        with self._write("Employee could not be deleted."):
            self.repo.delete_employee(employee)

    # ---------- Users ----------
    def list_users(self, *, context: RequestUserContext) -> list[User]:
        ensure_permission(context, PermissionArea.USERS, AccessLevel.READ)
        return self.repo.list_users(context.tenant_id)

    def create_user(self, *, context: RequestUserContext, data: UserCreateData) -> User:
        ensure_permission(context, PermissionArea.USERS, AccessLevel.WRITE)
        email = data.email.strip().lower()
        if self.repo.get_user_by_email(context.tenant_id, email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists in this tenant.")
        permissions = DEFAULT_ENTRY_PERMISSIONS if data.permissions is None else data.permissions
        now = datetime.utcnow()
        user = User(
            tenant_id=context.tenant_id,
            email=email,
            name=data.name.strip() or email,
            role=data.role,
            permissions=normalize_permissions(permissions),
            created_at=now,
            updated_at=now,
        )
        with self._write("User already exists in this tenant."):
            self.repo.add_user(user)
        self.db.refresh(user)
        return user

    def _require_user(self, context: RequestUserContext, user_id: UUID) -> User:
        user = self.repo.get_user(context.tenant_id, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def update_user(self, *, context: RequestUserContext, user_id: UUID, data: UserUpdateData) -> User:
        ensure_permission(context, PermissionArea.USERS, AccessLevel.WRITE)
        user = self._require_user(context, user_id)
        if data.role is not None and data.role != UserRole.MASTER and user.role == UserRole.MASTER:
            if not context.is_master:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only master users can demote a master user.",
                )
        with self._write("User could not be saved."):
            if data.name is not None:
                user.name = data.name.strip()
            if data.role is not None:
                user.role = data.role
            if data.permissions is not None:
                user.permissions = normalize_permissions(data.permissions)
            user.updated_at = datetime.utcnow()
        self.db.refresh(user)
        return user

    def delete_user(self, *, context: RequestUserContext, user_id: UUID) -> None:
        ensure_permission(context, PermissionArea.USERS, AccessLevel.WRITE)
        user = self._require_user(context, user_id)
        if user.id == context.user_id:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Users cannot delete themselves.")
        with self._write("User could not be deleted."):
            self.repo.delete_user(user)
