"""Repository helpers for tenant-scoped cost tracking data."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import Session

from protrack.models.entities import (
    Budget,
    ChangeOrder,
    CostEntry,
    Employee,
    Invoice,
    Project,
    ProjectStatus,
    Tenant,
    User,
)


class CostTrackingRepository:
    """Persistence operations used by the cost tracking and reporting services.

    Every query is filtered by ``tenant_id``.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Tenants ----------
    def get_tenant_by_subdomain(self, subdomain: str) -> Tenant | None:
        return self.db.scalar(select(Tenant).where(Tenant.subdomain == subdomain))

    def add_tenant(self, tenant: Tenant) -> Tenant:
        self.db.add(tenant)
        self.db.flush()
        return tenant

    # ---------- Projects ----------
    def list_projects(self, tenant_id: UUID, *, include_inactive: bool = False) -> list[Project]:
        query = select(Project).where(Project.tenant_id == tenant_id)
        if not include_inactive:
            query = query.where(Project.status == ProjectStatus.ACTIVE)
        return self.db.scalars(query.order_by(Project.job_number.asc())).all()

    def get_project(self, tenant_id: UUID, project_id: UUID) -> Project | None:
        return self.db.scalar(
            select(Project).where(and_(Project.tenant_id == tenant_id, Project.id == project_id))
        )

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def update_project_status(self, project: Project, project_status: ProjectStatus) -> Project:
        project.status = project_status
        project.updated_at = datetime.utcnow()
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        """Delete a project and everything bound to it; global cost entries stay."""

        self.db.execute(delete(CostEntry).where(CostEntry.project_id == project.id))
        self.db.execute(delete(Invoice).where(Invoice.project_id == project.id))
        self.db.execute(delete(Budget).where(Budget.project_id == project.id))
        self.db.execute(delete(Employee).where(Employee.project_id == project.id))
        self.db.execute(delete(ChangeOrder).where(ChangeOrder.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    # ---------- Change orders ----------
    def list_change_orders(self, project_id: UUID) -> list[ChangeOrder]:
        return self.db.scalars(
            select(ChangeOrder)
            .where(ChangeOrder.project_id == project_id)
            .order_by(ChangeOrder.created_at.asc(), ChangeOrder.name.asc())
        ).all()

    def get_change_order(self, project_id: UUID, change_order_id: UUID) -> ChangeOrder | None:
        return self.db.scalar(
            select(ChangeOrder).where(
                and_(ChangeOrder.project_id == project_id, ChangeOrder.id == change_order_id)
            )
        )

    def add_change_order(self, change_order: ChangeOrder) -> ChangeOrder:
        self.db.add(change_order)
        self.db.flush()
        return change_order

    def delete_change_order(self, change_order: ChangeOrder) -> None:
        for model in (CostEntry, Invoice):
            for row in self.db.scalars(select(model).where(model.change_order_id == change_order.id)).all():
                row.change_order_id = None
        self.db.delete(change_order)
        self.db.flush()

    # ---------- Cost entries ----------
    def list_costs(self, tenant_id: UUID, project_id: UUID, category: str | None = None) -> list[CostEntry]:
        """Cost entries of ``project_id`` plus the tenant's global (project-less) entries."""

        conditions = [
            CostEntry.tenant_id == tenant_id,
            or_(CostEntry.project_id == project_id, CostEntry.project_id.is_(None)),
        ]
        if category is not None:
            conditions.append(CostEntry.category == category)
        return self.db.scalars(
            select(CostEntry)
            .where(and_(*conditions))
            .order_by(CostEntry.entry_date.desc(), CostEntry.created_at.desc())
        ).all()

    def get_cost(self, tenant_id: UUID, category: str, cost_id: UUID) -> CostEntry | None:
        return self.db.scalar(
            select(CostEntry).where(
                and_(
                    CostEntry.tenant_id == tenant_id,
                    CostEntry.category == category,
                    CostEntry.id == cost_id,
                )
            )
        )

    def add_cost(self, entry: CostEntry) -> CostEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_cost(self, entry: CostEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    # ---------- Invoices ----------
    def list_invoices(self, tenant_id: UUID, project_id: UUID) -> list[Invoice]:
        return self.db.scalars(
            select(Invoice)
            .where(and_(Invoice.tenant_id == tenant_id, Invoice.project_id == project_id))
            .order_by(Invoice.date_billed.desc(), Invoice.created_at.desc())
        ).all()

    def get_invoice(self, tenant_id: UUID, project_id: UUID, invoice_id: UUID) -> Invoice | None:
        return self.db.scalar(
            select(Invoice).where(
                and_(
                    Invoice.tenant_id == tenant_id,
                    Invoice.project_id == project_id,
                    Invoice.id == invoice_id,
                )
            )
        )

    def add_invoice(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def delete_invoice(self, invoice: Invoice) -> None:
        self.db.delete(invoice)
        self.db.flush()

    # ---------- Budgets ----------
    def get_budget(self, project_id: UUID) -> Budget | None:
        return self.db.scalar(select(Budget).where(Budget.project_id == project_id))

    def add_budget(self, budget: Budget) -> Budget:
        self.db.add(budget)
        self.db.flush()
        return budget

    def update_budget_category(self, budget: Budget, field_name: str, amount: Decimal) -> Budget:
        setattr(budget, field_name, amount)
        budget.updated_at = datetime.utcnow()
        self.db.flush()
        return budget

    # ---------- Employees ----------
    def list_employees(self, tenant_id: UUID, project_id: UUID | None = None) -> list[Employee]:
        """Tenant employees; with ``project_id`` only that project's and tenant-wide ones."""

        query = select(Employee).where(Employee.tenant_id == tenant_id)
        if project_id is not None:
            query = query.where(or_(Employee.project_id == project_id, Employee.project_id.is_(None)))
        return self.db.scalars(query.order_by(Employee.name.asc())).all()

    def get_employee(self, tenant_id: UUID, employee_id: UUID) -> Employee | None:
        return self.db.scalar(
            select(Employee).where(and_(Employee.tenant_id == tenant_id, Employee.id == employee_id))
        )

    def add_employee(self, employee: Employee) -> Employee:
        self.db.add(employee)
        self.db.flush()
        return employee

    def delete_employee(self, employee: Employee) -> None:
        for row in self.db.scalars(select(CostEntry).where(CostEntry.employee_id == employee.id)).all():
            row.employee_id = None
        self.db.delete(employee)
        self.db.flush()

    # ---------- Users ----------
    def list_users(self, tenant_id: UUID) -> list[User]:
        return self.db.scalars(
            select(User).where(User.tenant_id == tenant_id).order_by(User.email.asc())
        ).all()

    def get_user(self, tenant_id: UUID, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(and_(User.tenant_id == tenant_id, User.id == user_id)))

    def get_user_by_email(self, tenant_id: UUID, email: str) -> User | None:
        return self.db.scalar(select(User).where(and_(User.tenant_id == tenant_id, User.email == email)))

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def delete_user(self, user: User) -> None:
        self.db.delete(user)
        self.db.flush()
