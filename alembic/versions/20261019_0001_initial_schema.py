"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM("master", "manager", "entry", name="user_role", create_type=False)
project_status = postgresql.ENUM(
    "Active", "Inactive", "Completed", "On Hold", name="project_status", create_type=False
)
field_shop_both = postgresql.ENUM("Field", "Shop", "Both", name="field_shop_both", create_type=False)

BUDGET_COLUMNS = (
    "material_budget",
    "labor_budget",
    "equipment_budget",
    "subcontractor_budget",
    "others_budget",
    "cap_leases_budget",
    "consumable_budget",
)


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id"), nullable=False)


def upgrade() -> None:
    user_role.create(op.get_bind(), checkfirst=True)
    project_status.create(op.get_bind(), checkfirst=True)
    field_shop_both.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "tenants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("subdomain", sa.String(length=63), nullable=False, unique=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="entry"),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column("job_number", sa.String(length=64), nullable=False),
        sa.Column("job_name", sa.String(length=255), nullable=False),
        sa.Column("customer", sa.String(length=255), nullable=False),
        sa.Column("field_shop_both", field_shop_both, nullable=False, server_default="Field"),
        sa.Column("total_contract_value", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", project_status, nullable=False, server_default="Active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "job_number", name="uq_projects_tenant_job_number"),
    )
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])

    op.create_table(
        "change_orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("additional_contract_value", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_change_orders_project_id", "change_orders", ["project_id"])

    op.create_table(
        "employees",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("standard_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("ot_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("dt_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("mob_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_employees_tenant_project", "employees", ["tenant_id", "project_id"])

    op.create_table(
        "project_costs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "change_order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("change_orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("in_system", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("invoice_number", sa.String(length=128), nullable=True),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("subcontractor_name", sa.String(length=255), nullable=True),
        sa.Column(
            "employee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("employees.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("employee_name", sa.String(length=255), nullable=True),
        sa.Column("st_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("st_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("ot_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("ot_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("dt_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("dt_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("per_diem", sa.Numeric(12, 2), nullable=True),
        sa.Column("mob_qty", sa.Numeric(10, 2), nullable=True),
        sa.Column("mob_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_project_costs_tenant_category", "project_costs", ["tenant_id", "category"])
    op.create_index("ix_project_costs_project_category", "project_costs", ["project_id", "category"])

    op.create_table(
        "customer_invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "change_order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("change_orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("invoice_number", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("date_billed", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_customer_invoices_project_date", "customer_invoices", ["project_id", "date_billed"])

    op.create_table(
        "project_budgets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        _tenant_fk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *[sa.Column(name, sa.Numeric(14, 2), nullable=False, server_default="0") for name in BUDGET_COLUMNS],
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", name="uq_project_budgets_project"),
    )


def downgrade() -> None:
    op.drop_table("project_budgets")

    op.drop_index("ix_customer_invoices_project_date", table_name="customer_invoices")
    op.drop_table("customer_invoices")

    op.drop_index("ix_project_costs_project_category", table_name="project_costs")
    op.drop_index("ix_project_costs_tenant_category", table_name="project_costs")
    op.drop_table("project_costs")

    op.drop_index("ix_employees_tenant_project", table_name="employees")
    op.drop_table("employees")

    op.drop_index("ix_change_orders_project_id", table_name="change_orders")
    op.drop_table("change_orders")

    op.drop_index("ix_projects_tenant_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_table("users")

    op.drop_table("tenants")

    field_shop_both.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
