"""initial timesheet schema

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


employee_role = postgresql.ENUM("admin", "team_lead", "employee", name="employee_role", create_type=False)
work_status = postgresql.ENUM("Active", "On Hold", "Pending", "Completed", name="work_status", create_type=False)


def upgrade() -> None:
    employee_role.create(op.get_bind(), checkfirst=True)
    work_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("role", employee_role, nullable=False, server_default="employee"),
        sa.Column(
            "team_id",
            sa.Integer(),
            sa.ForeignKey("teams.id", name="fk_employees_team_id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_employees_team_id", "employees", ["team_id"])
    op.create_index("ix_employees_role", "employees", ["role"])

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=100), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("business_unit", sa.String(length=100), nullable=True),
        sa.Column("planned_start_date", sa.Date(), nullable=True),
        sa.Column("planned_end_date", sa.Date(), nullable=True),
        sa.Column("status", work_status, nullable=False, server_default="Active"),
        sa.Column("estimated_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("actual_start_date", sa.Date(), nullable=True),
        sa.Column("actual_end_date", sa.Date(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "estimated_hours IS NULL OR estimated_hours >= 0",
            name="ck_projects_estimated_hours_non_negative",
        ),
    )
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "daily_activity_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", name="fk_daily_activity_entries_employee_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("activity", sa.String(length=100), nullable=False),
        sa.Column("hours", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.CheckConstraint("hours >= 0", name="ck_activity_entries_hours_non_negative"),
        sa.UniqueConstraint(
            "employee_id",
            "entry_date",
            "activity",
            name="uq_activity_entries_employee_day_activity",
        ),
    )
    op.create_index(
        "ix_activity_entries_employee_day",
        "daily_activity_entries",
        ["employee_id", "entry_date"],
    )

    op.create_table(
        "daily_project_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", name="fk_daily_project_assignments_employee_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            sa.String(length=100),
            sa.ForeignKey(
                "projects.id",
                name="fk_daily_project_assignments_project_id",
                ondelete="CASCADE",
                onupdate="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("project_name", sa.String(length=255), nullable=True),
        sa.Column("planned_start_date", sa.Date(), nullable=True),
        sa.Column("planned_end_date", sa.Date(), nullable=True),
        sa.Column("actual_start_date", sa.Date(), nullable=True),
        sa.Column("actual_end_date", sa.Date(), nullable=True),
        sa.Column("status", work_status, nullable=False, server_default="Active"),
        sa.Column("hours", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.CheckConstraint("hours >= 0", name="ck_project_assignments_hours_non_negative"),
        sa.CheckConstraint(
            "planned_start_date IS NULL OR planned_end_date IS NULL OR planned_start_date <= planned_end_date",
            name="ck_project_assignments_planned_window",
        ),
        sa.CheckConstraint(
            "actual_start_date IS NULL OR actual_end_date IS NULL OR actual_start_date <= actual_end_date",
            name="ck_project_assignments_actual_window",
        ),
        sa.UniqueConstraint(
            "employee_id",
            "project_id",
            "entry_date",
            name="uq_project_assignments_employee_project_day",
        ),
    )
    op.create_index(
        "ix_project_assignments_employee_day",
        "daily_project_assignments",
        ["employee_id", "entry_date"],
    )
    op.create_index(
        "ix_project_assignments_project_day",
        "daily_project_assignments",
        ["project_id", "entry_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_project_assignments_project_day", table_name="daily_project_assignments")
    op.drop_index("ix_project_assignments_employee_day", table_name="daily_project_assignments")
    op.drop_table("daily_project_assignments")
    op.drop_index("ix_activity_entries_employee_day", table_name="daily_activity_entries")
    op.drop_table("daily_activity_entries")
    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_employees_role", table_name="employees")
    op.drop_index("ix_employees_team_id", table_name="employees")
    op.drop_table("employees")
    op.drop_table("teams")

    work_status.drop(op.get_bind(), checkfirst=True)
    employee_role.drop(op.get_bind(), checkfirst=True)
