"""ORM entities for the daily timesheet schema."""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class EmployeeRole(str, enum.Enum):
    ADMIN = "admin"
    TEAM_LEAD = "team_lead"
    EMPLOYEE = "employee"


class WorkStatus(str, enum.Enum):
    ACTIVE = "Active"
    ON_HOLD = "On Hold"
    PENDING = "Pending"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, value: str) -> WorkStatus | None:
        """Match a status label case-insensitively; ``None`` when unknown."""

        normalized = " ".join(str(value).split()).lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (
        Index("ix_employees_team_id", "team_id"),
        Index("ix_employees_role", "role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(
        SQLEnum(EmployeeRole, name="employee_role", values_callable=_enum_values),
        nullable=False,
        default=EmployeeRole.EMPLOYEE,
    )
    team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("teams.id", name="fk_employees_team_id", ondelete="SET NULL"), nullable=True
    )

    @property
    def display_name(self) -> str:
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        return " ".join(parts) or self.email


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(
            "estimated_hours IS NULL OR estimated_hours >= 0",
            name="ck_projects_estimated_hours_non_negative",
        ),
        Index("ix_projects_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_unit: Mapped[str | None] = mapped_column(String(100), nullable=True)
    planned_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    planned_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[WorkStatus] = mapped_column(
        SQLEnum(WorkStatus, name="work_status", values_callable=_enum_values),
        nullable=False,
        default=WorkStatus.ACTIVE,
    )
    estimated_hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    # Derived: earliest actual start across assignment rows. Written only by
    # ProjectAggregateMaintainer.
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)


class ActivityEntry(Base):
    __tablename__ = "daily_activity_entries"
    __table_args__ = (
        CheckConstraint("hours >= 0", name="ck_activity_entries_hours_non_negative"),
        UniqueConstraint("employee_id", "entry_date", "activity", name="uq_activity_entries_employee_day_activity"),
        Index("ix_activity_entries_employee_day", "employee_id", "entry_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", name="fk_daily_activity_entries_employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    activity: Mapped[str] = mapped_column(String(100), nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)


class ProjectAssignmentEntry(Base):
    __tablename__ = "daily_project_assignments"
    __table_args__ = (
        CheckConstraint("hours >= 0", name="ck_project_assignments_hours_non_negative"),
        CheckConstraint(
            "planned_start_date IS NULL OR planned_end_date IS NULL OR planned_start_date <= planned_end_date",
            name="ck_project_assignments_planned_window",
        ),
        CheckConstraint(
            "actual_start_date IS NULL OR actual_end_date IS NULL OR actual_start_date <= actual_end_date",
            name="ck_project_assignments_actual_window",
        ),
        UniqueConstraint(
            "employee_id",
            "project_id",
            "entry_date",
            name="uq_project_assignments_employee_project_day",
        ),
        Index("ix_project_assignments_employee_day", "employee_id", "entry_date"),
        Index("ix_project_assignments_project_day", "project_id", "entry_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", name="fk_daily_project_assignments_employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey(
            "projects.id",
            name="fk_daily_project_assignments_project_id",
            ondelete="CASCADE",
            onupdate="CASCADE",
        ),
        nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    planned_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    planned_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[WorkStatus] = mapped_column(
        SQLEnum(WorkStatus, name="work_status", values_callable=_enum_values),
        nullable=False,
        default=WorkStatus.ACTIVE,
    )
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
