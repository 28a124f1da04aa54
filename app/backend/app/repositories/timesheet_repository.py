"""Repository helpers for daily activity and project assignment entries."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from datetime import date
from decimal import Decimal

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.models.entities import (
    ActivityEntry,
    Employee,
    Project,
    ProjectAssignmentEntry,
    Team,
)

ZERO = Decimal("0.00")

ASSIGNMENT_KEY_COLUMNS = ("employee_id", "project_id", "entry_date")

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TimesheetRepository:
    """Persistence operations used by the ledger, store, resolver and reports."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Master data (read-only) ----------
    def get_employee(self, employee_id: int) -> Employee | None:
        return self.db.scalar(select(Employee).where(Employee.id == employee_id))

    def get_team(self, team_id: int) -> Team | None:
        return self.db.scalar(select(Team).where(Team.id == team_id))

    def list_team_employees(self, team_id: int) -> list[Employee]:
        return self.db.scalars(
            select(Employee)
            .where(Employee.team_id == team_id)
            .order_by(Employee.first_name.asc(), Employee.last_name.asc(), Employee.id.asc())
        ).all()

    def list_employees(self, employee_ids: Collection[int]) -> dict[int, Employee]:
        if not employee_ids:
            return {}
        rows = self.db.scalars(select(Employee).where(Employee.id.in_(employee_ids))).all()
        return {row.id: row for row in rows}

    def get_project(self, project_id: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def list_projects(self, project_ids: Collection[str]) -> dict[str, Project]:
        if not project_ids:
            return {}
        rows = self.db.scalars(select(Project).where(Project.id.in_(project_ids))).all()
        return {row.id: row for row in rows}

    # ---------- Activity entries ----------
    def list_activities_for_day(self, employee_id: int, day: date) -> list[ActivityEntry]:
        return self.db.scalars(
            select(ActivityEntry)
            .where(and_(ActivityEntry.employee_id == employee_id, ActivityEntry.entry_date == day))
            .order_by(ActivityEntry.activity.asc(), ActivityEntry.id.asc())
        ).all()

    def get_activity(self, employee_id: int, day: date, activity_id: int) -> ActivityEntry | None:
        return self.db.scalar(
            select(ActivityEntry).where(
                and_(
                    ActivityEntry.id == activity_id,
                    ActivityEntry.employee_id == employee_id,
                    ActivityEntry.entry_date == day,
                )
            )
        )

    def add_activities(self, entries: list[ActivityEntry]) -> list[ActivityEntry]:
        self.db.add_all(entries)
        self.db.flush()
        return entries

    def delete_activities_for_day(self, employee_id: int, day: date) -> int:
        result = self.db.execute(
            delete(ActivityEntry)
            .where(and_(ActivityEntry.employee_id == employee_id, ActivityEntry.entry_date == day))
        )
        return result.rowcount or 0

    def delete_activity(self, entry: ActivityEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    def delete_activities_for_employee(self, employee_id: int) -> int:
        result = self.db.execute(
            delete(ActivityEntry)
            .where(ActivityEntry.employee_id == employee_id)
        )
        return result.rowcount or 0

    def list_activities_in_range(self, employee_id: int, *, start: date, end: date) -> list[ActivityEntry]:
        return self.db.scalars(
            select(ActivityEntry)
            .where(
                and_(
                    ActivityEntry.employee_id == employee_id,
                    ActivityEntry.entry_date >= start,
                    ActivityEntry.entry_date <= end,
                )
            )
            .order_by(ActivityEntry.entry_date.asc(), ActivityEntry.activity.asc())
        ).all()

    def activity_day_totals(self, employee_id: int, day: date) -> tuple[int, Decimal]:
        count, hours = self.db.execute(
            select(func.count(ActivityEntry.id), func.coalesce(func.sum(ActivityEntry.hours), ZERO)).where(
                and_(ActivityEntry.employee_id == employee_id, ActivityEntry.entry_date == day)
            )
        ).one()
        return int(count or 0), Decimal(str(hours or 0))

    def sum_activity_hours_by_label(
        self,
        employee_ids: Collection[int],
        *,
        start: date,
        end: date,
    ) -> list[tuple[int, str, Decimal]]:
        if not employee_ids:
            return []
        label = func.lower(ActivityEntry.activity)
        rows = self.db.execute(
            select(
                ActivityEntry.employee_id,
                label,
                func.coalesce(func.sum(ActivityEntry.hours), ZERO),
            )
            .where(
                and_(
                    ActivityEntry.employee_id.in_(employee_ids),
                    ActivityEntry.entry_date >= start,
                    ActivityEntry.entry_date <= end,
                )
            )
            .group_by(ActivityEntry.employee_id, label)
        ).all()
        return [(employee_id, name, Decimal(str(hours or 0))) for employee_id, name, hours in rows]

    # ---------- Project assignment entries ----------
    def get_assignment(
        self,
        *,
        employee_id: int,
        project_id: str,
        day: date,
        refresh: bool = False,
    ) -> ProjectAssignmentEntry | None:
        statement = select(ProjectAssignmentEntry).where(
            and_(
                ProjectAssignmentEntry.employee_id == employee_id,
                ProjectAssignmentEntry.project_id == project_id,
                ProjectAssignmentEntry.entry_date == day,
            )
        )
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        return self.db.scalar(statement)

    def upsert_assignment(
        self,
        *,
        insert_values: Mapping[str, object],
        merge_fields: Collection[str],
    ) -> None:
        """Insert the row or merge ``merge_fields`` into the existing one.

        Runs as one ``INSERT ... ON CONFLICT DO UPDATE`` keyed by the
        (employee, project, day) unique constraint so concurrent writers for
        the same key are serialized by the database.
        """

        dialect_name = self.db.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect_name)
        if insert_fn is None:
            raise RuntimeError(f"Atomic upsert is not supported for dialect {dialect_name!r}.")

        statement = insert_fn(ProjectAssignmentEntry).values(**insert_values)
        merge = {name: statement.excluded[name] for name in merge_fields}
        if merge:
            statement = statement.on_conflict_do_update(index_elements=list(ASSIGNMENT_KEY_COLUMNS), set_=merge)
        else:
            statement = statement.on_conflict_do_nothing(index_elements=list(ASSIGNMENT_KEY_COLUMNS))
        self.db.execute(statement)

    def delete_assignment(self, entry: ProjectAssignmentEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    def list_assignments_for_day(self, employee_id: int, day: date) -> list[ProjectAssignmentEntry]:
        return self.db.scalars(
            select(ProjectAssignmentEntry).where(
                and_(
                    ProjectAssignmentEntry.employee_id == employee_id,
                    ProjectAssignmentEntry.entry_date == day,
                )
            )
        ).all()

    def list_latest_prior_assignments(self, employee_id: int, day: date) -> list[ProjectAssignmentEntry]:
        """Most recent row strictly before ``day`` for every project of the employee."""

        latest = (
            select(
                ProjectAssignmentEntry.project_id.label("project_id"),
                func.max(ProjectAssignmentEntry.entry_date).label("latest_date"),
            )
            .where(
                and_(
                    ProjectAssignmentEntry.employee_id == employee_id,
                    ProjectAssignmentEntry.entry_date < day,
                )
            )
            .group_by(ProjectAssignmentEntry.project_id)
            .subquery()
        )
        return self.db.scalars(
            select(ProjectAssignmentEntry)
            .join(
                latest,
                and_(
                    ProjectAssignmentEntry.project_id == latest.c.project_id,
                    ProjectAssignmentEntry.entry_date == latest.c.latest_date,
                ),
            )
            .where(ProjectAssignmentEntry.employee_id == employee_id)
        ).all()

    def list_assignments_in_range(
        self,
        employee_id: int,
        *,
        start: date,
        end: date,
    ) -> list[ProjectAssignmentEntry]:
        return self.db.scalars(
            select(ProjectAssignmentEntry)
            .where(
                and_(
                    ProjectAssignmentEntry.employee_id == employee_id,
                    ProjectAssignmentEntry.entry_date >= start,
                    ProjectAssignmentEntry.entry_date <= end,
                )
            )
            .order_by(ProjectAssignmentEntry.entry_date.asc(), ProjectAssignmentEntry.project_id.asc())
        ).all()

    def assignment_day_totals(self, employee_id: int, day: date) -> tuple[int, Decimal]:
        count, hours = self.db.execute(
            select(
                func.count(ProjectAssignmentEntry.id),
                func.coalesce(func.sum(ProjectAssignmentEntry.hours), ZERO),
            ).where(
                and_(
                    ProjectAssignmentEntry.employee_id == employee_id,
                    ProjectAssignmentEntry.entry_date == day,
                )
            )
        ).one()
        return int(count or 0), Decimal(str(hours or 0))

    def sum_project_hours_by_employee(
        self,
        project_id: str,
        *,
        start: date,
        end: date,
    ) -> list[tuple[int, Decimal]]:
        total = func.coalesce(func.sum(ProjectAssignmentEntry.hours), ZERO)
        rows = self.db.execute(
            select(ProjectAssignmentEntry.employee_id, total)
            .where(
                and_(
                    ProjectAssignmentEntry.project_id == project_id,
                    ProjectAssignmentEntry.entry_date >= start,
                    ProjectAssignmentEntry.entry_date <= end,
                )
            )
            .group_by(ProjectAssignmentEntry.employee_id)
            .having(total > 0)
        ).all()
        return [(employee_id, Decimal(str(hours))) for employee_id, hours in rows]

    def sum_hours_by_project(
        self,
        employee_ids: Collection[int],
        *,
        start: date,
        end: date,
    ) -> list[tuple[str, str | None, Decimal]]:
        """Per-project hour totals; the name is ``MAX`` over the non-null snapshots."""

        if not employee_ids:
            return []
        total = func.coalesce(func.sum(ProjectAssignmentEntry.hours), ZERO)
        rows = self.db.execute(
            select(
                ProjectAssignmentEntry.project_id,
                func.max(ProjectAssignmentEntry.project_name),
                total,
            )
            .where(
                and_(
                    ProjectAssignmentEntry.employee_id.in_(employee_ids),
                    ProjectAssignmentEntry.entry_date >= start,
                    ProjectAssignmentEntry.entry_date <= end,
                )
            )
            .group_by(ProjectAssignmentEntry.project_id)
            .having(total > 0)
        ).all()
        return [(project_id, name, Decimal(str(hours))) for project_id, name, hours in rows]

    def sum_assignment_hours_by_employee(
        self,
        employee_ids: Collection[int],
        *,
        start: date,
        end: date,
    ) -> dict[int, Decimal]:
        if not employee_ids:
            return {}
        rows = self.db.execute(
            select(
                ProjectAssignmentEntry.employee_id,
                func.coalesce(func.sum(ProjectAssignmentEntry.hours), ZERO),
            )
            .where(
                and_(
                    ProjectAssignmentEntry.employee_id.in_(employee_ids),
                    ProjectAssignmentEntry.entry_date >= start,
                    ProjectAssignmentEntry.entry_date <= end,
                )
            )
            .group_by(ProjectAssignmentEntry.employee_id)
        ).all()
        return {employee_id: Decimal(str(hours or 0)) for employee_id, hours in rows}

    def list_project_ids_for_employee(self, employee_id: int) -> list[str]:
        return self.db.scalars(
            select(ProjectAssignmentEntry.project_id)
            .where(ProjectAssignmentEntry.employee_id == employee_id)
            .distinct()
            .order_by(ProjectAssignmentEntry.project_id.asc())
        ).all()

    def delete_assignments_for_employee(self, employee_id: int) -> int:
        result = self.db.execute(
            delete(ProjectAssignmentEntry)
            .where(ProjectAssignmentEntry.employee_id == employee_id)
        )
        return result.rowcount or 0

    # ---------- Derived project aggregate ----------
    def refresh_project_actual_start(self, project_id: str) -> None:
        """Set the project's actual start to the minimum over its assignment rows.

        A single UPDATE with a correlated subquery; yields NULL once no row
        with a start date remains.
        """

        earliest = (
            select(func.min(ProjectAssignmentEntry.actual_start_date))
            .where(ProjectAssignmentEntry.project_id == project_id)
            .scalar_subquery()
        )
        self.db.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(actual_start_date=earliest)
            .execution_options(synchronize_session=False)
        )
