"""Resolved day view: explicit assignment rows plus rows carried from earlier days."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.clock import Clock
from app.core.dates import format_day, parse_day
from app.models.entities import Project, ProjectAssignmentEntry, WorkStatus
from app.repositories.timesheet_repository import TimesheetRepository
from app.services.common import ensure_employee_scope, parse_status

TERMINAL_STATUS = WorkStatus.COMPLETED


@dataclass(slots=True)
class ResolvedAssignment:
    """One row of the resolved view; never persisted."""

    id: int | None
    employee_id: int
    project_id: str
    project_name: str | None
    entry_date: date
    planned_start_date: date | None
    planned_end_date: date | None
    actual_start_date: date | None
    actual_end_date: date | None
    status: WorkStatus
    hours: Decimal | None
    comments: str | None
    carried: bool
    project_planned_start_date: date | None = None
    project_planned_end_date: date | None = None


def _from_entry(
    entry: ProjectAssignmentEntry,
    *,
    day: date,
    carried: bool,
    project: Project | None,
) -> ResolvedAssignment:
    name = entry.project_name
    if name is None and project is not None:
        name = project.name
    return ResolvedAssignment(
        id=None if carried else entry.id,
        employee_id=entry.employee_id,
        project_id=entry.project_id,
        project_name=name,
        entry_date=day,
        planned_start_date=entry.planned_start_date,
        planned_end_date=entry.planned_end_date,
        actual_start_date=entry.actual_start_date,
        actual_end_date=entry.actual_end_date,
        status=entry.status,
        hours=None if carried else entry.hours,
        comments=None if carried else entry.comments,
        carried=carried,
        project_planned_start_date=project.planned_start_date if project is not None else None,
        project_planned_end_date=project.planned_end_date if project is not None else None,
    )


def display_sort_key(row: ResolvedAssignment) -> tuple[bool, str, str]:
    """Case-insensitive by name with unnamed rows last; ties by project id."""

    name = row.project_name
    return (name is None, (name or "").casefold(), row.project_id)


def merge_day_rows(
    *,
    day: date,
    explicit: Iterable[ProjectAssignmentEntry],
    latest_prior: Iterable[ProjectAssignmentEntry],
    projects: Mapping[str, Project],
    status_filter: WorkStatus | None = None,
) -> list[ResolvedAssignment]:
    """Combine a day's explicit rows with carried rows and sort them.

    ``latest_prior`` holds, per project, the most recent row strictly before
    ``day``. A project that already has an explicit row is never carried, and a
    prior row whose status is terminal never carries.
    """

    explicit = list(explicit)
    rows: list[ResolvedAssignment] = []
    for entry in explicit:
        if status_filter is not None and entry.status is not status_filter:
            continue
        rows.append(_from_entry(entry, day=day, carried=False, project=projects.get(entry.project_id)))

    # A same-day row blocks carrying even when the filter hides it.
    explicit_projects = {entry.project_id for entry in explicit}
    for prior in latest_prior:
        if prior.project_id in explicit_projects or prior.entry_date >= day:
            continue
        if prior.status is TERMINAL_STATUS:
            continue
        if status_filter is not None and prior.status is not status_filter:
            continue
        explicit_projects.add(prior.project_id)
        rows.append(_from_entry(prior, day=day, carried=True, project=projects.get(prior.project_id)))

    rows.sort(key=display_sort_key)
    return rows


class CarryForwardResolver:
    """Builds the effective assignment list an employee sees on a day."""

    def __init__(self, db: Session, clock: Clock) -> None:
        self.db = db
        self.repo = TimesheetRepository(db)
        self.clock = clock

    @staticmethod
    def serialize_resolved(row: ResolvedAssignment) -> dict[str, object]:
        return {
            "id": row.id,
            "employee_id": row.employee_id,
            "project_id": row.project_id,
            "project_name": row.project_name,
            "entry_date": format_day(row.entry_date),
            "planned_start_date": format_day(row.planned_start_date),
            "planned_end_date": format_day(row.planned_end_date),
            "actual_start_date": format_day(row.actual_start_date),
            "actual_end_date": format_day(row.actual_end_date),
            "status": row.status.value,
            "hours": float(row.hours) if row.hours is not None else None,
            "comments": row.comments,
            "carried": row.carried,
            "project_planned_start_date": format_day(row.project_planned_start_date),
            "project_planned_end_date": format_day(row.project_planned_end_date),
        }

    def resolve_for_employee(
        self,
        employee_id: int,
        day: date,
        status_filter: WorkStatus | None = None,
    ) -> list[ResolvedAssignment]:
        explicit = self.repo.list_assignments_for_day(employee_id, day)
        latest_prior = self.repo.list_latest_prior_assignments(employee_id, day)
        project_ids = {entry.project_id for entry in explicit} | {entry.project_id for entry in latest_prior}
        projects = self.repo.list_projects(project_ids)
        return merge_day_rows(
            day=day,
            explicit=explicit,
            latest_prior=latest_prior,
            projects=projects,
            status_filter=status_filter,
        )

    def resolve_day(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        day: str | date | None = None,
        status: str | None = None,
    ) -> list[ResolvedAssignment]:
        """Resolve ``day`` (today when omitted) for an employee the actor may see."""

        if day is None:
            entry_date = self.clock.today()
        elif isinstance(day, date):
            entry_date = day
        else:
            entry_date = parse_day(day)
        status_filter = parse_status(status) if status is not None and status.strip() else None
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)
        return self.resolve_for_employee(employee_id, entry_date, status_filter)
