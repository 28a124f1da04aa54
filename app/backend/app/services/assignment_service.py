"""Project assignment store: per employee, project and day records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.dates import format_day, parse_day, parse_optional_day, validate_window
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.entities import ProjectAssignmentEntry, WorkStatus
from app.repositories.timesheet_repository import TimesheetRepository
from app.services.common import (
    UNSET,
    ZERO,
    ensure_employee_scope,
    hours_to_float,
    is_set,
    parse_hours,
    parse_status,
    run_in_transaction,
)
from app.services.project_aggregates import ProjectAggregateMaintainer

logger = logging.getLogger(__name__)

PROJECT_FOREIGN_KEY = "fk_daily_project_assignments_project_id"
EMPLOYEE_FOREIGN_KEY = "fk_daily_project_assignments_employee_id"

DATE_FIELDS = ("planned_start_date", "planned_end_date", "actual_start_date", "actual_end_date")
WINDOWS = (
    ("planned_start_date", "planned_end_date", "planned window"),
    ("actual_start_date", "actual_end_date", "actual window"),
)


@dataclass(slots=True)
class AssignmentFields:
    """Partial assignment payload.

    Every attribute defaults to ``UNSET``. ``None`` means "sent as null", which
    an upsert treats like an omitted field and an explicit update treats as a
    request to clear the stored value.
    """

    project_name: object = UNSET
    planned_start_date: object = UNSET
    planned_end_date: object = UNSET
    actual_start_date: object = UNSET
    actual_end_date: object = UNSET
    status: object = UNSET
    hours: object = UNSET
    comments: object = UNSET

    @classmethod
    def from_mapping(cls, values: dict[str, object]) -> AssignmentFields:
        known = {item.name for item in fields(cls)}
        return cls(**{name: value for name, value in values.items() if name in known})

    def present(self, *, keep_null: bool = False) -> dict[str, object]:
        """Fields that take part in a write, in declaration order."""

        selected: dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if not is_set(value):
                continue
            if value is None and not keep_null:
                continue
            selected[item.name] = value
        return selected


def _normalize_project_id(value: str | None) -> str:
    project_id = (value or "").strip()
    if not project_id:
        raise ValidationError("project_id is required.")
    if len(project_id) > 100:
        raise ValidationError("project_id must be at most 100 characters.")
    return project_id


def normalize_assignment_values(raw: dict[str, object], *, clearing: bool) -> dict[str, object]:
    """Parse present field values into storable column values.

    With ``clearing`` set, ``None`` survives for nullable columns while status
    and hours fall back to their defaults.
    """

    values: dict[str, object] = {}
    for name, value in raw.items():
        if name in DATE_FIELDS:
            if isinstance(value, date):
                values[name] = value
            else:
                parsed = parse_optional_day(value, name)
                if parsed is None and not clearing:
                    continue
                values[name] = parsed
        elif name == "status":
            values[name] = WorkStatus.ACTIVE if value is None else parse_status(value)
        elif name == "hours":
            values[name] = ZERO if value is None else parse_hours(value)
        elif name == "project_name":
            values[name] = None if value is None else str(value).strip()
        elif name == "comments":
            values[name] = None if value is None else str(value)
    return values


def validate_assignment_windows(values: dict[str, object], stored: ProjectAssignmentEntry | None = None) -> None:
    """Reject reversed windows, both as sent and as they would be stored."""

    for start_name, end_name, label in WINDOWS:
        validate_window(values.get(start_name), values.get(end_name), label)
        if stored is None:
            continue
        start = values[start_name] if start_name in values else getattr(stored, start_name)
        end = values[end_name] if end_name in values else getattr(stored, end_name)
        validate_window(start, end, label)


class AssignmentStoreService:
    """Point upserts, partial updates and deletes of day assignment rows."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TimesheetRepository(db)
        self.aggregates = ProjectAggregateMaintainer(self.repo)

    @staticmethod
    def serialize_assignment(entry: ProjectAssignmentEntry) -> dict[str, object]:
        return {
            "id": entry.id,
            "employee_id": entry.employee_id,
            "project_id": entry.project_id,
            "project_name": entry.project_name,
            "entry_date": format_day(entry.entry_date),
            "planned_start_date": format_day(entry.planned_start_date),
            "planned_end_date": format_day(entry.planned_end_date),
            "actual_start_date": format_day(entry.actual_start_date),
            "actual_end_date": format_day(entry.actual_end_date),
            "status": entry.status.value,
            "hours": hours_to_float(entry.hours),
            "comments": entry.comments,
        }

    def _ensure_project(self, project_id: str) -> None:
        if self.repo.get_project(project_id) is None:
            raise ConflictError(f"Project {project_id} does not exist.", constraint=PROJECT_FOREIGN_KEY)

    def upsert_day(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        project_id: str,
        day: str | date,
        data: AssignmentFields,
    ) -> ProjectAssignmentEntry:
        """Create the row for the key or merge the present fields into it."""

        entry_date = day if isinstance(day, date) else parse_day(day)
        project_key = _normalize_project_id(project_id)
        ensure_employee_scope(
            self.repo,
            context=context,
            employee_id=employee_id,
            missing_constraint=EMPLOYEE_FOREIGN_KEY,
        )

        values = normalize_assignment_values(data.present(keep_null=False), clearing=False)
        self._ensure_project(project_key)
        stored = self.repo.get_assignment(employee_id=employee_id, project_id=project_key, day=entry_date)
        validate_assignment_windows(values, stored)

        insert_values: dict[str, object] = {
            "employee_id": employee_id,
            "project_id": project_key,
            "entry_date": entry_date,
            "status": WorkStatus.ACTIVE,
            "hours": ZERO,
        }
        insert_values.update(values)

        def work() -> None:
            self.repo.upsert_assignment(insert_values=insert_values, merge_fields=list(values))
            self.aggregates.recompute(project_key)

        run_in_transaction(
            self.db,
            operation="assignments.upsert",
            conflict_detail="Assignment row violates store constraints.",
            work=work,
        )
        logger.info(
            "Upserted project assignment",
            extra={
                "employee_id": employee_id,
                "project_id": project_key,
                "entry_date": entry_date.isoformat(),
                "fields": sorted(values),
                "inserted": stored is None,
            },
        )
        return self.repo.get_assignment(
            employee_id=employee_id,
            project_id=project_key,
            day=entry_date,
            refresh=True,
        )

    def update_day(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        project_id: str,
        day: str | date,
        patch: AssignmentFields,
    ) -> ProjectAssignmentEntry:
        """Explicit update of an existing row; never creates one."""

        entry_date = day if isinstance(day, date) else parse_day(day)
        project_key = _normalize_project_id(project_id)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)

        raw = patch.present(keep_null=True)
        if not raw:
            raise ValidationError("No fields to update.")
        values = normalize_assignment_values(raw, clearing=True)

        stored = self.repo.get_assignment(employee_id=employee_id, project_id=project_key, day=entry_date)
        if stored is None:
            raise NotFoundError("Project assignment not found for this day.")
        validate_assignment_windows(values, stored)

        def work() -> None:
            for name, value in values.items():
                setattr(stored, name, value)
            self.db.flush()
            self.aggregates.recompute(project_key)

        run_in_transaction(
            self.db,
            operation="assignments.update",
            conflict_detail="Assignment row violates store constraints.",
            work=work,
        )
        logger.info(
            "Updated project assignment",
            extra={
                "employee_id": employee_id,
                "project_id": project_key,
                "entry_date": entry_date.isoformat(),
                "fields": sorted(values),
            },
        )
        return self.repo.get_assignment(
            employee_id=employee_id,
            project_id=project_key,
            day=entry_date,
            refresh=True,
        )

    def delete_day(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        project_id: str,
        day: str | date,
    ) -> dict[str, object]:
        """Delete the row for the key; a missing row is reported, not raised."""

        entry_date = day if isinstance(day, date) else parse_day(day)
        project_key = _normalize_project_id(project_id)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)

        stored = self.repo.get_assignment(employee_id=employee_id, project_id=project_key, day=entry_date)
        if stored is None:
            logger.info(
                "No project assignment to delete",
                extra={"employee_id": employee_id, "project_id": project_key, "entry_date": entry_date.isoformat()},
            )
            return {"deleted": False, "status": "nothing_to_delete"}

        def work() -> None:
            self.repo.delete_assignment(stored)
            self.aggregates.recompute(project_key)

        run_in_transaction(
            self.db,
            operation="assignments.delete",
            conflict_detail="Assignment row could not be deleted.",
            work=work,
        )
        logger.info(
            "Deleted project assignment",
            extra={"employee_id": employee_id, "project_id": project_key, "entry_date": entry_date.isoformat()},
        )
        return {"deleted": True, "status": "deleted"}

    def purge_employee_entries(self, employee_id: int) -> dict[str, int]:
        """Remove every day row of an employee ahead of master-data deletion."""

        def work() -> dict[str, int]:
            project_ids = self.repo.list_project_ids_for_employee(employee_id)
            activities = self.repo.delete_activities_for_employee(employee_id)
            assignments = self.repo.delete_assignments_for_employee(employee_id)
            self.aggregates.recompute_many(project_ids)
            return {"activities": activities, "assignments": assignments, "projects": len(project_ids)}

        counts = run_in_transaction(
            self.db,
            operation="assignments.purge_employee",
            conflict_detail="Employee entries could not be purged.",
            work=work,
        )
        logger.info("Purged employee day entries", extra={"employee_id": employee_id, **counts})
        return counts
