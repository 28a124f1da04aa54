"""Range reports, team rollups and exports over the daily timesheet stores."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import AppRole, RequestUserContext, has_role
from app.core.clock import Clock
from app.core.dates import format_day, parse_day, parse_range
from app.core.errors import ValidationError
from app.models.entities import Employee, WorkStatus
from app.repositories.timesheet_repository import TimesheetRepository
from app.services.carry_forward import CarryForwardResolver, ResolvedAssignment
from app.services.common import ZERO, ensure_employee_scope, ensure_team_scope, hours_to_float

PROJECT_REPORT_ROLES = {AppRole.ADMIN, AppRole.TEAM_LEAD}

# Category code -> activity labels (case-insensitive) summed into it.
UTILIZATION_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("S", ("supervision",)),
    ("C", ("correlation",)),
    ("M", ("method development",)),
    ("A", ("application",)),
    ("CP", ("cpm",)),
    ("O", ("meeting", "meetings")),
    ("T1", ("trainer",)),
    ("T2", ("trainee",)),
    ("NA", ("misc", "na")),
    ("L", ("leave",)),
    ("SW", ("software",)),
)
CATEGORY_CODES = tuple(code for code, _ in UTILIZATION_CATEGORIES)
LABEL_TO_CATEGORY = {label: code for code, labels in UTILIZATION_CATEGORIES for label in labels}

WORK_IN_PROGRESS_STATUSES = {WorkStatus.ACTIVE, WorkStatus.PENDING}


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def _normalize_label(label: str) -> str:
    return " ".join(label.split()).lower()


def _name_key(name: str | None) -> str:
    return (name or "").casefold()


class ReportingService:
    """Read-only aggregations; nothing here writes to the stores."""

    def __init__(self, db: Session, clock: Clock) -> None:
        self.db = db
        self.repo = TimesheetRepository(db)
        self.clock = clock
        self.resolver = CarryForwardResolver(db, clock)

    def _ensure_project_report_role(self, context: RequestUserContext) -> None:
        if not has_role(context, PROJECT_REPORT_ROLES):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )

    # ---------- Employee reports ----------
    def employee_range(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        start_date: str | None,
        end_date: str | None,
    ) -> dict[str, object]:
        start, end = parse_range(start_date, end_date)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)

        activities = self.repo.list_activities_in_range(employee_id, start=start, end=end)
        entries = self.repo.list_assignments_in_range(employee_id, start=start, end=end)
        projects = self.repo.list_projects({entry.project_id for entry in entries})

        project_rows: list[dict[str, object]] = []
        for entry in entries:
            project = projects.get(entry.project_id)
            name = entry.project_name
            if name is None and project is not None:
                name = project.name
            project_rows.append(
                {
                    "report_date": format_day(entry.entry_date),
                    "project_id": entry.project_id,
                    "project_name": name,
                    "hours": hours_to_float(entry.hours),
                    "comments": entry.comments,
                    "status": (entry.status or WorkStatus.ACTIVE).value,
                }
            )

        return {
            "employee_id": employee_id,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "activities": [
                {
                    "report_date": format_day(row.entry_date),
                    "activity_id": row.id,
                    "activity": row.activity,
                    "hours": hours_to_float(row.hours),
                    "comment": row.comments,
                }
                for row in activities
            ],
            "project_entries": project_rows,
        }

    def daily_summary(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        day: str | date,
    ) -> dict[str, object]:
        """Counts and hours of one day across both stores."""

        entry_date = day if isinstance(day, date) else parse_day(day)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)

        activities_count, activity_hours = self.repo.activity_day_totals(employee_id, entry_date)
        projects_count, project_hours = self.repo.assignment_day_totals(employee_id, entry_date)
        return {
            "employee_id": employee_id,
            "date": entry_date.isoformat(),
            "has_any_entry": activities_count + projects_count > 0,
            "activities_count": activities_count,
            "projects_count": projects_count,
            "activity_hours": hours_to_float(activity_hours),
            "project_hours": hours_to_float(project_hours),
            "total_hours": hours_to_float(activity_hours + project_hours),
        }

    # ---------- Project and team rollups ----------
    def project_contributors(
        self,
        *,
        context: RequestUserContext,
        project_id: str,
        start_date: str | None,
        end_date: str | None,
    ) -> dict[str, object]:
        start, end = parse_range(start_date, end_date)
        self._ensure_project_report_role(context)
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

        totals = self.repo.sum_project_hours_by_employee(project.id, start=start, end=end)
        employees = self.repo.list_employees([employee_id for employee_id, _ in totals])

        rows: list[dict[str, object]] = []
        for employee_id, hours in totals:
            employee = employees.get(employee_id)
            rows.append(
                {
                    "employee_id": employee_id,
                    "employee_name": employee.display_name if employee is not None else None,
                    "team_id": employee.team_id if employee is not None else None,
                    "total_hours": hours,
                }
            )
        rows.sort(key=lambda row: (-row["total_hours"], _name_key(row["employee_name"]), row["employee_id"]))
        for row in rows:
            row["total_hours"] = hours_to_float(row["total_hours"])

        return {
            "project_id": project.id,
            "project_name": project.name,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "rows": rows,
        }

    def team_project_hours(
        self,
        *,
        context: RequestUserContext,
        team_id: int,
        start_date: str | None,
        end_date: str | None,
    ) -> dict[str, object]:
        start, end = parse_range(start_date, end_date)
        team = ensure_team_scope(self.repo, context=context, team_id=team_id)
        members = self.repo.list_team_employees(team.id)

        totals = self.repo.sum_hours_by_project([member.id for member in members], start=start, end=end)
        projects = self.repo.list_projects({project_id for project_id, _, _ in totals})

        rows: list[dict[str, object]] = []
        for project_id, snapshot_name, hours in totals:
            project = projects.get(project_id)
            rows.append(
                {
                    "project_id": project_id,
                    "project_name": project.name if project is not None else snapshot_name,
                    "total_hours": hours,
                }
            )
        rows.sort(key=lambda row: (-row["total_hours"], _name_key(row["project_name"]), row["project_id"]))
        for row in rows:
            row["total_hours"] = hours_to_float(row["total_hours"])

        return {
            "team_id": team.id,
            "team_name": team.name,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "rows": rows,
        }

    def _utilization_rows(self, members: list[Employee], *, start: date, end: date) -> list[dict[str, object]]:
        member_ids = [member.id for member in members]
        pivot: dict[int, dict[str, Decimal]] = {
            member_id: {code: ZERO for code in CATEGORY_CODES} for member_id in member_ids
        }
        for employee_id, label, hours in self.repo.sum_activity_hours_by_label(member_ids, start=start, end=end):
            code = LABEL_TO_CATEGORY.get(_normalize_label(label))
            if code is None:
                continue
            pivot[employee_id][code] += hours
        project_hours = self.repo.sum_assignment_hours_by_employee(member_ids, start=start, end=end)

        rows: list[dict[str, object]] = []
        for member in sorted(members, key=lambda item: (_name_key(item.display_name), item.id)):
            categories = pivot[member.id]
            projects_total = project_hours.get(member.id, ZERO)
            row: dict[str, object] = {"employee_id": member.id, "name": member.display_name}
            for code in CATEGORY_CODES:
                row[code] = hours_to_float(categories[code])
            row["P"] = hours_to_float(projects_total)
            row["total_hours"] = hours_to_float(sum(categories.values(), ZERO) + projects_total)
            rows.append(row)
        return rows

    def team_utilization_summary(
        self,
        *,
        context: RequestUserContext,
        team_id: int,
        start_date: str | None,
        end_date: str | None,
    ) -> dict[str, object]:
        """Per-member activity hours pivoted into fixed categories plus project hours."""

        start, end = parse_range(start_date, end_date)
        team = ensure_team_scope(self.repo, context=context, team_id=team_id)
        members = self.repo.list_team_employees(team.id)
        return {
            "team_id": team.id,
            "team_name": team.name,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "categories": [*CATEGORY_CODES, "P"],
            "rows": self._utilization_rows(members, start=start, end=end),
        }

    @staticmethod
    def _workload_item(row: ResolvedAssignment) -> dict[str, object]:
        return {
            "project_id": row.project_id,
            "project_name": row.project_name,
            "status": row.status.value,
            "carried": row.carried,
            "project_planned_end_date": format_day(row.project_planned_end_date),
        }

    def team_workload(self, *, context: RequestUserContext, team_id: int) -> dict[str, object]:
        """Today's open and overdue assignments for every team member."""

        team = ensure_team_scope(self.repo, context=context, team_id=team_id)
        today = self.clock.today()

        employees: list[dict[str, object]] = []
        wip_total = 0
        overdue_total = 0
        members = sorted(
            self.repo.list_team_employees(team.id),
            key=lambda item: (_name_key(item.display_name), item.id),
        )
        for member in members:
            resolved = self.resolver.resolve_for_employee(member.id, today)
            in_progress = [row for row in resolved if row.status in WORK_IN_PROGRESS_STATUSES]
            overdue = [
                row
                for row in resolved
                if row.status is not WorkStatus.COMPLETED
                and row.project_planned_end_date is not None
                and row.project_planned_end_date < today
            ]
            wip_total += len(in_progress)
            overdue_total += len(overdue)
            employees.append(
                {
                    "employee_id": member.id,
                    "name": member.display_name,
                    "work_in_progress_count": len(in_progress),
                    "overdue_count": len(overdue),
                    "work_in_progress": [self._workload_item(row) for row in in_progress],
                    "overdue": [self._workload_item(row) for row in overdue],
                }
            )

        return {
            "team_id": team.id,
            "team_name": team.name,
            "date": today.isoformat(),
            "work_in_progress_count": wip_total,
            "overdue_count": overdue_total,
            "employees": employees,
        }

    # ---------- Exports ----------
    def export_team_utilization(
        self,
        *,
        context: RequestUserContext,
        team_id: int,
        start_date: str | None,
        end_date: str | None,
        format_name: str,
    ) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise ValidationError("format must be one of: csv, xlsx.")

        summary = self.team_utilization_summary(
            context=context,
            team_id=team_id,
            start_date=start_date,
            end_date=end_date,
        )
        fieldnames = ["employee_id", "name", *summary["categories"], "total_hours"]
        rows = summary["rows"]
        base_filename = f"team-utilization-{team_id}-{summary['start_date']}-{summary['end_date']}"

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "utilization"
        sheet.append(fieldnames)
        for row in rows:
            sheet.append([row.get(column, "") for column in fieldnames])

        output = io.BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
