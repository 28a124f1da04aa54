"""Activity ledger: non-project hours per employee, day and activity label."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.dates import format_day, parse_day
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.entities import ActivityEntry
from app.repositories.timesheet_repository import TimesheetRepository
from app.services.common import (
    UNSET,
    ZERO,
    clean_text,
    ensure_employee_scope,
    hours_to_float,
    is_set,
    parse_hours,
    parse_optional_hours,
    run_in_transaction,
)

logger = logging.getLogger(__name__)

ACTIVITY_UNIQUE_CONSTRAINT = "uq_activity_entries_employee_day_activity"
EMPLOYEE_FOREIGN_KEY = "fk_daily_activity_entries_employee_id"


@dataclass(slots=True)
class ActivityInput:
    activity: str | None
    hours: object = None
    comments: str | None = None


@dataclass(slots=True)
class ActivityPatch:
    activity: object = UNSET
    hours: object = UNSET
    comments: object = UNSET

    def is_empty(self) -> bool:
        return not any(is_set(value) for value in (self.activity, self.hours, self.comments))


@dataclass(slots=True)
class _ValidatedActivity:
    activity: str
    hours: Decimal
    comments: str | None


def _normalize_label(value: object) -> str:
    label = clean_text(value) if isinstance(value, str) else None
    if label is None:
        raise ValidationError("activity is required.")
    if len(label) > 100:
        raise ValidationError("activity must be at most 100 characters.")
    return label


class ActivityLedgerService:
    """Reads and writes the per-day activity ledger."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TimesheetRepository(db)

    @staticmethod
    def serialize_activity(entry: ActivityEntry) -> dict[str, object]:
        return {
            "id": entry.id,
            "employee_id": entry.employee_id,
            "entry_date": format_day(entry.entry_date),
            "activity": entry.activity,
            "hours": hours_to_float(entry.hours),
            "comments": entry.comments,
        }

    def _validate_batch(self, activities: list[ActivityInput]) -> list[_ValidatedActivity]:
        validated: list[_ValidatedActivity] = []
        seen: set[str] = set()
        for index, item in enumerate(activities):
            label = _normalize_label(item.activity)
            key = label.lower()
            if key in seen:
                raise ValidationError(f"Duplicate activity in batch: {label}.")
            seen.add(key)
            hours = parse_optional_hours(item.hours, f"activities[{index}].hours")
            validated.append(
                _ValidatedActivity(
                    activity=label,
                    hours=hours if hours is not None else ZERO,
                    comments=clean_text(item.comments),
                )
            )
        return validated

    def get_day(self, *, context: RequestUserContext, employee_id: int, day: str | date) -> list[ActivityEntry]:
        entry_date = day if isinstance(day, date) else parse_day(day)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)
        return self.repo.list_activities_for_day(employee_id, entry_date)

    def replace_day(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        day: str | date,
        activities: list[ActivityInput],
    ) -> list[ActivityEntry]:
        """Swap the whole ledger of one day for ``activities`` in one transaction."""

        entry_date = day if isinstance(day, date) else parse_day(day)
        ensure_employee_scope(
            self.repo,
            context=context,
            employee_id=employee_id,
            missing_constraint=EMPLOYEE_FOREIGN_KEY,
        )
        validated = self._validate_batch(activities)

        def work() -> int:
            removed = self.repo.delete_activities_for_day(employee_id, entry_date)
            self.repo.add_activities(
                [
                    ActivityEntry(
                        employee_id=employee_id,
                        entry_date=entry_date,
                        activity=item.activity,
                        hours=item.hours,
                        comments=item.comments,
                    )
                    for item in validated
                ]
            )
            return removed

        removed = run_in_transaction(
            self.db,
            operation="activities.replace_day",
            conflict_detail="Activity entries violate ledger constraints.",
            work=work,
        )
        logger.info(
            "Replaced activity ledger",
            extra={
                "employee_id": employee_id,
                "entry_date": entry_date.isoformat(),
                "removed": removed,
                "inserted": len(validated),
            },
        )
        return self.repo.list_activities_for_day(employee_id, entry_date)

    def update_activity(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        day: str | date,
        activity_id: int,
        patch: ActivityPatch,
    ) -> ActivityEntry:
        entry_date = day if isinstance(day, date) else parse_day(day)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)
        if patch.is_empty():
            raise ValidationError("No fields to update.")

        entry = self.repo.get_activity(employee_id, entry_date, activity_id)
        if entry is None:
            raise NotFoundError("Activity entry not found.")

        changes: dict[str, object] = {}
        if is_set(patch.activity):
            label = _normalize_label(patch.activity)
            for other in self.repo.list_activities_for_day(employee_id, entry_date):
                if other.id != entry.id and other.activity.lower() == label.lower():
                    raise ConflictError(
                        f"Activity {label} already exists for this day.",
                        constraint=ACTIVITY_UNIQUE_CONSTRAINT,
                    )
            changes["activity"] = label
        if is_set(patch.hours):
            changes["hours"] = ZERO if patch.hours is None else parse_hours(patch.hours)
        if is_set(patch.comments):
            changes["comments"] = clean_text(patch.comments)

        def work() -> None:
            for name, value in changes.items():
                setattr(entry, name, value)
            self.db.flush()

        run_in_transaction(
            self.db,
            operation="activities.update",
            conflict_detail="Activity entry violates ledger constraints.",
            work=work,
        )
        logger.info(
            "Updated activity entry",
            extra={"employee_id": employee_id, "entry_date": entry_date.isoformat(), "activity_id": activity_id},
        )
        self.db.refresh(entry)
        return entry

    def delete_activity(
        self,
        *,
        context: RequestUserContext,
        employee_id: int,
        day: str | date,
        activity_id: int,
    ) -> None:
        entry_date = day if isinstance(day, date) else parse_day(day)
        ensure_employee_scope(self.repo, context=context, employee_id=employee_id)
        entry = self.repo.get_activity(employee_id, entry_date, activity_id)
        if entry is None:
            raise NotFoundError("Activity entry not found.")

        run_in_transaction(
            self.db,
            operation="activities.delete",
            conflict_detail="Activity entry could not be deleted.",
            work=lambda: self.repo.delete_activity(entry),
        )
        logger.info(
            "Deleted activity entry",
            extra={"employee_id": employee_id, "entry_date": entry_date.isoformat(), "activity_id": activity_id},
        )
