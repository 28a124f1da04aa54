"""Helpers shared by the timesheet services: scope checks, field parsing, commits."""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, can_access_employee, can_access_team
from app.core.errors import ConflictError, TransactionFailure, ValidationError
from app.models.entities import Employee, Team, WorkStatus
from app.repositories.timesheet_repository import TimesheetRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
MAX_HOURS = Decimal("99999999.99")


class _Unset:
    """Marker for a field that was not supplied at all."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def is_set(value: object) -> bool:
    return value is not UNSET


def q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def hours_to_float(value: Decimal | None) -> float:
    if value is None:
        return 0.0
    return float(q2(Decimal(str(value))))


def parse_hours(value: object, label: str = "hours") -> Decimal:
    """Coerce a supplied hours value to a non-negative two-place decimal."""

    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number.")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{label} must be a number.") from exc
    if not number.is_finite():
        raise ValidationError(f"{label} must be a finite number.")
    if number < 0:
        raise ValidationError(f"{label} cannot be negative.")
    try:
        hours = q2(number)
    except InvalidOperation as exc:
        raise ValidationError(f"{label} must be at most {MAX_HOURS}.") from exc
    if hours > MAX_HOURS:
        raise ValidationError(f"{label} must be at most {MAX_HOURS}.")
    return hours


def parse_optional_hours(value: object, label: str = "hours") -> Decimal | None:
    """Like ``parse_hours`` but ``None`` and blank strings count as not given."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_hours(value, label)


def parse_status(value: str | WorkStatus) -> WorkStatus:
    if isinstance(value, WorkStatus):
        return value
    parsed = WorkStatus.parse(value)
    if parsed is None:
        allowed = ", ".join(member.value for member in WorkStatus)
        raise ValidationError(f"status must be one of: {allowed}.")
    return parsed


def clean_text(value: str | None) -> str | None:
    """Trim free text; blank becomes ``None``."""

    if value is None:
        return None
    text = value.strip()
    return text or None


def ensure_employee_scope(
    repo: TimesheetRepository,
    *,
    context: RequestUserContext,
    employee_id: int,
    missing_constraint: str | None = None,
) -> Employee:
    """Load the employee and check the actor may touch their records.

    Writers pass ``missing_constraint`` so an unknown employee surfaces as a
    foreign-key conflict rather than a plain 404.
    """

    employee = repo.get_employee(employee_id)
    if employee is None and missing_constraint is not None:
        raise ConflictError(f"Employee {employee_id} does not exist.", constraint=missing_constraint)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
    if not can_access_employee(context, employee_id=employee.id, employee_team_id=employee.team_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions for this employee's records.",
        )
    return employee


def ensure_team_scope(
    repo: TimesheetRepository,
    *,
    context: RequestUserContext,
    team_id: int,
) -> Team:
    if not can_access_team(context, team_id=team_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions for this team's reports.",
        )
    team = repo.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found.")
    return team


def _constraint_name(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    message = str(exc.orig)
    for token in message.replace(":", " ").replace(",", " ").split():
        if token.startswith(("uq_", "ck_", "fk_")):
            return token
    return None


def run_in_transaction(db: Session, *, operation: str, conflict_detail: str, work: Callable[[], T]) -> T:
    """Run ``work()`` and commit as one unit; any failure rolls everything back."""

    try:
        result = work()
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        constraint = _constraint_name(exc)
        logger.warning(
            "Constraint violation during %s",
            operation,
            extra={"operation": operation, "constraint": constraint},
        )
        raise ConflictError(conflict_detail, constraint=constraint) from exc
    except (OperationalError, DBAPIError) as exc:
        db.rollback()
        logger.error("Transaction failed during %s", operation, extra={"operation": operation}, exc_info=True)
        raise TransactionFailure() from exc
    return result
