"""Project assignment endpoints and the resolved day view."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.core.clock import Clock, get_clock
from app.db.dependencies import get_db_session
from app.services.assignment_service import AssignmentFields, AssignmentStoreService
from app.services.carry_forward import CarryForwardResolver

router = APIRouter(prefix="/employees/{employee_id}/projects", tags=["projects"])


class AssignmentPayload(BaseModel):
    """Every field is optional; only the fields actually sent take part."""

    project_name: str | None = Field(default=None, max_length=255)
    planned_start_date: str | None = None
    planned_end_date: str | None = None
    actual_start_date: str | None = None
    actual_end_date: str | None = None
    status: str | None = Field(default=None, max_length=32)
    hours: Decimal | None = None
    comments: str | None = Field(default=None, max_length=2000)


def _store(db: Session) -> AssignmentStoreService:
    return AssignmentStoreService(db)


def _resolve(
    *,
    employee_id: int,
    day: str | None,
    status: str | None,
    context: RequestUserContext,
    db: Session,
    clock: Clock,
) -> dict[str, object]:
    resolver = CarryForwardResolver(db, clock)
    rows = resolver.resolve_day(context=context, employee_id=employee_id, day=day, status=status)
    return {"items": [resolver.serialize_resolved(row) for row in rows]}


@router.get("")
def get_resolved_projects(
    employee_id: int,
    day: str | None = Query(default=None),
    status: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _resolve(employee_id=employee_id, day=day, status=status, context=context, db=db, clock=clock)


@router.get("/{day}")
def get_resolved_projects_for_day(
    employee_id: int,
    day: str,
    status: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _resolve(employee_id=employee_id, day=day, status=status, context=context, db=db, clock=clock)


@router.put("/{day}/{project_id}")
def upsert_day_project(
    employee_id: int,
    day: str,
    project_id: str,
    payload: AssignmentPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _store(db)
    entry = service.upsert_day(
        context=context,
        employee_id=employee_id,
        project_id=project_id,
        day=day,
        data=AssignmentFields.from_mapping(payload.model_dump(exclude_unset=True)),
    )
    return service.serialize_assignment(entry)


@router.patch("/{day}/{project_id}")
def update_day_project(
    employee_id: int,
    day: str,
    project_id: str,
    payload: AssignmentPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _store(db)
    entry = service.update_day(
        context=context,
        employee_id=employee_id,
        project_id=project_id,
        day=day,
        patch=AssignmentFields.from_mapping(payload.model_dump(exclude_unset=True)),
    )
    return service.serialize_assignment(entry)


@router.delete("/{day}/{project_id}")
def delete_day_project(
    employee_id: int,
    day: str,
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _store(db).delete_day(context=context, employee_id=employee_id, project_id=project_id, day=day)
