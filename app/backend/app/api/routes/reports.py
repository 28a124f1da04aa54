"""Reporting endpoints over the daily stores."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import AppRole, RequestUserContext, get_current_user_context, require_roles
from app.core.clock import Clock, get_clock
from app.db.dependencies import get_db_session
from app.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session, clock: Clock) -> ReportingService:
    return ReportingService(db, clock)


@router.get("/employees/{employee_id}/range")
def employee_range_report(
    employee_id: int,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).employee_range(
        context=context,
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/employees/{employee_id}/days/{day}/summary")
def employee_daily_summary(
    employee_id: int,
    day: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).daily_summary(context=context, employee_id=employee_id, day=day)


@router.get("/projects/{project_id}/contributors")
def project_contributors_report(
    project_id: str,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    context: RequestUserContext = Depends(require_roles(AppRole.ADMIN, AppRole.TEAM_LEAD)),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).project_contributors(
        context=context,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/teams/{team_id}/project-hours")
def team_project_hours_report(
    team_id: int,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).team_project_hours(
        context=context,
        team_id=team_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/teams/{team_id}/utilization-summary")
def team_utilization_summary_report(
    team_id: int,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).team_utilization_summary(
        context=context,
        team_id=team_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/teams/{team_id}/workload")
def team_workload_report(
    team_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    return _service(db, clock).team_workload(context=context, team_id=team_id)
