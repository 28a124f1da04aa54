"""Activity ledger endpoints: one employee, one day."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.services.activity_service import ActivityInput, ActivityLedgerService, ActivityPatch

router = APIRouter(prefix="/employees/{employee_id}/activities", tags=["activities"])


class ActivityPayload(BaseModel):
    activity: str = Field(max_length=100)
    hours: Decimal | None = None
    comments: str | None = Field(default=None, max_length=2000)


class ActivitiesReplacePayload(BaseModel):
    activities: list[ActivityPayload] = Field(default_factory=list)


class ActivityPatchPayload(BaseModel):
    activity: str | None = Field(default=None, max_length=100)
    hours: Decimal | None = None
    comments: str | None = Field(default=None, max_length=2000)


def _service(db: Session) -> ActivityLedgerService:
    return ActivityLedgerService(db)


@router.get("/{day}")
def get_day_activities(
    employee_id: int,
    day: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    items = service.get_day(context=context, employee_id=employee_id, day=day)
    return {"items": [service.serialize_activity(item) for item in items]}


@router.put("/{day}")
def replace_day_activities(
    employee_id: int,
    day: str,
    payload: ActivitiesReplacePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    items = service.replace_day(
        context=context,
        employee_id=employee_id,
        day=day,
        activities=[
            ActivityInput(activity=item.activity, hours=item.hours, comments=item.comments)
            for item in payload.activities
        ],
    )
    return {"items": [service.serialize_activity(item) for item in items]}


@router.patch("/{day}/{activity_id}")
def update_day_activity(
    employee_id: int,
    day: str,
    activity_id: int,
    payload: ActivityPatchPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.update_activity(
        context=context,
        employee_id=employee_id,
        day=day,
        activity_id=activity_id,
        patch=ActivityPatch(**payload.model_dump(exclude_unset=True)),
    )
    return service.serialize_activity(entry)


@router.delete("/{day}/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_day_activity(
    employee_id: int,
    day: str,
    activity_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_activity(context=context, employee_id=employee_id, day=day, activity_id=activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
