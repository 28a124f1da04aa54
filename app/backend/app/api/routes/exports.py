"""Export endpoints for report datasets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.core.clock import Clock, get_clock
from app.db.dependencies import get_db_session
from app.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/teams/{team_id}/utilization-summary")
def export_team_utilization_summary(
    team_id: int,
    format: str = Query(default="xlsx"),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Response:
    exported = ReportingService(db, clock).export_team_utilization(
        context=context,
        team_id=team_id,
        start_date=start_date,
        end_date=end_date,
        format_name=format,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
