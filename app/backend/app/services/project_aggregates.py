"""Derived project fields kept in step with assignment rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from app.repositories.timesheet_repository import TimesheetRepository

logger = logging.getLogger(__name__)


class ProjectAggregateMaintainer:
    """Sole writer of ``Project.actual_start_date``.

    Must be called inside the transaction of the assignment write that
    triggered it, after that write has been flushed.
    """

    def __init__(self, repo: TimesheetRepository) -> None:
        self.repo = repo

    def recompute(self, project_id: str) -> None:
        self.repo.db.flush()
        self.repo.refresh_project_actual_start(project_id)
        logger.debug("Recomputed project actual start", extra={"project_id": project_id})

    def recompute_many(self, project_ids: Iterable[str]) -> None:
        for project_id in sorted(set(project_ids)):
            self.recompute(project_id)
