"""Liveness and storage readiness endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.errors import TransactionFailure
from app.db.dependencies import get_db_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Process is up; does not touch storage."""

    return {"status": "ok"}


@router.get("/health/ready")
def readiness(db: Session = Depends(get_db_session)) -> dict[str, str]:
    try:
        db.execute(text("SELECT 1"))
    except DBAPIError as exc:
        logger.warning("Storage readiness check failed", extra={"error": exc.__class__.__name__})
        raise TransactionFailure("Storage is unavailable.") from exc
    return {"status": "ready"}
