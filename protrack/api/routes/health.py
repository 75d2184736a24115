"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from protrack.db.dependencies import get_db_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health")


@router.get("")
def health() -> dict[str, str]:
    """Process is up."""

    return {"status": "ok"}


@router.get("/ready")
def readiness(db: Session = Depends(get_db_session)) -> dict[str, str]:
    """Database answers a trivial query."""

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Readiness check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable.") from exc
    return {"status": "ready"}
