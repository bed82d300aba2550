from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.db import get_db
from logger import get_logger

router = APIRouter()

logger = get_logger(__name__)


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """
    Health check endpoint, including database reachability
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return {"status": "ok", "database": "unavailable"}
    return {"status": "ok", "database": "ok"}
