from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.auth import get_current_user_id
from services.analytics import get_case_stage_summary
from services.errors import ServiceError

router = APIRouter()


@router.get("/cases/{case_id}/stage")
def get_case_stage(
    case_id: str,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Oldest stage recorded by the last analysis next to the current one.
    """
    try:
        return get_case_stage_summary(db, user_id, case_id)
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
