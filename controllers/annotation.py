from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.auth import get_current_user_id
from models.models import Detection
from models.schemas import ChangeSet
from services.errors import ServiceError
from services.event_publisher import notify_recalculation_requested
from services.reconciler import reconcile

router = APIRouter()


def serialize_detection(detection: Detection) -> dict:
    return {
        "id": detection.id,
        "upload_id": detection.upload_id,
        "label": detection.label,
        "original_label": detection.original_label,
        "confidence": detection.confidence,
        "original_confidence": detection.original_confidence,
        "x_min": detection.x_min,
        "y_min": detection.y_min,
        "x_max": detection.x_max,
        "y_max": detection.y_max,
        "status": detection.status,
        "created_at": detection.created_at,
        "updated_at": detection.updated_at,
    }


@router.post("/cases/{case_id}/uploads/{upload_id}/detections")
def save_detections(
    case_id: str,
    upload_id: str,
    change_set: ChangeSet,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Apply added, modified and deleted detections for one image of a case.
    """
    try:
        result = reconcile(db, upload_id, case_id, user_id, change_set)
    except ServiceError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
        )

    if result.recalculation_flagged:
        background_tasks.add_task(notify_recalculation_requested, case_id, user_id, upload_id)

    return {
        "success": True,
        "detections": [serialize_detection(d) for d in result.detections],
    }
