from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.queries import (
    get_analysis_result,
    get_case_detections,
    get_case_upload,
    get_live_detections_by_ids,
    get_owned_case,
    get_upload_detections,
)
from logger import get_logger
from models.models import (
    CASE_ACTIVE,
    USER_CONFIRMED,
    USER_EDITED_CONFIRMED,
    Detection,
)
from models.schemas import ChangeSet
from queries.queries import add_detection, flag_case_for_recalculation, soft_delete_detections
from services.errors import CaseNotFound, ImageNotFound, SaveFailed, Unauthorized
from services.stages import find_oldest_stage, stage_rank

logger = get_logger(__name__)


@dataclass
class ReconcileResult:
    detections: List[Detection]
    recalculation_flagged: bool = False


def transition_status(old_status: str, coordinates_changed: bool, incoming_status: str) -> str:
    """Status persisted for an edited detection.

    Confirming a detection whose box moved records both facts as
    ``user_edited_confirmed``. Every other incoming status is stored as sent,
    whatever ``old_status`` was.
    """
    if incoming_status == USER_CONFIRMED:
        return USER_EDITED_CONFIRMED if coordinates_changed else USER_CONFIRMED
    return incoming_status


def coordinates_changed(detection: Detection, edit) -> bool:
    # exact comparison, no tolerance
    return (detection.x_min, detection.y_min, detection.x_max, detection.y_max) != (
        edit.x_min,
        edit.y_min,
        edit.x_max,
        edit.y_max,
    )


def _rank_or_none(label: Optional[str]) -> Optional[int]:
    return stage_rank(label) if label is not None else None


def reconcile(
    db: Session,
    upload_id: str,
    case_id: str,
    caller_id: Optional[int],
    change_set: ChangeSet,
) -> ReconcileResult:
    """Apply a change-set to one image's detections in a single transaction.

    Deletions are soft, additions become their own baseline, modifications get
    their status from :func:`transition_status`. The case is flagged for PMI
    recalculation when the detection set changed structurally or the oldest
    stage no longer matches the last analysis.
    """
    if caller_id is None:
        raise Unauthorized()

    try:
        case = get_owned_case(db, case_id, caller_id)
        if case is None or case.status != CASE_ACTIVE:
            raise CaseNotFound()

        upload = get_case_upload(db, upload_id, case_id)
        if upload is None:
            raise ImageNotFound()

        if change_set.is_empty():
            return ReconcileResult(detections=get_upload_detections(db, upload_id))

        structural_change = False

        deleted_count = soft_delete_detections(db, upload_id, change_set.deleted, caller_id)
        if deleted_count:
            structural_change = True

        for new in change_set.added:
            add_detection(
                db,
                upload_id=upload_id,
                label=new.label,
                confidence=new.confidence,
                x_min=new.x_min,
                y_min=new.y_min,
                x_max=new.x_max,
                y_max=new.y_max,
                status=new.status,
                created_by_id=caller_id,
            )
            structural_change = True

        existing = {
            detection.id: detection
            for detection in get_live_detections_by_ids(db, upload_id, (edit.id for edit in change_set.modified))
        }
        for edit in change_set.modified:
            detection = existing.get(edit.id)
            if detection is None:
                logger.debug("Skipping edit for unknown detection %s on upload %s", edit.id, upload_id)
                continue
            if edit.label != detection.label:
                structural_change = True
            detection.status = transition_status(
                detection.status, coordinates_changed(detection, edit), edit.status
            )
            detection.label = edit.label
            detection.confidence = edit.confidence
            detection.x_min = edit.x_min
            detection.y_min = edit.y_min
            detection.x_max = edit.x_max
            detection.y_max = edit.y_max
            detection.last_modified_by_id = caller_id
        db.flush()

        oldest_stage = find_oldest_stage(d.label for d in get_case_detections(db, case_id))
        analysis = get_analysis_result(db, case_id)
        recorded_stage = analysis.oldest_stage_detected if analysis is not None else None
        stage_changed = _rank_or_none(oldest_stage) != _rank_or_none(recorded_stage)

        flagged = structural_change or stage_changed
        if flagged:
            flag_case_for_recalculation(db, case)

        detections = get_upload_detections(db, upload_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error saving detections for upload %s in case %s", upload_id, case_id)
        raise SaveFailed()

    logger.info(
        "Saved detections for upload %s: %d added, %d modified, %d deleted, recalculation=%s",
        upload_id,
        len(change_set.added),
        len(change_set.modified),
        deleted_count,
        flagged,
    )
    return ReconcileResult(detections=detections, recalculation_flagged=flagged)
