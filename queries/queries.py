from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from models.models import AnalysisResult, Case, Detection, Upload, utcnow


def add_detection(
    db: Session,
    upload_id: str,
    label: str,
    confidence: Optional[float],
    x_min: float,
    y_min: float,
    x_max: float,
    y_max: float,
    status: str,
    created_by_id: int,
):
    # A new detection is its own diff baseline
    detection = Detection(
        upload_id=upload_id,
        label=label,
        original_label=label,
        confidence=confidence,
        original_confidence=confidence,
        x_min=x_min,
        y_min=y_min,
        x_max=x_max,
        y_max=y_max,
        status=status,
        created_by_id=created_by_id,
    )
    db.add(detection)
    db.flush()
    return detection


def soft_delete_detections(db: Session, upload_id: str, ids: Iterable[str], user_id: int) -> int:
    ids = list(ids)
    if not ids:
        return 0
    now = utcnow()
    return (
        db.query(Detection)
        .filter(
            Detection.id.in_(ids),
            Detection.upload_id == upload_id,
            Detection.deleted_at.is_(None),
        )
        .update(
            {
                Detection.deleted_at: now,
                Detection.updated_at: now,
                Detection.last_modified_by_id: user_id,
            },
            synchronize_session=False,
        )
    )


def flag_case_for_recalculation(db: Session, case: Case) -> None:
    case.recalculation_needed = True
    db.flush()


def _scoped_cases(query, user_id: int, start_date: Optional[date], end_date: Optional[date]):
    query = query.filter(Case.user_id == user_id)
    if start_date is not None:
        query = query.filter(Case.case_date >= datetime.combine(start_date, time.min))
    if end_date is not None:
        # inclusive of the whole end day
        query = query.filter(Case.case_date < datetime.combine(end_date + timedelta(days=1), time.min))
    return query


def query_scoped_detections(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = (
        db.query(
            Case.id.label("case_id"),
            Upload.id.label("upload_id"),
            Detection.label,
            Detection.original_label,
            Detection.confidence,
            Detection.original_confidence,
            Detection.status,
        )
        .join(Upload, Upload.case_id == Case.id)
        .join(Detection, Detection.upload_id == Upload.id)
        .filter(Detection.deleted_at.is_(None))
    )
    return _scoped_cases(query, user_id, start_date, end_date).all()


def query_scoped_case_pmi(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = (
        db.query(Case.id.label("case_id"), AnalysisResult.pmi_hours)
        .outerjoin(AnalysisResult, AnalysisResult.case_id == Case.id)
    )
    return _scoped_cases(query, user_id, start_date, end_date).all()


def query_scoped_case_upload_counts(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = (
        db.query(Case.id.label("case_id"), func.count(Upload.id).label("upload_count"))
        .outerjoin(Upload, Upload.case_id == Case.id)
    )
    return _scoped_cases(query, user_id, start_date, end_date).group_by(Case.id).all()
