from typing import Iterable, List, Optional

from sqlalchemy.orm import Session
from models.models import AnalysisResult, Case, Detection, Upload


def get_owned_case(db: Session, case_id: str, user_id: int) -> Optional[Case]:
    return db.query(Case).filter(
        Case.id == case_id,
        Case.user_id == user_id
    ).first()


def get_case_upload(db: Session, upload_id: str, case_id: str) -> Optional[Upload]:
    return db.query(Upload).filter(
        Upload.id == upload_id,
        Upload.case_id == case_id
    ).first()


def get_analysis_result(db: Session, case_id: str) -> Optional[AnalysisResult]:
    return db.query(AnalysisResult).filter(
        AnalysisResult.case_id == case_id
    ).first()


def get_upload_detections(db: Session, upload_id: str, include_deleted: bool = False) -> List[Detection]:
    query = db.query(Detection).filter(Detection.upload_id == upload_id)
    if not include_deleted:
        query = query.filter(Detection.deleted_at.is_(None))
    return query.order_by(Detection.created_at, Detection.id).all()


def get_case_detections(db: Session, case_id: str, include_deleted: bool = False) -> List[Detection]:
    query = (
        db.query(Detection)
        .join(Upload, Detection.upload_id == Upload.id)
        .filter(Upload.case_id == case_id)
    )
    if not include_deleted:
        query = query.filter(Detection.deleted_at.is_(None))
    return query.order_by(Detection.created_at, Detection.id).all()


def get_live_detections_by_ids(db: Session, upload_id: str, ids: Iterable[str]) -> List[Detection]:
    ids = list(ids)
    if not ids:
        return []
    return db.query(Detection).filter(
        Detection.id.in_(ids),
        Detection.upload_id == upload_id,
        Detection.deleted_at.is_(None)
    ).all()
