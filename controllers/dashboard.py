from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.auth import get_current_user_id
from services import analytics
from services.errors import ServiceError

router = APIRouter(prefix="/dashboard")


def _run(aggregation, db: Session, user_id: Optional[int], start_date: Optional[date], end_date: Optional[date]):
    try:
        return aggregation(db, user_id, start_date, end_date)
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("/confidence-distribution")
def get_confidence_distribution(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Model confidence histogram in ten 10% buckets.
    """
    return _run(analytics.get_confidence_distribution, db, user_id, start_date, end_date)


@router.get("/life-stage-distribution")
def get_life_stage_distribution(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    return _run(analytics.get_life_stage_distribution, db, user_id, start_date, end_date)


@router.get("/metrics")
def get_dashboard_metrics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Case, image and detection totals with verification, PMI and correction figures.
    """
    return _run(analytics.get_dashboard_metrics, db, user_id, start_date, end_date)


@router.get("/verification-status")
def get_verification_status(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    return _run(analytics.get_verification_status, db, user_id, start_date, end_date)


@router.get("/correction-ratio")
def get_correction_ratio(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    return _run(analytics.get_user_correction_ratio, db, user_id, start_date, end_date)


@router.get("/model-performance")
def get_model_performance(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    return _run(analytics.get_model_performance, db, user_id, start_date, end_date)


@router.get("/pmi-distribution")
def get_pmi_distribution(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    return _run(analytics.get_pmi_distribution, db, user_id, start_date, end_date)


@router.get("/sampling-density")
def get_sampling_density(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Number of cases per range of uploaded images.
    """
    return _run(analytics.get_sampling_density, db, user_id, start_date, end_date)
