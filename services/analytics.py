"""Dashboard aggregations over a user's cases.

Every operation shares one filter: the caller must be known, only the caller's
cases count, ``start_date``/``end_date`` optionally bound ``Case.case_date``
(inclusive), and soft-deleted detections are ignored.
"""
import math
from collections import defaultdict
from datetime import date
from functools import wraps
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.queries import get_analysis_result, get_case_detections, get_owned_case
from logger import get_logger
from models.models import (
    USER_ALTERED_STATUSES,
    USER_CONFIRMED,
    USER_EDITED_CONFIRMED,
    VERIFIED_STATUSES,
)
from queries.queries import (
    query_scoped_case_pmi,
    query_scoped_case_upload_counts,
    query_scoped_detections,
)
from services.errors import AnalyticsUnavailable, CaseNotFound, Unauthenticated
from services.stages import NO_ANALYSIS, NO_DETECTIONS, STAGE_ORDER, find_oldest_stage, stage_counts

logger = get_logger(__name__)

CONFIDENCE_BUCKETS = [f"{i * 10}-{(i + 1) * 10}%" for i in range(10)]

PMI_INTERVALS = [
    ("less_than_12h", 0, 12),
    ("12_to_24h", 12, 24),
    ("24_to_36h", 24, 36),
    ("36_to_48h", 36, 48),
    ("48_to_60h", 48, 60),
    ("60_to_72h", 60, 72),
    ("more_than_72h", 72, math.inf),
]

SAMPLING_RANGES = [
    ("1_to_4", 1, 4),
    ("5_to_8", 5, 8),
    ("9_to_12", 9, 12),
    ("13_to_16", 13, 16),
    ("17_to_20", 17, 20),
]


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def normalize_confidence(value: Optional[float]) -> Optional[float]:
    """Map a stored confidence onto the 0-1 scale.

    Values above 1 were entered on the 0-100 scale and are divided by 100.
    TODO: migrate stored confidences to a single 0-1 scale and drop this rule.
    """
    if value is None or not math.isfinite(value):
        return None
    return value / 100 if value > 1 else value


def confidence_bucket(value: Optional[float]) -> Optional[int]:
    """Index into CONFIDENCE_BUCKETS, or None when the value cannot be placed."""
    normalized = normalize_confidence(value)
    if normalized is None or normalized < 0:
        return None
    index = math.floor(normalized * 10)
    if normalized == 1.0:
        index = len(CONFIDENCE_BUCKETS) - 1
    if 0 <= index < len(CONFIDENCE_BUCKETS):
        return index
    return None


def _dashboard_read(func):
    """Caller check plus persistence error mapping shared by all aggregations."""

    @wraps(func)
    def wrapper(db: Session, user_id: Optional[int], *args, **kwargs):
        if user_id is None:
            raise Unauthenticated()
        try:
            return func(db, user_id, *args, **kwargs)
        except SQLAlchemyError:
            logger.exception("Error computing %s for user %s", func.__name__, user_id)
            raise AnalyticsUnavailable()

    return wrapper


@_dashboard_read
def get_confidence_distribution(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    counts = [0] * len(CONFIDENCE_BUCKETS)
    for row in query_scoped_detections(db, user_id, start_date, end_date):
        index = confidence_bucket(row.original_confidence)
        if index is not None:
            counts[index] += 1
    return [{"name": name, "count": count} for name, count in zip(CONFIDENCE_BUCKETS, counts)]


@_dashboard_read
def get_life_stage_distribution(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    rows = query_scoped_detections(db, user_id, start_date, end_date)
    return stage_counts(row.label for row in rows)


def _group_statuses(rows, key: str) -> Dict[str, List[str]]:
    grouped = defaultdict(list)
    for row in rows:
        grouped[getattr(row, key)].append(row.status)
    return grouped


def _is_verified(statuses: List[str]) -> bool:
    return all(status in VERIFIED_STATUSES for status in statuses)


@_dashboard_read
def get_dashboard_metrics(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Dict[str, Any]:
    """Case, image and detection level summary.

    Only cases with at least one live detection take part; a case that has
    uploads but no detections is left out of every figure.
    """
    rows = query_scoped_detections(db, user_id, start_date, end_date)

    by_case = _group_statuses(rows, "case_id")
    by_upload = _group_statuses(rows, "upload_id")

    pmi_values = [
        row.pmi_hours
        for row in query_scoped_case_pmi(db, user_id, start_date, end_date)
        if row.case_id in by_case and row.pmi_hours is not None
    ]
    confidences = [row.confidence for row in rows if row.confidence is not None and math.isfinite(row.confidence)]
    corrected = [
        row for row in rows
        if row.label != row.original_label or row.status in USER_ALTERED_STATUSES
    ]

    return {
        "verified": sum(1 for statuses in by_case.values() if _is_verified(statuses)),
        "totalCases": len(by_case),
        "totalImages": len(by_upload),
        "verifiedImages": sum(1 for statuses in by_upload.values() if _is_verified(statuses)),
        "totalDetectionsCount": len(rows),
        "verifiedDetectionsCount": sum(1 for row in rows if row.status in VERIFIED_STATUSES),
        "averagePMI": _mean(pmi_values),
        "averageConfidence": _mean(confidences),
        "correctionRate": len(corrected) / len(rows) * 100 if rows else 0,
    }


def _verification_split(groups: Dict[str, List[str]]) -> Dict[str, int]:
    result = {"verified": 0, "unverified": 0, "inProgress": 0}
    for statuses in groups.values():
        verified = sum(1 for status in statuses if status in VERIFIED_STATUSES)
        if verified == len(statuses):
            result["verified"] += 1
        elif verified == 0:
            result["unverified"] += 1
        else:
            result["inProgress"] += 1
    return result


@_dashboard_read
def get_verification_status(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Dict[str, Dict[str, int]]:
    rows = query_scoped_detections(db, user_id, start_date, end_date)
    verified_detections = sum(1 for row in rows if row.status in VERIFIED_STATUSES)
    return {
        "caseVerification": _verification_split(_group_statuses(rows, "case_id")),
        "imageVerification": _verification_split(_group_statuses(rows, "upload_id")),
        "detectionVerification": {
            "verified": verified_detections,
            "unverified": len(rows) - verified_detections,
        },
    }


@_dashboard_read
def get_user_correction_ratio(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    rows = query_scoped_detections(db, user_id, start_date, end_date)
    return [
        {"name": "verified_prediction", "quantity": sum(1 for row in rows if row.status == USER_CONFIRMED)},
        {"name": "corrected_prediction", "quantity": sum(1 for row in rows if row.status == USER_EDITED_CONFIRMED)},
    ]


@_dashboard_read
def get_model_performance(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Mean model confidence per original life stage, as a percentage."""
    per_stage = defaultdict(list)
    for row in query_scoped_detections(db, user_id, start_date, end_date):
        normalized = normalize_confidence(row.original_confidence)
        if normalized is not None and row.original_label in STAGE_ORDER:
            per_stage[row.original_label].append(normalized)
    return [
        {"name": stage, "confidence": round(_mean(per_stage[stage]) * 100, 1)}
        for stage in STAGE_ORDER
    ]


@_dashboard_read
def get_pmi_distribution(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    counts = dict.fromkeys((name for name, _, _ in PMI_INTERVALS), 0)
    for row in query_scoped_case_pmi(db, user_id, start_date, end_date):
        if row.pmi_hours is None or row.pmi_hours < 0:
            continue
        for name, low, high in PMI_INTERVALS:
            if low <= row.pmi_hours < high:
                counts[name] += 1
                break
    return [{"name": name, "quantity": counts[name]} for name, _, _ in PMI_INTERVALS]


@_dashboard_read
def get_sampling_density(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    counts = dict.fromkeys((name for name, _, _ in SAMPLING_RANGES), 0)
    for row in query_scoped_case_upload_counts(db, user_id, start_date, end_date):
        for name, low, high in SAMPLING_RANGES:
            if low <= row.upload_count <= high:
                counts[name] += 1
                break
    return [{"name": name, "quantity": counts[name]} for name, _, _ in SAMPLING_RANGES]


@_dashboard_read
def get_case_stage_summary(db: Session, user_id: int, case_id: str) -> Dict[str, Any]:
    case = get_owned_case(db, case_id, user_id)
    if case is None:
        raise CaseNotFound()

    analysis = get_analysis_result(db, case_id)
    if analysis is None:
        recorded = NO_ANALYSIS
    else:
        recorded = analysis.oldest_stage_detected or NO_DETECTIONS

    current = find_oldest_stage(d.label for d in get_case_detections(db, case_id))
    return {
        "case_id": case.id,
        "recalculation_needed": bool(case.recalculation_needed),
        "recorded_oldest_stage": recorded,
        "current_oldest_stage": current if current is not None else NO_DETECTIONS,
    }
