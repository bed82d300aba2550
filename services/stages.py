from typing import Dict, Iterable, List, Optional

# Least to most developed
STAGE_ORDER = ("instar_1", "instar_2", "instar_3", "pupa", "adult")
STAGE_HIERARCHY: Dict[str, int] = {stage: rank for rank, stage in enumerate(STAGE_ORDER)}

FALLBACK_RANK = 0

NO_DETECTIONS = "no_detections"
NO_ANALYSIS = "no_analysis"


def stage_rank(label: Optional[str]) -> int:
    """Developmental rank of a label; unknown labels rank like ``instar_1``."""
    return STAGE_HIERARCHY.get(label, FALLBACK_RANK)


def find_oldest_stage(labels: Iterable[str]) -> Optional[str]:
    """Return the most developed label, or None when there are no labels.

    Ties keep the first label seen at the winning rank.
    """
    oldest = None
    highest = -1
    for label in labels:
        rank = stage_rank(label)
        if rank > highest:
            highest = rank
            oldest = label
    return oldest


def stage_counts(labels: Iterable[str]) -> List[Dict[str, int]]:
    counts = dict.fromkeys(STAGE_ORDER, 0)
    for label in labels:
        # exact match only; unknown labels are not folded into a bucket
        if label in counts:
            counts[label] += 1
    return [{"name": stage, "quantity": counts[stage]} for stage in STAGE_ORDER]
