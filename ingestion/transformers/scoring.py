"""
Data quality score (DQS) for salary rows.

A coarse completeness / significance proxy used to keep thin or noisy
pages out of the published set. Weights are additive and independent:

    employment > 0            0.30
    annual mean > 0           0.25
    annual median > 0         0.20
    all four percentiles      0.15
    employment >= 100         0.10
"""

from typing import Optional, Tuple
from schemas.normalized import SalaryRecord

INDEXABLE_THRESHOLD = 0.50
SIGNIFICANT_EMPLOYMENT = 100

WEIGHT_EMPLOYMENT = 0.30
WEIGHT_MEAN = 0.25
WEIGHT_MEDIAN = 0.20
WEIGHT_PERCENTILES = 0.15
WEIGHT_SIGNIFICANT = 0.10


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def calculate_dqs(
    tot_emp: Optional[float],
    a_mean: Optional[float],
    a_median: Optional[float],
    a_pct10: Optional[float],
    a_pct25: Optional[float],
    a_pct75: Optional[float],
    a_pct90: Optional[float],
) -> float:
    """Score in [0, 1], rounded to two decimals"""
    score = 0.0

    if _positive(tot_emp):
        score += WEIGHT_EMPLOYMENT
    if _positive(a_mean):
        score += WEIGHT_MEAN
    if _positive(a_median):
        score += WEIGHT_MEDIAN
    # Presence only, no positivity check on percentiles
    if all(v is not None for v in (a_pct10, a_pct25, a_pct75, a_pct90)):
        score += WEIGHT_PERCENTILES
    if tot_emp is not None and tot_emp >= SIGNIFICANT_EMPLOYMENT:
        score += WEIGHT_SIGNIFICANT

    return round(score * 100) / 100


def is_indexable(dqs: float, a_median: Optional[float]) -> bool:
    """The median gate is independent of the score"""
    return dqs >= INDEXABLE_THRESHOLD and _positive(a_median)


def score_record(record: SalaryRecord) -> Tuple[float, bool]:
    """Return (dqs, is_indexable) for a normalized record"""
    dqs = calculate_dqs(
        tot_emp=record.tot_emp,
        a_mean=record.a_mean,
        a_median=record.a_median,
        a_pct10=record.a_pct10,
        a_pct25=record.a_pct25,
        a_pct75=record.a_pct75,
        a_pct90=record.a_pct90,
    )
    return dqs, is_indexable(dqs, record.a_median)
