"""Descriptive statistics over scored records (mean / median / population std)."""

import math
import statistics
from typing import Dict, List, Sequence

from ..domain.models import ScoredRecord, SummaryStats

SUMMARY_FIELDS = ("sis", "carbon", "water", "waste", "price")


def _field_values(records: Sequence[ScoredRecord], name: str) -> List[float]:
    if name == "sis":
        values = [r.sis for r in records]
    else:
        values = [getattr(r.record, name) for r in records]
    return [v for v in values if math.isfinite(v)]


def compute_summary_stats(records: Sequence[ScoredRecord]) -> SummaryStats:
    """
    Summary statistics for SIS and the raw impact / price columns.

    Non-finite values are ignored; a field with no finite values reports 0
    for all three statistics.
    """
    mean: Dict[str, float] = {}
    median: Dict[str, float] = {}
    std: Dict[str, float] = {}

    for name in SUMMARY_FIELDS:
        values = _field_values(records, name)
        if not values:
            mean[name] = median[name] = std[name] = 0.0
            continue
        mu = statistics.fmean(values)
        mean[name] = mu
        median[name] = float(statistics.median(values))
        std[name] = statistics.pstdev(values, mu=mu)

    brands = {r.record.brand for r in records if r.record.brand}
    return SummaryStats(mean=mean, median=median, std=std, brand_count=len(brands))
