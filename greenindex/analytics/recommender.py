"""
Recommender: rank scored records by SIS and price.

  price_norm  = min-max of price across the candidate set (missing -> 0.5)
  final_score = w * SIS + (1 - w) * (1 - price_norm)

w = 1 ranks purely by SIS, w = 0 purely by (normalised) price.

Output shapes (RecommendationMode, exactly one per deployment):

  RANKED        all records sorted by final_score desc, top N
  PARETO_FIRST  Pareto-optimal records sorted by final_score, then the
                rest sorted by final_score; concatenated, top N
  CATEGORIZED   Pareto-optimal records only, three lists each truncated
                to N independently:
                  max_sustainability  SIS desc
                  best_value          price asc
                  balanced            distance to the ideal point
                                      (SIS=1, price=0) in Pareto-local
                                      normalised space, asc

All sorts are stable: ties keep input order.
"""

import logging
import math
from typing import List, Optional, Sequence, Union

from ..domain.models import (
    CategorizedRecommendations,
    Recommendation,
    RecommendationMode,
    ScoredRecord,
)
from ..domain.validation import validate_priority_weight, validate_top_n
from .normalization import normalize_min_max
from .pareto import compute_pareto_flags

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_WEIGHT = 0.5
DEFAULT_TOP_N = 10

RecommendationOutput = Union[List[Recommendation], CategorizedRecommendations]


def _price_sort_key(rec: Recommendation) -> float:
    price = rec.price
    return price if math.isfinite(price) else math.inf


def compute_final_scores(
    records: Sequence[ScoredRecord],
    priority_weight: float = DEFAULT_PRIORITY_WEIGHT,
    pareto_flags: Optional[Sequence[bool]] = None,
) -> List[Recommendation]:
    """
    Wrap each scored record with candidate-set price_norm and final_score.

    Raises:
        ValueError: records are not ScoredRecord instances (scoring has not
                    run), the weight is outside [0, 1], or the flag count
                    does not match the record count.
    """
    ok, msg = validate_priority_weight(priority_weight)
    if not ok:
        raise ValueError(msg)
    for rec in records:
        if not isinstance(rec, ScoredRecord):
            raise ValueError(
                f"Recommender needs ScoredRecord inputs, got {type(rec).__name__}; "
                f"run score_records first"
            )
    if pareto_flags is not None and len(pareto_flags) != len(records):
        raise ValueError(
            f"Got {len(pareto_flags)} Pareto flags for {len(records)} records"
        )

    price_norm = normalize_min_max([r.price for r in records]).norm
    w = float(priority_weight)

    return [
        Recommendation(
            scored=rec,
            price_norm=pn,
            final_score=w * rec.sis + (1.0 - w) * (1.0 - pn),
            is_pareto=None if pareto_flags is None else bool(pareto_flags[i]),
        )
        for i, (rec, pn) in enumerate(zip(records, price_norm))
    ]


def _by_final_score(items: Sequence[Recommendation]) -> List[Recommendation]:
    return sorted(items, key=lambda r: -r.final_score)


def _categorize(pareto_items: List[Recommendation], top_n: int) -> CategorizedRecommendations:
    if not pareto_items:
        return CategorizedRecommendations()

    sis_n = normalize_min_max([r.sis for r in pareto_items]).norm
    price_n = normalize_min_max([r.price for r in pareto_items]).norm

    balanced_items = [
        Recommendation(
            scored=r.scored,
            price_norm=r.price_norm,
            final_score=r.final_score,
            is_pareto=r.is_pareto,
            balance_score=math.hypot(1.0 - s, p),
        )
        for r, s, p in zip(pareto_items, sis_n, price_n)
    ]

    return CategorizedRecommendations(
        max_sustainability=sorted(balanced_items, key=lambda r: -r.sis)[:top_n],
        best_value=sorted(balanced_items, key=_price_sort_key)[:top_n],
        balanced=sorted(balanced_items, key=lambda r: r.balance_score)[:top_n],
    )


def build_recommendations(
    records: Sequence[ScoredRecord],
    priority_weight: float = DEFAULT_PRIORITY_WEIGHT,
    top_n: int = DEFAULT_TOP_N,
    mode: RecommendationMode = RecommendationMode.RANKED,
    pareto_flags: Optional[Sequence[bool]] = None,
) -> RecommendationOutput:
    """
    Build recommendations in the requested output shape.

    Args:
        records:         Scored records (output of score_records)
        priority_weight: w in [0, 1]; share of final_score given to SIS
        top_n:           Maximum items per returned list
        mode:            Output shape, see module docstring
        pareto_flags:    Precomputed flags; computed here when a Pareto-aware
                         mode needs them and none are given

    Returns:
        List[Recommendation] for RANKED / PARETO_FIRST,
        CategorizedRecommendations for CATEGORIZED.
    """
    ok, msg = validate_top_n(top_n)
    if not ok:
        raise ValueError(msg)
    if not isinstance(mode, RecommendationMode):
        raise ValueError(f"mode must be a RecommendationMode, got {mode!r}")

    if pareto_flags is None and mode != RecommendationMode.RANKED and records:
        pareto_flags = compute_pareto_flags(
            [r.sis for r in records], [r.price for r in records]
        )

    items = compute_final_scores(records, priority_weight, pareto_flags)

    if mode == RecommendationMode.RANKED:
        result: RecommendationOutput = _by_final_score(items)[:top_n]
    elif mode == RecommendationMode.PARETO_FIRST:
        front = [r for r in items if r.is_pareto]
        rest = [r for r in items if not r.is_pareto]
        result = (_by_final_score(front) + _by_final_score(rest))[:top_n]
    else:
        result = _categorize([r for r in items if r.is_pareto], top_n)

    logger.debug(
        f"Built {mode.value} recommendations from {len(records)} records "
        f"(w={priority_weight}, top_n={top_n})"
    )
    return result
