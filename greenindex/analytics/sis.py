"""
Sustainability Index Score (SIS) and category aggregation.

  SIS = w_env * environmental + w_policy * policy

Weights come from the Entropy Weight Method applied to the *normalised*
environmental and policy sub-scores, once per batch, and are shared
read-only by every record.  Which variant of the sub-scores enters the
weighted sum is selected by ``sis_basis``:

  "raw"        (default) the sub-scores as averaged from component terms
  "normalized" the sub-scores after a second min-max pass across records

Either way each term is in [0,1] and the weights sum to 1, so SIS is in
[0,1].  A record's SIS depends on other records only through the shared
weights (and the batch-level min/max used by normalisation).

Category aggregation:
  - Records are grouped by category; a missing/empty key goes to "Unknown".
  - Groups are emitted in sorted key order, so the output does not depend
    on input order.  Means use math.fsum over finite values only.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from ..domain.models import (
    CategoryAggregate,
    ColumnQuality,
    EntropyWeights,
    GroupAggregate,
    PolicyIndicator,
    Record,
    ScoredRecord,
    UNKNOWN_CATEGORY,
)
from ..domain.validation import validate_weights
from .components import DEFAULT_POLICY_INDICATORS, compute_component_scores
from .entropy import compute_entropy_weights
from .normalization import _clamp, normalize_min_max

logger = logging.getLogger(__name__)

SIS_BASIS_RAW = "raw"
SIS_BASIS_NORMALIZED = "normalized"
SIS_BASES = (SIS_BASIS_RAW, SIS_BASIS_NORMALIZED)

# Secondary grouping keys supported by aggregate_by_key
GROUP_KEYS = ("country", "year", "market_trend", "certification")


@dataclass
class ScoringResult:
    """Scored batch plus the shared weight vector it was scored with."""
    records: List[ScoredRecord]
    weights: EntropyWeights
    policy_indicators: Tuple[PolicyIndicator, ...]
    sis_basis: str = SIS_BASIS_RAW
    data_quality: Dict[str, ColumnQuality] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# SIS
# ---------------------------------------------------------------------------

def compute_sis(
    subscores: Sequence[Sequence[float]],
    weights: Sequence[float],
) -> List[float]:
    """
    Weighted sum of sub-score columns, one SIS per record.

    Args:
        subscores: One column per sub-index, each with one value per record.
        weights:   One weight per column, summing to 1.

    Returns:
        List of SIS values, clamped to [0, 1] against rounding noise.
    """
    if len(subscores) != len(weights):
        raise ValueError(
            f"Got {len(subscores)} sub-score columns but {len(weights)} weights"
        )
    if not subscores:
        return []
    ok, msg = validate_weights(list(weights))
    if not ok:
        raise ValueError(msg)
    n = len(subscores[0])
    return [
        _clamp(math.fsum(w * col[i] for w, col in zip(weights, subscores)), 0.0, 1.0)
        for i in range(n)
    ]


def score_records(
    records: Sequence[Record],
    policy_indicators: Sequence[PolicyIndicator] = DEFAULT_POLICY_INDICATORS,
    sis_basis: str = SIS_BASIS_RAW,
) -> ScoringResult:
    """
    Score a batch: components -> entropy weights -> SIS.

    Args:
        records:           Canonical records
        policy_indicators: Indicators averaged into the policy sub-score
        sis_basis:         "raw" or "normalized" sub-scores in the SIS sum

    Returns:
        ScoringResult; records keep input order.
    """
    if sis_basis not in SIS_BASES:
        raise ValueError(f"sis_basis must be one of {SIS_BASES}, got {sis_basis!r}")

    components = compute_component_scores(records, policy_indicators)
    weights = compute_entropy_weights(components.environmental_norm, components.policy_norm)

    if not records:
        return ScoringResult(
            records=[],
            weights=weights,
            policy_indicators=components.policy_indicators,
            sis_basis=sis_basis,
        )

    if sis_basis == SIS_BASIS_RAW:
        basis = [components.environmental, components.policy]
    else:
        basis = [components.environmental_norm, components.policy_norm]
    sis_values = compute_sis(basis, weights.weights)

    price_norm = normalize_min_max([r.price for r in records]).norm

    logger.info(
        f"Scored {len(records)} records: w_env={weights.weights[0]:.4f} "
        f"w_policy={weights.weights[1]:.4f} "
        f"(E_env={weights.entropy[0]:.4f}, E_policy={weights.entropy[1]:.4f})"
    )

    scored = [
        ScoredRecord(
            record=rec,
            carbon_norm=components.carbon_norm[i],
            water_norm=components.water_norm[i],
            waste_norm=components.waste_norm[i],
            price_norm=price_norm[i],
            rating_score=components.rating_scores[i],
            recycling_score=components.recycling_scores[i],
            eco_manufacturing_score=components.eco_manufacturing_scores[i],
            environmental_score=components.environmental[i],
            policy_score=components.policy[i],
            environmental_score_norm=components.environmental_norm[i],
            policy_score_norm=components.policy_norm[i],
            sis=sis_values[i],
        )
        for i, rec in enumerate(records)
    ]

    return ScoringResult(
        records=scored,
        weights=weights,
        policy_indicators=components.policy_indicators,
        sis_basis=sis_basis,
        data_quality=components.data_quality,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _finite_mean(values: Iterable[float]) -> float:
    """Mean over finite values; NaN when there are none."""
    clean = [v for v in values if v is not None and math.isfinite(v)]
    if not clean:
        return math.nan
    return math.fsum(clean) / len(clean)


def _text_key(value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    return text or UNKNOWN_CATEGORY


def group_ordered(
    items: Iterable[ScoredRecord],
    key_fn: Callable[[ScoredRecord], Any],
) -> "OrderedDict[Any, List[ScoredRecord]]":
    """
    Group items by key into an OrderedDict iterated in sorted key order.

    Members keep their input order inside each group.  Items whose key is
    None are dropped.
    """
    buckets: Dict[Any, List[ScoredRecord]] = {}
    for item in items:
        key = key_fn(item)
        if key is None:
            continue
        buckets.setdefault(key, []).append(item)
    return OrderedDict((k, buckets[k]) for k in sorted(buckets))


def aggregate_by_category(records: Sequence[ScoredRecord]) -> List[CategoryAggregate]:
    """
    One CategoryAggregate per distinct category, sorted by category.

    Empty input -> empty list.
    """
    groups = group_ordered(records, lambda r: _text_key(r.record.category))

    aggregates: List[CategoryAggregate] = []
    for category, members in groups.items():
        aggregates.append(
            CategoryAggregate(
                category=category,
                count=len(members),
                mean_carbon=_finite_mean(m.record.carbon for m in members),
                mean_water=_finite_mean(m.record.water for m in members),
                mean_waste=_finite_mean(m.record.waste for m in members),
                mean_price=_finite_mean(m.record.price for m in members),
                mean_sis=_finite_mean(m.sis for m in members),
                mean_environmental=_finite_mean(m.environmental_score for m in members),
                mean_policy=_finite_mean(m.policy_score for m in members),
                mean_environmental_norm=_finite_mean(m.environmental_score_norm for m in members),
                mean_policy_norm=_finite_mean(m.policy_score_norm for m in members),
                mean_rating=_finite_mean(m.rating_score for m in members),
                mean_recycling=_finite_mean(m.recycling_score for m in members),
            )
        )

    logger.debug(f"Aggregated {len(records)} records into {len(aggregates)} categories")
    return aggregates


def aggregate_by_key(records: Sequence[ScoredRecord], key: str) -> List[GroupAggregate]:
    """
    Price / SIS means per country, year, market trend or certification.

    Year groups skip records without a year and sort numerically; text
    keys use the "Unknown" bucket for missing values.
    """
    if key not in GROUP_KEYS:
        raise ValueError(f"Unsupported grouping key {key!r}; expected one of {GROUP_KEYS}")

    if key == "year":
        key_fn = lambda r: r.record.year  # noqa: E731
    else:
        key_fn = lambda r: _text_key(getattr(r.record, key))  # noqa: E731

    groups = group_ordered(records, key_fn)
    return [
        GroupAggregate(
            key=group_key,
            count=len(members),
            mean_price=_finite_mean(m.record.price for m in members),
            mean_sis=_finite_mean(m.sis for m in members),
        )
        for group_key, members in groups.items()
    ]
