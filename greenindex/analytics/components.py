"""
Component scorer: environmental and policy sub-indices.

  environmental_score = mean(1 - norm(carbon), 1 - norm(water), 1 - norm(waste))
      impact metrics, lower is better, so each term is inverted.

  policy_score = mean(norm(indicator) for indicator in policy_indicators)
      compliance / behavioural indicators, higher is better.

Policy indicators (explicit, never inferred from the data):
  RATING            letter grade A=4, B=3, C=2, D=1, unknown=2.5, then / 4
  RECYCLING         yes-family -> 1.0, no-family -> 0.0, unknown -> 0.5
  ECO_MANUFACTURING same yes/no mapping as RECYCLING

DEFAULT_POLICY_INDICATORS is (RATING, RECYCLING).  Add ECO_MANUFACTURING
for the three-term policy score.

Both raw sub-scores and their min-max normalised variants are returned;
entropy weighting works on the normalised pair.
"""

import math
import statistics
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from ..domain.models import ColumnQuality, PolicyIndicator, Record
from .normalization import normalize_min_max

# ---------------------------------------------------------------------------
# Constants & defaults
# ---------------------------------------------------------------------------

RATING_SCALE = {"A": 4.0, "B": 3.0, "C": 2.0, "D": 1.0}
RATING_UNKNOWN = 2.5
RATING_MAX = 4.0

YES_VALUES = frozenset({"yes", "y", "true"})
NO_VALUES = frozenset({"no", "n", "false"})
YES_NO_UNKNOWN = 0.5

DEFAULT_POLICY_INDICATORS: Tuple[PolicyIndicator, ...] = (
    PolicyIndicator.RATING,
    PolicyIndicator.RECYCLING,
)

IMPACT_FIELDS = ("carbon", "water", "waste")


# ---------------------------------------------------------------------------
# Indicator mappings
# ---------------------------------------------------------------------------

def rating_letter_to_score(rating: Any) -> float:
    """Letter grade -> [0,1]: A=1.0, B=0.75, C=0.5, D=0.25, unknown=0.625."""
    letter = str(rating or "").strip().upper()
    return RATING_SCALE.get(letter, RATING_UNKNOWN) / RATING_MAX


def yes_no_score(value: Any) -> float:
    """yes/y/true -> 1.0, no/n/false -> 0.0, anything else -> 0.5."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    text = str(value or "").strip().lower()
    if text in YES_VALUES:
        return 1.0
    if text in NO_VALUES:
        return 0.0
    return YES_NO_UNKNOWN


def column_quality(values: Sequence[float]) -> ColumnQuality:
    """
    Population variance, coefficient of variation, min and max over the
    finite values of a raw column.  Empty -> all zeros.
    """
    clean = [v for v in values if math.isfinite(v)]
    if not clean:
        return ColumnQuality(variance=0.0, cv=0.0, min=0.0, max=0.0)
    mean = statistics.fmean(clean)
    variance = statistics.pvariance(clean, mu=mean)
    cv = math.sqrt(variance) / mean if mean != 0 else 0.0
    return ColumnQuality(variance=variance, cv=cv, min=min(clean), max=max(clean))


# ---------------------------------------------------------------------------
# Batch scoring
# ---------------------------------------------------------------------------

@dataclass
class ComponentScores:
    """Per-record component columns for one batch, all in input order."""
    policy_indicators: Tuple[PolicyIndicator, ...]
    carbon_norm: List[float] = field(default_factory=list)
    water_norm: List[float] = field(default_factory=list)
    waste_norm: List[float] = field(default_factory=list)
    rating_scores: List[float] = field(default_factory=list)
    recycling_scores: List[float] = field(default_factory=list)
    eco_manufacturing_scores: List[float] = field(default_factory=list)
    environmental: List[float] = field(default_factory=list)
    policy: List[float] = field(default_factory=list)
    environmental_norm: List[float] = field(default_factory=list)
    policy_norm: List[float] = field(default_factory=list)
    data_quality: Dict[str, ColumnQuality] = field(default_factory=dict)


def compute_component_scores(
    records: Sequence[Record],
    policy_indicators: Sequence[PolicyIndicator] = DEFAULT_POLICY_INDICATORS,
) -> ComponentScores:
    """
    Compute environmental and policy sub-scores for a batch of records.

    Args:
        records:           Canonical records (see domain.schema.ingest_records)
        policy_indicators: Ordered indicators averaged into the policy score;
                           must contain at least one entry.

    Returns:
        ComponentScores with raw and normalised sub-scores plus data-quality
        diagnostics for the impact columns.
    """
    indicators = tuple(policy_indicators)
    if not indicators:
        raise ValueError("At least one policy indicator is required")
    if len(set(indicators)) != len(indicators):
        raise ValueError(f"Duplicate policy indicators: {indicators}")

    if not records:
        return ComponentScores(policy_indicators=indicators)

    carbon = [r.carbon for r in records]
    water = [r.water for r in records]
    waste = [r.waste for r in records]

    carbon_n = normalize_min_max(carbon).norm
    water_n = normalize_min_max(water).norm
    waste_n = normalize_min_max(waste).norm

    rating = [rating_letter_to_score(r.rating) for r in records]
    recycling = [yes_no_score(r.recycling) for r in records]
    eco = [yes_no_score(r.eco_manufacturing) for r in records]

    indicator_columns = {
        PolicyIndicator.RATING: normalize_min_max(rating).norm,
        PolicyIndicator.RECYCLING: normalize_min_max(recycling).norm,
        PolicyIndicator.ECO_MANUFACTURING: normalize_min_max(eco).norm,
    }
    active = [indicator_columns[ind] for ind in indicators]

    env_scores = [
        ((1.0 - c) + (1.0 - w) + (1.0 - s)) / 3.0
        for c, w, s in zip(carbon_n, water_n, waste_n)
    ]
    policy_scores = [
        sum(col[i] for col in active) / len(active)
        for i in range(len(records))
    ]

    return ComponentScores(
        policy_indicators=indicators,
        carbon_norm=carbon_n,
        water_norm=water_n,
        waste_norm=waste_n,
        rating_scores=rating,
        recycling_scores=recycling,
        eco_manufacturing_scores=eco,
        environmental=env_scores,
        policy=policy_scores,
        environmental_norm=normalize_min_max(env_scores).norm,
        policy_norm=normalize_min_max(policy_scores).norm,
        data_quality={
            "carbon": column_quality(carbon),
            "water": column_quality(water),
            "waste": column_quality(waste),
        },
    )
