"""
Domain models for green-index.

Pure data classes + value objects. No I/O, no side effects.
Deterministic and fully testable.
"""
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Bucket used for records whose category (or any grouping key) is missing.
UNKNOWN_CATEGORY = "Unknown"


class PolicyIndicator(Enum):
    """Indicators that can feed the policy sub-score (higher is better)."""
    RATING = "rating"                          # letter rating A..D scaled to [0,1]
    RECYCLING = "recycling"                    # yes/no recycling programme
    ECO_MANUFACTURING = "eco_manufacturing"    # yes/no eco-friendly manufacturing


class ElbowStrategy(Enum):
    """Rule used to pick k from an inertia curve."""
    GEOMETRIC = "geometric"                # max distance from first-last chord
    RATE_OF_DECREASE = "rate_of_decrease"  # first k where the drop rate flattens
    FIXED = "fixed"                        # configured k, clamped to the data


class RecommendationMode(Enum):
    """Output shape of the recommender (one per deployment)."""
    RANKED = "ranked"              # single list by final_score
    PARETO_FIRST = "pareto_first"  # Pareto partition first, then the rest
    CATEGORIZED = "categorized"    # three named lists from the Pareto set


@dataclass(frozen=True)
class Record:
    """
    One canonical input row (product / brand-year) - immutable.

    Numeric impact fields are NaN when missing or unparseable; categorical
    fields are plain strings (empty when missing).
    """
    category: str = UNKNOWN_CATEGORY
    country: str = ""
    year: Optional[int] = None
    brand_id: str = ""
    brand_name: str = ""

    # Impact metrics (lower is better)
    carbon: float = math.nan
    water: float = math.nan
    waste: float = math.nan

    price: float = math.nan

    # Ordinal / boolean indicators (higher is better)
    rating: str = ""
    recycling: str = ""
    eco_manufacturing: str = ""

    certification: str = ""
    market_trend: str = ""

    @property
    def brand(self) -> str:
        return self.brand_name or self.brand_id


@dataclass(frozen=True)
class ScoredRecord:
    """
    Record plus normalized fields, sub-scores and SIS.

    All ``*_norm`` and ``*_score`` values lie in [0, 1].  Missing source
    values normalize to the neutral 0.5.
    """
    record: Record

    carbon_norm: float
    water_norm: float
    waste_norm: float
    price_norm: float

    rating_score: float            # letter / 4 (unknown = 0.625)
    recycling_score: float         # 1.0 / 0.0 / 0.5
    eco_manufacturing_score: float

    environmental_score: float
    policy_score: float
    environmental_score_norm: float
    policy_score_norm: float

    sis: float

    @property
    def category(self) -> str:
        return self.record.category

    @property
    def price(self) -> float:
        return self.record.price

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict of record fields + derived fields (NaN -> None)."""
        out: Dict[str, Any] = {
            "category": self.record.category,
            "country": self.record.country,
            "year": self.record.year,
            "brand_id": self.record.brand_id,
            "brand_name": self.record.brand_name,
            "carbon": self.record.carbon,
            "water": self.record.water,
            "waste": self.record.waste,
            "price": self.record.price,
            "rating": self.record.rating,
            "recycling": self.record.recycling,
            "eco_manufacturing": self.record.eco_manufacturing,
            "certification": self.record.certification,
            "market_trend": self.record.market_trend,
            "carbon_norm": self.carbon_norm,
            "water_norm": self.water_norm,
            "waste_norm": self.waste_norm,
            "price_norm": self.price_norm,
            "rating_score": self.rating_score,
            "recycling_score": self.recycling_score,
            "eco_manufacturing_score": self.eco_manufacturing_score,
            "environmental_score": self.environmental_score,
            "policy_score": self.policy_score,
            "environmental_score_norm": self.environmental_score_norm,
            "policy_score_norm": self.policy_score_norm,
            "sis": self.sis,
        }
        return {k: _json_safe(v) for k, v in out.items()}


@dataclass(frozen=True)
class CategoryAggregate:
    """
    Per-category means over member records.

    Built fresh on every run; only ``cluster`` is attached afterwards
    (via ``with_cluster``, which returns a new object).
    """
    category: str
    count: int
    mean_carbon: float
    mean_water: float
    mean_waste: float
    mean_price: float
    mean_sis: float
    mean_environmental: float
    mean_policy: float
    mean_environmental_norm: float
    mean_policy_norm: float
    mean_rating: float
    mean_recycling: float
    cluster: Optional[int] = None

    def __post_init__(self):
        if self.count < 1:
            raise ValueError("CategoryAggregate count must be >= 1")

    @property
    def features(self) -> Tuple[float, float]:
        """Clustering feature vector (normalized env / policy means)."""
        return (self.mean_environmental_norm, self.mean_policy_norm)

    def with_cluster(self, cluster_id: int) -> "CategoryAggregate":
        return replace(self, cluster=int(cluster_id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "count": self.count,
            "mean_carbon": _json_safe(self.mean_carbon),
            "mean_water": _json_safe(self.mean_water),
            "mean_waste": _json_safe(self.mean_waste),
            "mean_price": _json_safe(self.mean_price),
            "mean_sis": _json_safe(self.mean_sis),
            "mean_environmental": _json_safe(self.mean_environmental),
            "mean_policy": _json_safe(self.mean_policy),
            "mean_environmental_norm": _json_safe(self.mean_environmental_norm),
            "mean_policy_norm": _json_safe(self.mean_policy_norm),
            "mean_rating": _json_safe(self.mean_rating),
            "mean_recycling": _json_safe(self.mean_recycling),
            "cluster": self.cluster,
        }


@dataclass(frozen=True)
class GroupAggregate:
    """Secondary grouping (country / year / market trend): price + SIS means."""
    key: Any
    count: int
    mean_price: float
    mean_sis: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "count": self.count,
            "mean_price": _json_safe(self.mean_price),
            "mean_sis": _json_safe(self.mean_sis),
        }


@dataclass(frozen=True)
class ColumnQuality:
    """Spread diagnostics for one raw impact column (finite values only)."""
    variance: float
    cv: float
    min: float
    max: float


@dataclass(frozen=True)
class EntropyWeights:
    """Entropy-weight-method output; ``weights`` sum to 1."""
    weights: Tuple[float, ...]
    entropy: Tuple[float, ...]
    diversity: Tuple[float, ...]

    def __post_init__(self):
        if not (len(self.weights) == len(self.entropy) == len(self.diversity)):
            raise ValueError("weights, entropy and diversity must have equal length")
        if any(w < 0 for w in self.weights):
            raise ValueError("weights cannot be negative")


@dataclass(frozen=True)
class KMeansResult:
    """
    Final state of one k-means run.

    ``assignments[i]`` is the cluster id in [0, k) of point i; every point
    has exactly one assignment.
    """
    k: int
    centroids: List[List[float]]
    assignments: List[int]
    inertia: float
    iterations: int
    converged: bool


@dataclass(frozen=True)
class ElbowResult:
    """Chosen k plus the full (k, inertia) curve it was picked from."""
    best_k: int
    curve: List[Tuple[int, float]]
    strategy: ElbowStrategy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_k": self.best_k,
            "strategy": self.strategy.value,
            "curve": [{"k": k, "inertia": inertia} for k, inertia in self.curve],
        }


@dataclass(frozen=True)
class Recommendation:
    """ScoredRecord augmented with ranking fields; transient per run."""
    scored: ScoredRecord
    price_norm: float
    final_score: float
    is_pareto: Optional[bool] = None
    balance_score: Optional[float] = None

    @property
    def sis(self) -> float:
        return self.scored.sis

    @property
    def price(self) -> float:
        return self.scored.price

    def to_dict(self) -> Dict[str, Any]:
        out = self.scored.to_dict()
        out["candidate_price_norm"] = _json_safe(self.price_norm)
        out["final_score"] = _json_safe(self.final_score)
        out["is_pareto"] = self.is_pareto
        out["balance_score"] = _json_safe(self.balance_score)
        return out


@dataclass(frozen=True)
class CategorizedRecommendations:
    """Three independently truncated views of the Pareto set."""
    max_sustainability: List[Recommendation] = field(default_factory=list)
    best_value: List[Recommendation] = field(default_factory=list)
    balanced: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_sustainability": [r.to_dict() for r in self.max_sustainability],
            "best_value": [r.to_dict() for r in self.best_value],
            "balanced": [r.to_dict() for r in self.balanced],
        }


@dataclass(frozen=True)
class SummaryStats:
    """Descriptive statistics over scored records."""
    mean: Dict[str, float]
    median: Dict[str, float]
    std: Dict[str, float]
    brand_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": dict(self.mean),
            "median": dict(self.median),
            "std": dict(self.std),
            "brand_count": self.brand_count,
        }


def _json_safe(value: Any) -> Any:
    """NaN / inf floats -> None so results serialize as strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
