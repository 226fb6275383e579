"""Analytics package: scoring, weighting, clustering, Pareto and recommendations."""

from .normalization import (
    NormalizationResult,
    normalize_min_max,
    NEUTRAL_VALUE,
)
from .components import (
    ComponentScores,
    compute_component_scores,
    rating_letter_to_score,
    yes_no_score,
    DEFAULT_POLICY_INDICATORS,
)
from .entropy import compute_entropy_weights
from .sis import (
    ScoringResult,
    score_records,
    compute_sis,
    aggregate_by_category,
    aggregate_by_key,
)
from .stats import compute_summary_stats
from .clustering import (
    ClusteringOutcome,
    run_kmeans,
    compute_inertia,
    inertia_curve,
    choose_k_by_elbow,
    select_k_geometric,
    select_k_rate_of_decrease,
    cluster_categories,
)
from .pareto import (
    compute_pareto_flags,
    compute_price_sorted_frontier,
)
from .recommender import (
    build_recommendations,
    compute_final_scores,
)

__all__ = [
    "NormalizationResult",
    "normalize_min_max",
    "NEUTRAL_VALUE",
    "ComponentScores",
    "compute_component_scores",
    "rating_letter_to_score",
    "yes_no_score",
    "DEFAULT_POLICY_INDICATORS",
    "compute_entropy_weights",
    "ScoringResult",
    "score_records",
    "compute_sis",
    "aggregate_by_category",
    "aggregate_by_key",
    "compute_summary_stats",
    "ClusteringOutcome",
    "run_kmeans",
    "compute_inertia",
    "inertia_curve",
    "choose_k_by_elbow",
    "select_k_geometric",
    "select_k_rate_of_decrease",
    "cluster_categories",
    "compute_pareto_flags",
    "compute_price_sorted_frontier",
    "build_recommendations",
    "compute_final_scores",
]
