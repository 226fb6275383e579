"""
End-to-end scoring pipeline.

raw rows -> schema mapping -> component scores -> entropy weights -> SIS
         -> category aggregates -> elbow + k-means      (category level)
         -> Pareto flags -> recommendations             (record level)

``run_pipeline`` is a pure function of (rows, config, rng): it never
touches files, the network or global random state.  ``PipelineRunner``
adds the one piece of shared state a UI needs: at most one live run per
dataset key, where a newer run supersedes (never merges with) an older one.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..analytics.clustering import cluster_categories
from ..analytics.pareto import compute_pareto_flags
from ..analytics.recommender import RecommendationOutput, build_recommendations
from ..analytics.sis import aggregate_by_category, aggregate_by_key, score_records
from ..analytics.stats import compute_summary_stats
from ..config import PipelineConfig
from ..domain.models import (
    CategoryAggregate,
    ColumnQuality,
    ElbowResult,
    EntropyWeights,
    GroupAggregate,
    KMeansResult,
    RecommendationMode,
    ScoredRecord,
    SummaryStats,
)
from ..domain.schema import ingest_records

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a rendering layer needs from one run."""
    records: List[ScoredRecord]
    weights: EntropyWeights
    category_aggregates: List[CategoryAggregate]
    elbow: ElbowResult
    kmeans: KMeansResult
    pareto_flags: List[bool]
    recommendation_mode: RecommendationMode
    recommendations: RecommendationOutput
    summary: SummaryStats
    data_quality: Dict[str, ColumnQuality] = field(default_factory=dict)
    country_aggregates: List[GroupAggregate] = field(default_factory=list)
    year_aggregates: List[GroupAggregate] = field(default_factory=list)
    trend_aggregates: List[GroupAggregate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready structure (NaN -> None, enums -> values)."""
        if self.recommendation_mode == RecommendationMode.CATEGORIZED:
            recommendations: Any = self.recommendations.to_dict()
        else:
            recommendations = [r.to_dict() for r in self.recommendations]

        return {
            "records": [
                dict(r.to_dict(), is_pareto=flag)
                for r, flag in zip(self.records, self.pareto_flags)
            ],
            "entropy_weights": {
                "env": self.weights.weights[0],
                "policy": self.weights.weights[1],
                "env_entropy": self.weights.entropy[0],
                "policy_entropy": self.weights.entropy[1],
                "env_diversity": self.weights.diversity[0],
                "policy_diversity": self.weights.diversity[1],
            },
            "category_aggregates": [a.to_dict() for a in self.category_aggregates],
            "elbow": self.elbow.to_dict(),
            "recommendation_mode": self.recommendation_mode.value,
            "recommendations": recommendations,
            "summary": self.summary.to_dict(),
            "data_quality": {
                name: {"variance": q.variance, "cv": q.cv, "min": q.min, "max": q.max}
                for name, q in self.data_quality.items()
            },
            "country_aggregates": [g.to_dict() for g in self.country_aggregates],
            "year_aggregates": [g.to_dict() for g in self.year_aggregates],
            "trend_aggregates": [g.to_dict() for g in self.trend_aggregates],
        }


def run_pipeline(
    rows: Sequence[Any],
    config: Optional[PipelineConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> PipelineResult:
    """
    Run the full pipeline over one dataset.

    Args:
        rows:   Raw dict rows (any supported header spelling) or Records.
                The caller's list is never modified.
        config: Pipeline settings; defaults when None.
        rng:    Random generator for clustering.  When None a fresh
                ``np.random.default_rng(config.random_seed)`` is created,
                so runs with the same seed are reproducible.

    Returns:
        PipelineResult.  Empty input yields empty outputs, equal weights
        and best_k = 0.
    """
    cfg = config or PipelineConfig()
    generator = rng if rng is not None else np.random.default_rng(cfg.random_seed)

    records = ingest_records(list(rows))
    scoring = score_records(records, cfg.policy_indicators, cfg.sis_basis)
    scored = scoring.records

    aggregates = aggregate_by_category(scored)
    clustering = cluster_categories(
        aggregates, generator,
        max_k=cfg.max_k,
        max_iter=cfg.max_iter,
        strategy=cfg.elbow_strategy,
        n_trials=cfg.elbow_trials,
        trial_reduce=cfg.elbow_reduce,
        rate_threshold=cfg.rate_threshold,
        fixed_k=cfg.fixed_k,
        n_workers=cfg.elbow_workers,
    )

    pareto_flags = compute_pareto_flags([r.sis for r in scored], [r.price for r in scored])
    recommendations = build_recommendations(
        scored,
        priority_weight=cfg.priority_weight,
        top_n=cfg.top_n,
        mode=cfg.recommendation_mode,
        pareto_flags=pareto_flags,
    )

    logger.info(
        f"Pipeline run: {len(scored)} records, {len(aggregates)} categories, "
        f"k={clustering.elbow.best_k}, {sum(pareto_flags)} Pareto-optimal"
    )

    return PipelineResult(
        records=scored,
        weights=scoring.weights,
        category_aggregates=clustering.aggregates,
        elbow=clustering.elbow,
        kmeans=clustering.kmeans,
        pareto_flags=pareto_flags,
        recommendation_mode=cfg.recommendation_mode,
        recommendations=recommendations,
        summary=compute_summary_stats(scored),
        data_quality=scoring.data_quality,
        country_aggregates=aggregate_by_key(scored, "country"),
        year_aggregates=aggregate_by_key(scored, "year"),
        trend_aggregates=aggregate_by_key(scored, "market_trend"),
    )


@dataclass(frozen=True)
class RunToken:
    """Handle for one in-flight run of a dataset."""
    dataset_key: str
    generation: int


class PipelineRunner:
    """
    Serialises pipeline results per dataset key.

    Each run takes a token; only the token of the most recent ``begin`` for
    a key may commit.  A run that finishes after a newer one started is
    discarded, so callers always see the result of the latest request.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self._lock = threading.Lock()
        self._generations: Dict[str, int] = {}
        self._results: Dict[str, PipelineResult] = {}

    def begin(self, dataset_key: str) -> RunToken:
        """Start a run; supersedes any run still in flight for the key."""
        with self._lock:
            generation = self._generations.get(dataset_key, 0) + 1
            self._generations[dataset_key] = generation
        return RunToken(dataset_key=dataset_key, generation=generation)

    def is_current(self, token: RunToken) -> bool:
        with self._lock:
            return self._generations.get(token.dataset_key) == token.generation

    def commit(self, token: RunToken, result: PipelineResult) -> bool:
        """
        Store ``result`` as the latest for its dataset.

        Returns:
            False (result discarded) when a newer run has begun since.
        """
        with self._lock:
            if self._generations.get(token.dataset_key) != token.generation:
                logger.debug(
                    f"Discarding superseded run {token.generation} for {token.dataset_key!r}"
                )
                return False
            self._results[token.dataset_key] = result
            return True

    def run(
        self,
        dataset_key: str,
        rows: Sequence[Any],
        rng: Optional[np.random.Generator] = None,
    ) -> Optional[PipelineResult]:
        """
        begin -> run_pipeline -> commit.

        Returns:
            The result, or None when a newer run superseded this one.
        """
        token = self.begin(dataset_key)
        result = run_pipeline(rows, self.config, rng)
        return result if self.commit(token, result) else None

    def latest(self, dataset_key: str) -> Optional[PipelineResult]:
        with self._lock:
            return self._results.get(dataset_key)
