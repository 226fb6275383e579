"""
K-means clustering of category aggregates, with elbow-method k selection.

K-means (Lloyd iterations):
  Init    k distinct points drawn uniformly at random as centroids
  Assign  each point -> nearest centroid (Euclidean); ties -> lowest index
  Update  centroid = mean of its points; an empty cluster is re-seeded to a
          random data point
  Stop    when no assignment changes, or after max_iter iterations

  inertia = sum of squared distances from each point to its centroid

Randomness comes only from the ``numpy.random.Generator`` passed in by the
caller.  The same generator state always yields the same clustering.

Elbow method:
  Run k-means for k = 1..min(max_k, N) and record (k, inertia).  Each k gets
  its own child generator seeded from the caller's generator before any run
  starts, so sweeping on a thread pool gives the same curve as sweeping
  serially.  Each k runs n_trials times (10 by default) and keeps the min
  (or mean) inertia.

  Strategies (ElbowStrategy):
    GEOMETRIC         k whose (k, inertia) point lies furthest from the chord
                      joining the first and last points.  Ties -> smallest k.
                      Curves with <= 2 points -> last k.  Flat curve -> first k.
    RATE_OF_DECREASE  first interior k where the relative drop before k
                      exceeds the relative drop after k by more than
                      rate_threshold.  No such k -> min(2, k_max).
    FIXED             fixed_k clamped to [1, k_max].
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ..domain.models import CategoryAggregate, ElbowResult, ElbowStrategy, KMeansResult
from ..domain.validation import validate_cluster_params

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants & defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_ITER = 50
DEFAULT_MAX_K = 10
DEFAULT_FIXED_K = 2
DEFAULT_RATE_THRESHOLD = 0.0

TRIAL_REDUCE_MEAN = "mean"
TRIAL_REDUCE_MIN = "min"
TRIAL_REDUCERS = (TRIAL_REDUCE_MEAN, TRIAL_REDUCE_MIN)

# Elbow sweep: best of 10 runs per k
DEFAULT_ELBOW_TRIALS = 10
DEFAULT_TRIAL_REDUCE = TRIAL_REDUCE_MIN

_SEED_UPPER = 2 ** 32


@dataclass(frozen=True)
class ClusteringOutcome:
    """Category aggregates with clusters attached, plus how k was chosen."""
    aggregates: List[CategoryAggregate]
    elbow: ElbowResult
    kmeans: KMeansResult


# ---------------------------------------------------------------------------
# K-means
# ---------------------------------------------------------------------------

def _as_matrix(points: Sequence[Sequence[float]]) -> np.ndarray:
    if len(points) == 0:
        return np.zeros((0, 0), dtype=float)
    matrix = np.asarray(points, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"Points must be a 2-D sequence, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise ValueError("Points must be finite; normalise features before clustering")
    return matrix


def _squared_distances(x: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """(n, k) matrix of squared Euclidean distances."""
    diff = x[:, None, :] - centroids[None, :, :]
    return np.einsum("ijk,ijk->ij", diff, diff)


def compute_inertia(
    points: Sequence[Sequence[float]],
    centroids: Sequence[Sequence[float]],
    assignments: Sequence[int],
) -> float:
    """Sum of squared distances from each point to its assigned centroid."""
    x = _as_matrix(points)
    if x.shape[0] == 0:
        return 0.0
    c = np.asarray(centroids, dtype=float)
    a = np.asarray(assignments, dtype=int)
    diff = x - c[a]
    return float(np.sum(diff * diff))


def run_kmeans(
    points: Sequence[Sequence[float]],
    k: int,
    rng: np.random.Generator,
    max_iter: int = DEFAULT_MAX_ITER,
) -> KMeansResult:
    """
    Cluster ``points`` into k groups.

    Args:
        points:   N feature vectors of equal dimension (finite values).
        k:        Target cluster count; clamped to [1, N].
        rng:      Random generator used for initial and re-seeded centroids.
        max_iter: Maximum assign/update iterations.

    Returns:
        KMeansResult.  N = 0 gives an empty result with k = 0.
    """
    ok, msg = validate_cluster_params(max(int(k), 1), max_iter)
    if not ok:
        raise ValueError(msg)

    x = _as_matrix(points)
    n = x.shape[0]
    if n == 0:
        return KMeansResult(k=0, centroids=[], assignments=[], inertia=0.0,
                            iterations=0, converged=True)

    k_eff = max(1, min(int(k), n))
    if k_eff != k:
        logger.debug(f"k={k} clamped to {k_eff} for {n} points")

    init_idx = rng.choice(n, size=k_eff, replace=False)
    centroids = x[init_idx].copy()
    assignments = np.full(n, -1, dtype=int)

    converged = False
    iterations = 0
    for _ in range(max_iter):
        iterations += 1
        # argmin returns the first minimum, i.e. the lowest centroid index on ties
        new_assignments = np.argmin(_squared_distances(x, centroids), axis=1)
        if np.array_equal(new_assignments, assignments):
            converged = True
            break
        assignments = new_assignments

        for c in range(k_eff):
            members = x[assignments == c]
            if len(members):
                centroids[c] = members.mean(axis=0)
            else:
                centroids[c] = x[rng.integers(n)]
                logger.debug(f"Cluster {c} empty at iteration {iterations}: re-seeded")

    inertia = compute_inertia(x, centroids, assignments)
    return KMeansResult(
        k=k_eff,
        centroids=centroids.tolist(),
        assignments=[int(a) for a in assignments],
        inertia=inertia,
        iterations=iterations,
        converged=converged,
    )


# ---------------------------------------------------------------------------
# k selection
# ---------------------------------------------------------------------------

def select_k_geometric(curve: Sequence[Tuple[int, float]]) -> int:
    """Knee of the inertia curve by maximum distance from the end-point chord."""
    if not curve:
        return 0
    inertias = [inertia for _, inertia in curve]
    if max(inertias) - min(inertias) <= 0:
        return curve[0][0]
    if len(curve) <= 2:
        return curve[-1][0]

    x1, y1 = curve[0]
    x2, y2 = curve[-1]
    dx = x2 - x1
    dy = y2 - y1
    denom = math.hypot(dx, dy) or 1.0

    best_k = curve[0][0]
    best_dist = -math.inf
    for k, inertia in curve[1:-1]:
        dist = abs(dy * k - dx * inertia + x2 * y1 - y2 * x1) / denom
        if dist > best_dist:
            best_dist = dist
            best_k = k
    return best_k


def select_k_rate_of_decrease(
    curve: Sequence[Tuple[int, float]],
    rate_threshold: float = DEFAULT_RATE_THRESHOLD,
) -> int:
    """First k where the relative inertia drop slows by more than the threshold."""
    if not curve:
        return 0
    fallback = min(2, curve[-1][0])

    for i in range(1, len(curve) - 1):
        prev_i = curve[i - 1][1]
        cur_i = curve[i][1]
        next_i = curve[i + 1][1]
        rate = (prev_i - cur_i) / prev_i if prev_i > 0 else 0.0
        next_rate = (cur_i - next_i) / cur_i if cur_i > 0 else 0.0
        if rate - next_rate > rate_threshold:
            return curve[i][0]
    return fallback


def _sweep_inertia(
    x: np.ndarray,
    k: int,
    seed: int,
    max_iter: int,
    n_trials: int,
    trial_reduce: str,
) -> float:
    child = np.random.default_rng(seed)
    values = [run_kmeans(x, k, child, max_iter).inertia for _ in range(n_trials)]
    if trial_reduce == TRIAL_REDUCE_MIN:
        return min(values)
    return math.fsum(values) / len(values)


def inertia_curve(
    points: Sequence[Sequence[float]],
    rng: np.random.Generator,
    max_k: int = DEFAULT_MAX_K,
    max_iter: int = DEFAULT_MAX_ITER,
    n_trials: int = DEFAULT_ELBOW_TRIALS,
    trial_reduce: str = DEFAULT_TRIAL_REDUCE,
    n_workers: int = 1,
) -> List[Tuple[int, float]]:
    """
    (k, inertia) for k = 1..min(max_k, N).

    Child seeds for every k are drawn from ``rng`` up front, so the curve
    is identical whatever ``n_workers`` is.
    """
    ok, msg = validate_cluster_params(max_k, max_iter)
    if not ok:
        raise ValueError(msg)
    if n_trials < 1:
        raise ValueError(f"n_trials must be at least 1, got {n_trials}")
    if trial_reduce not in TRIAL_REDUCERS:
        raise ValueError(f"trial_reduce must be one of {TRIAL_REDUCERS}, got {trial_reduce!r}")

    x = _as_matrix(points)
    k_limit = min(max_k, x.shape[0])
    if k_limit == 0:
        return []

    ks = list(range(1, k_limit + 1))
    seeds = [int(s) for s in rng.integers(0, _SEED_UPPER, size=k_limit)]

    def _one(k_seed: Tuple[int, int]) -> float:
        k, seed = k_seed
        return _sweep_inertia(x, k, seed, max_iter, n_trials, trial_reduce)

    if n_workers > 1 and k_limit > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            inertias = list(pool.map(_one, zip(ks, seeds)))
    else:
        inertias = [_one(pair) for pair in zip(ks, seeds)]

    return list(zip(ks, inertias))


def choose_k_by_elbow(
    points: Sequence[Sequence[float]],
    rng: np.random.Generator,
    max_k: int = DEFAULT_MAX_K,
    max_iter: int = DEFAULT_MAX_ITER,
    strategy: ElbowStrategy = ElbowStrategy.GEOMETRIC,
    n_trials: int = DEFAULT_ELBOW_TRIALS,
    trial_reduce: str = DEFAULT_TRIAL_REDUCE,
    rate_threshold: float = DEFAULT_RATE_THRESHOLD,
    fixed_k: int = DEFAULT_FIXED_K,
    n_workers: int = 1,
) -> ElbowResult:
    """
    Sweep k and pick one with the configured strategy.

    Returns:
        ElbowResult; best_k is 0 only when there are no points.
    """
    curve = inertia_curve(
        points, rng,
        max_k=max_k, max_iter=max_iter,
        n_trials=n_trials, trial_reduce=trial_reduce, n_workers=n_workers,
    )
    if not curve:
        return ElbowResult(best_k=0, curve=[], strategy=strategy)

    if strategy == ElbowStrategy.GEOMETRIC:
        best_k = select_k_geometric(curve)
    elif strategy == ElbowStrategy.RATE_OF_DECREASE:
        best_k = select_k_rate_of_decrease(curve, rate_threshold)
    elif strategy == ElbowStrategy.FIXED:
        best_k = max(1, min(int(fixed_k), curve[-1][0]))
    else:
        raise ValueError(f"Unknown elbow strategy: {strategy}")

    logger.info(f"Elbow ({strategy.value}) over k=1..{curve[-1][0]}: best_k={best_k}")
    return ElbowResult(best_k=best_k, curve=curve, strategy=strategy)


# ---------------------------------------------------------------------------
# Category clustering
# ---------------------------------------------------------------------------

def cluster_categories(
    aggregates: Sequence[CategoryAggregate],
    rng: np.random.Generator,
    max_k: int = DEFAULT_MAX_K,
    max_iter: int = DEFAULT_MAX_ITER,
    strategy: ElbowStrategy = ElbowStrategy.GEOMETRIC,
    n_trials: int = DEFAULT_ELBOW_TRIALS,
    trial_reduce: str = DEFAULT_TRIAL_REDUCE,
    rate_threshold: float = DEFAULT_RATE_THRESHOLD,
    fixed_k: int = DEFAULT_FIXED_K,
    n_workers: int = 1,
) -> ClusteringOutcome:
    """
    Pick k by elbow, run a final k-means and attach cluster ids.

    Args:
        aggregates: Category aggregates, clustered on their ``.features``.
        rng:        Random generator driving the sweep and the final run.

    Returns:
        ClusteringOutcome with new aggregates (inputs are not modified).
    """
    features = [list(a.features) for a in aggregates]

    elbow = choose_k_by_elbow(
        features, rng,
        max_k=max_k, max_iter=max_iter, strategy=strategy,
        n_trials=n_trials, trial_reduce=trial_reduce,
        rate_threshold=rate_threshold, fixed_k=fixed_k, n_workers=n_workers,
    )
    result = run_kmeans(features, max(elbow.best_k, 1), rng, max_iter)

    clustered = [
        agg.with_cluster(cluster_id)
        for agg, cluster_id in zip(aggregates, result.assignments)
    ]
    return ClusteringOutcome(aggregates=clustered, elbow=elbow, kmeans=result)
