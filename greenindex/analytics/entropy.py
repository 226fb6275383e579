"""
Entropy Weight Method: objective weights for n indicator columns.

For m records and n columns x_ij:

  1. x_ij <= 0 or non-finite  ->  EPSILON (keeps ln defined)
  2. p_ij = x_ij / sum_i x_ij          (uniform 1/m when the column sums to 0)
  3. E_j  = -1/ln(m) * sum_i p_ij ln p_ij     (p_ij = 0 terms contribute 0)
  4. d_j  = 1 - E_j                    (diversity)
  5. w_j  = d_j / sum_j d_j            (equal weights when sum_j d_j = 0)

A column that barely varies across records has entropy near 1, diversity
near 0 and so receives little weight.  With m <= 1 the normalising constant
1/ln(m) is undefined; equal weights are returned directly.
"""

import logging
from typing import Sequence

import numpy as np

from ..domain.models import EntropyWeights
from ..domain.validation import validate_same_length

logger = logging.getLogger(__name__)

EPSILON = 1e-10


def _equal_weights(n_cols: int) -> EntropyWeights:
    return EntropyWeights(
        weights=tuple([1.0 / n_cols] * n_cols),
        entropy=tuple([0.0] * n_cols),
        diversity=tuple([0.0] * n_cols),
    )


def compute_entropy_weights(*columns: Sequence[float]) -> EntropyWeights:
    """
    Compute entropy weights for equal-length indicator columns.

    Args:
        *columns: One sequence per indicator (e.g. normalised environmental
                  and policy scores), each with one value per record.

    Returns:
        EntropyWeights with ``weights`` summing to 1 plus per-column entropy
        and diversity.

    Example:
        compute_entropy_weights([0.2, 0.8], [0.5, 0.5]) gives (almost) all
        the weight to the first column; the second is constant.
    """
    if not columns:
        raise ValueError("At least one indicator column is required")
    ok, msg = validate_same_length(*columns)
    if not ok:
        raise ValueError(msg)

    n_cols = len(columns)
    m = len(columns[0])
    if m <= 1:
        logger.debug(f"Entropy weights on {m} record(s): falling back to equal weights")
        return _equal_weights(n_cols)

    x = np.array(columns, dtype=float).T  # shape (m, n)
    x = np.where(np.isfinite(x) & (x > 0), x, EPSILON)

    sums = x.sum(axis=0)
    p = np.empty_like(x)
    for j in range(n_cols):
        if sums[j] == 0:
            p[:, j] = 1.0 / m
        else:
            p[:, j] = x[:, j] / sums[j]

    k = 1.0 / np.log(m)
    safe_p = np.where(p > 0, p, 1.0)
    plogp = np.where(p > 0, p * np.log(safe_p), 0.0)
    entropy = -k * plogp.sum(axis=0)

    # 1 - E can dip a hair below 0 through rounding when E == 1
    diversity = np.maximum(1.0 - entropy, 0.0)

    total = diversity.sum()
    if total > 0:
        weights = diversity / total
    else:
        logger.debug("All indicator columns have zero diversity: using equal weights")
        weights = np.full(n_cols, 1.0 / n_cols)

    return EntropyWeights(
        weights=tuple(float(w) for w in weights),
        entropy=tuple(float(e) for e in entropy),
        diversity=tuple(float(d) for d in diversity),
    )
