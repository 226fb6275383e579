"""
Pareto filtering on (maximize SIS, minimize price).

B dominates A  iff  B.sis >= A.sis and B.price <= A.price
                    and (B.sis > A.sis or B.price < A.price)

Two distinct algorithms, not interchangeable:

  compute_pareto_flags            full pairwise domination, O(N^2).  Exact.
                                  Missing SIS counts as -inf and missing
                                  price as +inf, so an incomplete record never
                                  dominates on the missing objective.

  compute_price_sorted_frontier   sort by price (then SIS descending), sweep
                                  and keep each record that beats the best SIS
                                  so far by more than SWEEP_TOLERANCE.
                                  O(N log N).  Records with a non-finite
                                  objective are skipped.  Returns indices in
                                  price order.
"""

import math
from typing import List, Sequence

from ..domain.validation import validate_same_length

SWEEP_TOLERANCE = 1e-9


def _sis_key(value: float) -> float:
    return value if value is not None and math.isfinite(value) else -math.inf


def _price_key(value: float) -> float:
    return value if value is not None and math.isfinite(value) else math.inf


def dominates(sis_b: float, price_b: float, sis_a: float, price_a: float) -> bool:
    """True when record B dominates record A."""
    return (
        sis_b >= sis_a
        and price_b <= price_a
        and (sis_b > sis_a or price_b < price_a)
    )


def compute_pareto_flags(sis: Sequence[float], prices: Sequence[float]) -> List[bool]:
    """
    Flag every record not dominated by any other record.

    Args:
        sis:    SIS per record (higher is better)
        prices: Price per record (lower is better)

    Returns:
        One bool per record, input order.  Empty input -> [].
    """
    ok, msg = validate_same_length(sis, prices)
    if not ok:
        raise ValueError(msg)

    s = [_sis_key(v) for v in sis]
    p = [_price_key(v) for v in prices]
    n = len(s)

    flags = [False] * n
    for i in range(n):
        dominated = False
        for j in range(n):
            if i == j:
                continue
            if dominates(s[j], p[j], s[i], p[i]):
                dominated = True
                break
        flags[i] = not dominated
    return flags


def compute_price_sorted_frontier(sis: Sequence[float], prices: Sequence[float]) -> List[int]:
    """
    Running-max frontier over records sorted by ascending price.

    Returns:
        Indices (into the inputs) of frontier records, cheapest first.
    """
    ok, msg = validate_same_length(sis, prices)
    if not ok:
        raise ValueError(msg)

    valid = [
        i for i in range(len(sis))
        if sis[i] is not None and prices[i] is not None
        and math.isfinite(sis[i]) and math.isfinite(prices[i])
    ]
    order = sorted(valid, key=lambda i: (prices[i], -sis[i]))

    frontier: List[int] = []
    best = -math.inf
    for i in order:
        if sis[i] > best + SWEEP_TOLERANCE:
            frontier.append(i)
            best = sis[i]
    return frontier
