"""
Min-max normalisation with neutral handling of missing values.

  norm_i = (x_i - min) / range        for finite x_i
  norm_i = 0.5                        for missing / non-finite x_i

min and max are taken over finite values only.  A zero range is treated
as 1, so a constant column normalises to all zeros (never NaN).  A column
with no finite values at all normalises to all 0.5 with the sentinel
min=0, max=1.
"""

import math
from dataclasses import dataclass
from typing import Any, List, Sequence

from ..domain.schema import to_number

NEUTRAL_VALUE = 0.5


@dataclass(frozen=True)
class NormalizationResult:
    min: float
    max: float
    norm: List[float]


def _clamp(val: float, lo: float, hi: float) -> float:
    """Clamp val to [lo, hi]."""
    return max(lo, min(hi, val))


def normalize_min_max(values: Sequence[Any]) -> NormalizationResult:
    """
    Scale one column to [0, 1].

    Args:
        values: Raw column; may contain None, strings or NaN.

    Returns:
        NormalizationResult with min, max and one normalized value per input.
    """
    numbers = [to_number(v) for v in values]
    finite = [x for x in numbers if math.isfinite(x)]

    if not finite:
        return NormalizationResult(min=0.0, max=1.0, norm=[NEUTRAL_VALUE] * len(numbers))

    lo = min(finite)
    hi = max(finite)
    span = (hi - lo) or 1.0

    norm = [
        _clamp((x - lo) / span, 0.0, 1.0) if math.isfinite(x) else NEUTRAL_VALUE
        for x in numbers
    ]
    return NormalizationResult(min=lo, max=hi, norm=norm)
