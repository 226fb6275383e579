"""
Centralized validation rules for pipeline parameters.

Data-quality problems in records never go through here (they degrade to
neutral defaults).  These checks guard caller-supplied parameters, where a
bad value is a programming error.
"""
import math
from typing import Any, Sequence, Tuple


def validate_priority_weight(weight: Any) -> Tuple[bool, str]:
    """
    Validate recommender priority weight.

    Args:
        weight: Share of the final score given to SIS (rest goes to price)

    Returns:
        (is_valid, error_message)
    """
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return False, "Priority weight must be a number"

    if not math.isfinite(weight) or weight < 0.0 or weight > 1.0:
        return False, f"Priority weight must be within [0, 1], got {weight}"

    return True, ""


def validate_top_n(top_n: Any) -> Tuple[bool, str]:
    """
    Validate number of recommendations to return.

    Returns:
        (is_valid, error_message)
    """
    if isinstance(top_n, bool) or not isinstance(top_n, int):
        return False, "top_n must be an integer"

    if top_n < 1:
        return False, f"top_n must be at least 1, got {top_n}"

    return True, ""


def validate_cluster_params(max_k: Any, max_iter: Any) -> Tuple[bool, str]:
    """
    Validate k-means / elbow sweep parameters.

    Returns:
        (is_valid, error_message)
    """
    for name, value in (("max_k", max_k), ("max_iter", max_iter)):
        if isinstance(value, bool) or not isinstance(value, int):
            return False, f"{name} must be an integer"
        if value < 1:
            return False, f"{name} must be at least 1, got {value}"

    return True, ""


def validate_weights(weights: Sequence[float], tolerance: float = 1e-9) -> Tuple[bool, str]:
    """
    Validate a weight vector: non-negative, finite, summing to 1.

    Returns:
        (is_valid, error_message)
    """
    if not weights:
        return False, "Weight vector cannot be empty"

    if any(not math.isfinite(w) or w < 0 for w in weights):
        return False, "Weights must be finite and non-negative"

    total = math.fsum(weights)
    if abs(total - 1.0) > tolerance:
        return False, f"Weights must sum to 1, got {total}"

    return True, ""


def validate_same_length(*columns: Sequence[Any]) -> Tuple[bool, str]:
    """
    Validate that parallel columns have equal length.

    Returns:
        (is_valid, error_message)
    """
    lengths = {len(c) for c in columns}
    if len(lengths) > 1:
        return False, f"Columns must have equal length, got {sorted(lengths)}"

    return True, ""


def validate_positive_int(name: str, value: Any) -> Tuple[bool, str]:
    """
    Validate a count-like parameter (trials, workers, fixed k).

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be an integer"

    if value < 1:
        return False, f"{name} must be at least 1, got {value}"

    return True, ""


def validate_random_seed(seed: Any) -> Tuple[bool, str]:
    """
    Validate a seed for numpy.random.default_rng.

    Returns:
        (is_valid, error_message)
    """
    if isinstance(seed, bool) or not isinstance(seed, int):
        return False, "random_seed must be an integer"

    if seed < 0:
        return False, f"random_seed cannot be negative, got {seed}"

    return True, ""


def validate_finite_number(name: str, value: Any) -> Tuple[bool, str]:
    """
    Validate a real-valued parameter (e.g. rate threshold).

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, f"{name} must be a number"

    if not math.isfinite(value):
        return False, f"{name} must be finite, got {value}"

    return True, ""
