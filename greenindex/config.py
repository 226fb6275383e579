"""
Pipeline configuration and defaults.

Defaults live here as module constants; a settings.json file can override
any of them through ``load_pipeline_config``.  A missing or unreadable
settings file never fails a run: the defaults are used instead.
"""
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from .analytics.clustering import (
    DEFAULT_ELBOW_TRIALS,
    DEFAULT_FIXED_K,
    DEFAULT_MAX_ITER,
    DEFAULT_MAX_K,
    DEFAULT_RATE_THRESHOLD,
    DEFAULT_TRIAL_REDUCE,
    TRIAL_REDUCERS,
)
from .analytics.components import DEFAULT_POLICY_INDICATORS
from .analytics.recommender import DEFAULT_PRIORITY_WEIGHT, DEFAULT_TOP_N
from .analytics.sis import SIS_BASES, SIS_BASIS_RAW
from .domain.models import ElbowStrategy, PolicyIndicator, RecommendationMode
from .domain.validation import (
    validate_cluster_params,
    validate_finite_number,
    validate_positive_int,
    validate_priority_weight,
    validate_random_seed,
    validate_top_n,
)

logger = logging.getLogger(__name__)

# Default parameters (can be overridden via settings file)
DEFAULT_RANDOM_SEED = 42
DEFAULT_ELBOW_WORKERS = 1
DEFAULT_ELBOW_STRATEGY = ElbowStrategy.GEOMETRIC
DEFAULT_RECOMMENDATION_MODE = RecommendationMode.RANKED

SETTINGS_FILENAME = "settings.json"


@dataclass(frozen=True)
class PipelineConfig:
    """All tunables of one pipeline run - immutable."""
    policy_indicators: Tuple[PolicyIndicator, ...] = DEFAULT_POLICY_INDICATORS
    sis_basis: str = SIS_BASIS_RAW

    # Clustering
    max_k: int = DEFAULT_MAX_K
    max_iter: int = DEFAULT_MAX_ITER
    elbow_strategy: ElbowStrategy = DEFAULT_ELBOW_STRATEGY
    elbow_trials: int = DEFAULT_ELBOW_TRIALS
    elbow_reduce: str = DEFAULT_TRIAL_REDUCE
    elbow_workers: int = DEFAULT_ELBOW_WORKERS
    rate_threshold: float = DEFAULT_RATE_THRESHOLD
    fixed_k: int = DEFAULT_FIXED_K

    # Recommendations
    recommendation_mode: RecommendationMode = DEFAULT_RECOMMENDATION_MODE
    priority_weight: float = DEFAULT_PRIORITY_WEIGHT
    top_n: int = DEFAULT_TOP_N

    random_seed: int = DEFAULT_RANDOM_SEED

    def __post_init__(self):
        if not self.policy_indicators:
            raise ValueError("At least one policy indicator is required")
        if not all(isinstance(p, PolicyIndicator) for p in self.policy_indicators):
            raise ValueError("policy_indicators must contain PolicyIndicator members")
        if self.sis_basis not in SIS_BASES:
            raise ValueError(f"sis_basis must be one of {SIS_BASES}")
        ok, msg = validate_cluster_params(self.max_k, self.max_iter)
        if not ok:
            raise ValueError(msg)
        if not isinstance(self.elbow_strategy, ElbowStrategy):
            raise ValueError("elbow_strategy must be an ElbowStrategy")
        for name in ("elbow_trials", "elbow_workers", "fixed_k"):
            ok, msg = validate_positive_int(name, getattr(self, name))
            if not ok:
                raise ValueError(msg)
        if self.elbow_reduce not in TRIAL_REDUCERS:
            raise ValueError(f"elbow_reduce must be one of {TRIAL_REDUCERS}")
        ok, msg = validate_finite_number("rate_threshold", self.rate_threshold)
        if not ok:
            raise ValueError(msg)
        if not isinstance(self.recommendation_mode, RecommendationMode):
            raise ValueError("recommendation_mode must be a RecommendationMode")
        ok, msg = validate_priority_weight(self.priority_weight)
        if not ok:
            raise ValueError(msg)
        ok, msg = validate_top_n(self.top_n)
        if not ok:
            raise ValueError(msg)
        ok, msg = validate_random_seed(self.random_seed)
        if not ok:
            raise ValueError(msg)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict (enums as their string values)."""
        data = asdict(self)
        data["policy_indicators"] = [p.value for p in self.policy_indicators]
        data["elbow_strategy"] = self.elbow_strategy.value
        data["recommendation_mode"] = self.recommendation_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """
        Build a config from a settings dict.

        Unknown keys are ignored with a warning; enum fields accept their
        string values.  Invalid values raise ValueError.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown pipeline settings: {unknown}")

        kwargs = {k: v for k, v in data.items() if k in known}
        if "policy_indicators" in kwargs:
            kwargs["policy_indicators"] = tuple(
                PolicyIndicator(p) for p in kwargs["policy_indicators"]
            )
        if "elbow_strategy" in kwargs:
            kwargs["elbow_strategy"] = ElbowStrategy(kwargs["elbow_strategy"])
        if "recommendation_mode" in kwargs:
            kwargs["recommendation_mode"] = RecommendationMode(kwargs["recommendation_mode"])
        return cls(**kwargs)


def load_pipeline_config(path: Union[str, Path, None] = None) -> PipelineConfig:
    """
    Load pipeline settings from a JSON file.

    Args:
        path: settings file (defaults to ./settings.json)

    Returns:
        PipelineConfig; defaults when the file is missing, unreadable or
        holds invalid values.
    """
    settings_path = Path(path) if path is not None else Path.cwd() / SETTINGS_FILENAME
    if not settings_path.exists():
        return PipelineConfig()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            settings = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Could not read {settings_path}: {e}; using defaults")
        return PipelineConfig()

    pipeline_settings = settings.get("pipeline", settings) if isinstance(settings, dict) else {}
    if not isinstance(pipeline_settings, dict):
        logger.warning(f"Malformed pipeline settings in {settings_path}; using defaults")
        return PipelineConfig()

    try:
        return PipelineConfig.from_dict(pipeline_settings)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid pipeline settings in {settings_path}: {e}; using defaults")
        return PipelineConfig()


def save_pipeline_config(config: PipelineConfig, path: Union[str, Path]) -> bool:
    """
    Write pipeline settings under the "pipeline" key of a JSON file,
    preserving any other keys already present.

    Returns:
        True if successful, False otherwise
    """
    settings_path = Path(path)
    settings: Dict[str, Any] = {}
    if settings_path.exists():
        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                settings = loaded
        except (json.JSONDecodeError, IOError):
            pass  # Start with empty settings

    settings["pipeline"] = config.to_dict()

    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        with open(settings_path, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2)
        return True
    except IOError as e:
        logger.error(f"Could not write {settings_path}: {e}")
        return False
