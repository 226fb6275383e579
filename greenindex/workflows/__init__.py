"""Workflows package: end-to-end pipeline orchestration."""

from .pipeline import (
    PipelineResult,
    PipelineRunner,
    RunToken,
    run_pipeline,
)

__all__ = [
    "PipelineResult",
    "PipelineRunner",
    "RunToken",
    "run_pipeline",
]
