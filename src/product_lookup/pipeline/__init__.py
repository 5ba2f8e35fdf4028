"""Pipeline context, merge policy and runner."""

from .cancellation import CancellationToken
from .context import DEFAULT_MAX_RESULTS, PipelineContext
from .merge import merge_results
from .runner import PipelineRunner, run_pipeline

__all__ = [
    "CancellationToken",
    "DEFAULT_MAX_RESULTS",
    "PipelineContext",
    "PipelineRunner",
    "merge_results",
    "run_pipeline",
]
