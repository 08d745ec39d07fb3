"""Pipeline orchestration: source selection, stage sequencing, and run results."""

from archive_repack.pipeline.models import PipelineRun, ResolvedRunConfig, RunOptions, RunOutcome, RunResult
from archive_repack.pipeline.orchestrator import run_pipeline
from archive_repack.pipeline.signals import RunInterrupted, held_signals, termination_handlers
from archive_repack.pipeline.source import discover_candidates, select_source_archive

__all__ = [
    "PipelineRun",
    "ResolvedRunConfig",
    "RunOptions",
    "RunOutcome",
    "RunResult",
    "run_pipeline",
    "RunInterrupted",
    "termination_handlers",
    "held_signals",
    "discover_candidates",
    "select_source_archive",
]
