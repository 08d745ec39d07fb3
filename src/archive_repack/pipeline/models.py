"""Run options, in-flight run state, and terminal run results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from archive_repack.collaborators.commands import ArchiverCommands
from archive_repack.collaborators.process import StepResult
from archive_repack.config import AppSettings, WorkspacePolicy
from archive_repack.errors import CleanupError, PipelineError
from archive_repack.stages import Stage
from archive_repack.utils.time_utils import now_utc

RunOutcome = Literal["success", "failed", "interrupted"]


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Per-invocation overrides layered on top of settings."""

    source_archive: Path | None = None
    workspace_dir: Path | None = None
    output_archive: Path | None = None
    step_timeout_seconds: float | None = None
    on_existing_workspace: WorkspacePolicy | None = None


@dataclass(frozen=True, slots=True)
class ResolvedRunConfig:
    """Effective values for one run after merging settings and options."""

    workspace_dir: Path
    output_archive: Path
    search_dir: Path
    source_pattern: str
    archiver: ArchiverCommands
    scanner: str
    step_timeout_seconds: float | None
    on_existing_workspace: WorkspacePolicy

    @classmethod
    def build(cls, settings: AppSettings, options: RunOptions) -> "ResolvedRunConfig":
        paths = settings.paths
        timeout = options.step_timeout_seconds
        if timeout is None:
            timeout = settings.execution.step_timeout_seconds
        return cls(
            workspace_dir=(options.workspace_dir or paths.workspace_dir).resolve(),
            output_archive=(options.output_archive or paths.output_archive).resolve(),
            search_dir=paths.search_dir,
            source_pattern=paths.source_pattern,
            archiver=ArchiverCommands(
                executable=settings.tools.archiver,
                dialect=settings.tools.archiver_dialect,
            ),
            scanner=settings.tools.scanner,
            step_timeout_seconds=timeout,
            on_existing_workspace=options.on_existing_workspace or settings.execution.on_existing_workspace,
        )


@dataclass(slots=True)
class PipelineRun:
    """Mutable state of the run in progress."""

    run_id: str
    workspace_dir: Path
    output_archive: Path
    source_archive: Path | None = None
    stage: Stage = Stage.START
    started_ts: datetime = field(default_factory=now_utc)
    steps: list[StepResult] = field(default_factory=list)
    transitions: list[dict[str, str]] = field(default_factory=list)

    def advance(self, stage: Stage, logger: logging.Logger) -> None:
        """Move to ``stage`` and record the transition."""

        logger.info("pipeline.transition run_id=%s from=%s to=%s", self.run_id, self.stage.value, stage.value)
        self.transitions.append(
            {
                "from": self.stage.value,
                "to": stage.value,
                "at": now_utc().isoformat(),
            }
        )
        self.stage = stage


@dataclass(frozen=True, slots=True)
class RunResult:
    """Terminal outcome of one run."""

    run_id: str
    outcome: RunOutcome
    exit_code: int
    failed_stage: Stage | None
    error: PipelineError | None
    cleanup_error: CleanupError | None
    steps: tuple[StepResult, ...]
    summary: dict[str, Any]

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"
