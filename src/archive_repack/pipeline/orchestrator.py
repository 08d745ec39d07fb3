"""Extract, scan, pack and clean up, in strict order, for one source archive."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

from archive_repack.collaborators.extractor import extract
from archive_repack.collaborators.packer import pack
from archive_repack.collaborators.process import StepResult
from archive_repack.collaborators.scanner import scan
from archive_repack.config import AppSettings
from archive_repack.errors import CleanupError, PipelineError, SourceSelectionError, WorkspaceError
from archive_repack.pipeline.models import PipelineRun, ResolvedRunConfig, RunOptions, RunOutcome, RunResult
from archive_repack.pipeline.signals import held_signals, interrupt_signal_number, termination_handlers
from archive_repack.pipeline.source import select_source_archive
from archive_repack.stages import ExitCode, Stage, interrupted_exit_code
from archive_repack.utils.paths import file_fingerprint
from archive_repack.utils.time_utils import now_utc
from archive_repack.workspace.manager import Workspace, acquire

LOGGER = logging.getLogger(__name__)


def _stage_steps(
    run: PipelineRun,
    source_archive: Path,
    workspace: Workspace,
    config: ResolvedRunConfig,
    logger: logging.Logger,
) -> list[tuple[Stage, Callable[[], StepResult]]]:
    timeout = config.step_timeout_seconds
    return [
        (
            Stage.EXTRACTING,
            lambda: extract(source_archive, workspace, archiver=config.archiver, timeout=timeout, logger=logger),
        ),
        (
            Stage.SCANNING,
            lambda: scan(workspace, scanner=config.scanner, timeout=timeout, logger=logger),
        ),
        (
            Stage.PACKING,
            lambda: pack(workspace, run.output_archive, archiver=config.archiver, timeout=timeout, logger=logger),
        ),
    ]


def _run_stages(
    run: PipelineRun,
    source_archive: Path,
    workspace: Workspace,
    config: ResolvedRunConfig,
    logger: logging.Logger,
) -> PipelineError | None:
    """Run each stage once, stopping at the first failure."""

    for stage, step in _stage_steps(run, source_archive, workspace, config, logger):
        run.advance(stage, logger)
        result = step()
        run.steps.append(result)
        if not result.ok:
            error = result.to_error()
            logger.error(
                "pipeline.stage_failed run_id=%s stage=%s exit_code=%s detail=%s",
                run.run_id,
                stage.value,
                result.exit_code,
                result.detail,
            )
            return error
    return None


def _check_layout(workspace_dir: Path, source_archive: Path, output_archive: Path) -> None:
    """Refuse a workspace that would hold the source or the output archive.

    Cleanup removes the whole workspace, so either archive placed inside it
    would be lost.
    """

    for role, path in (("source", source_archive), ("output", output_archive)):
        if path == workspace_dir or workspace_dir in path.parents:
            raise WorkspaceError(f"{role} archive {path} is inside workspace {workspace_dir}")


def _build_summary(
    run: PipelineRun,
    *,
    outcome: RunOutcome,
    exit_code: int,
    failed_stage: Stage | None,
    error: PipelineError | None,
    cleanup_error: CleanupError | None,
    source_fingerprint: str | None,
    duration_seconds: float,
) -> dict[str, Any]:
    output_size: int | None = None
    if outcome == "success" and run.output_archive.exists():
        output_size = run.output_archive.stat().st_size
    return {
        "run_id": run.run_id,
        "outcome": outcome,
        "exit_code": exit_code,
        "failed_stage": failed_stage.value if failed_stage else None,
        "error": str(error) if error else None,
        "cleanup_error": str(cleanup_error) if cleanup_error else None,
        "started_ts": run.started_ts.isoformat(),
        "finished_ts": now_utc().isoformat(),
        "duration_seconds": round(duration_seconds, 3),
        "source_archive": str(run.source_archive) if run.source_archive else None,
        "source_fingerprint": source_fingerprint,
        "workspace_dir": str(run.workspace_dir),
        "workspace_exists_after_run": run.workspace_dir.exists(),
        "output_archive": str(run.output_archive),
        "output_size_bytes": output_size,
        "steps": [step.as_dict() for step in run.steps],
        "transitions": list(run.transitions),
    }


def _finish(
    run: PipelineRun,
    *,
    error: PipelineError | None,
    cleanup_error: CleanupError | None,
    interrupted_signum: int | None,
    interrupted_stage: Stage | None,
    source_fingerprint: str | None,
    started_mono: float,
    logger: logging.Logger,
) -> RunResult:
    outcome: RunOutcome
    failed_stage: Stage | None
    if interrupted_signum is not None:
        outcome = "interrupted"
        exit_code = interrupted_exit_code(interrupted_signum)
        failed_stage = interrupted_stage
    elif error is not None:
        outcome = "failed"
        exit_code = int(error.exit_status)
        failed_stage = error.stage
    elif cleanup_error is not None:
        outcome = "failed"
        exit_code = int(cleanup_error.exit_status)
        failed_stage = Stage.CLEANUP
        error = cleanup_error
    else:
        outcome = "success"
        exit_code = int(ExitCode.SUCCESS)
        failed_stage = None

    run.advance(Stage.DONE if outcome == "success" else Stage.FAILED, logger)

    if run.source_archive is not None and source_fingerprint is not None:
        if file_fingerprint(run.source_archive) != source_fingerprint:
            logger.warning("pipeline.source_modified run_id=%s path=%s", run.run_id, run.source_archive)

    summary = _build_summary(
        run,
        outcome=outcome,
        exit_code=exit_code,
        failed_stage=failed_stage,
        error=error,
        cleanup_error=cleanup_error,
        source_fingerprint=source_fingerprint,
        duration_seconds=time.monotonic() - started_mono,
    )
    if outcome == "success":
        logger.info(
            "pipeline.succeeded run_id=%s output=%s size_bytes=%s duration_s=%s",
            run.run_id,
            run.output_archive,
            summary["output_size_bytes"],
            summary["duration_seconds"],
        )
    else:
        logger.error(
            "pipeline.%s run_id=%s stage=%s exit_code=%s error=%s",
            outcome,
            run.run_id,
            failed_stage.value if failed_stage else None,
            exit_code,
            summary["error"],
        )

    return RunResult(
        run_id=run.run_id,
        outcome=outcome,
        exit_code=exit_code,
        failed_stage=failed_stage,
        error=error,
        cleanup_error=cleanup_error,
        steps=tuple(run.steps),
        summary=summary,
    )


def _execute(
    run: PipelineRun,
    config: ResolvedRunConfig,
    source: Path | None,
    logger: logging.Logger,
    started_mono: float,
) -> RunResult:
    error: PipelineError | None = None
    cleanup_error: CleanupError | None = None
    interrupted_signum: int | None = None
    interrupted_stage: Stage | None = None

    try:
        source_archive = select_source_archive(
            source,
            search_dir=config.search_dir,
            pattern=config.source_pattern,
            exclude=[run.output_archive],
            logger=logger,
        )
    except SourceSelectionError as exc:
        logger.error("pipeline.source_selection_failed run_id=%s error=%s", run.run_id, exc)
        return _finish(
            run,
            error=exc,
            cleanup_error=None,
            interrupted_signum=None,
            interrupted_stage=None,
            source_fingerprint=None,
            started_mono=started_mono,
            logger=logger,
        )

    run.source_archive = source_archive
    source_fingerprint = file_fingerprint(source_archive)
    logger.info(
        "pipeline.start run_id=%s source=%s workspace=%s output=%s",
        run.run_id,
        run.source_archive,
        run.workspace_dir,
        run.output_archive,
    )

    run.advance(Stage.ACQUIRING, logger)
    workspace: Workspace | None = None
    acquire_signals: list[int] = []
    try:
        _check_layout(run.workspace_dir, source_archive, run.output_archive)
        with held_signals(logger=logger) as acquire_signals:
            workspace = acquire(run.workspace_dir, policy=config.on_existing_workspace, logger=logger)
    except WorkspaceError as exc:
        logger.error("pipeline.workspace_failed run_id=%s error=%s", run.run_id, exc)
        error = exc
    if acquire_signals:
        interrupted_signum = acquire_signals[0]
        interrupted_stage = Stage.ACQUIRING
        logger.error(
            "pipeline.interrupted run_id=%s stage=%s signal=%s",
            run.run_id,
            Stage.ACQUIRING.value,
            interrupted_signum,
        )

    if workspace is not None:
        try:
            if interrupted_signum is None:
                error = _run_stages(run, source_archive, workspace, config, logger)
        except KeyboardInterrupt as exc:
            interrupted_signum = interrupt_signal_number(exc)
            interrupted_stage = run.stage
            logger.error(
                "pipeline.interrupted run_id=%s stage=%s signal=%s",
                run.run_id,
                run.stage.value,
                interrupted_signum,
            )
        finally:
            run.advance(Stage.CLEANUP, logger)
            with held_signals(logger=logger) as cleanup_signals:
                try:
                    workspace.release()
                except CleanupError as exc:
                    cleanup_error = exc
                    if error is not None or interrupted_signum is not None:
                        logger.error(
                            "pipeline.cleanup_failed_after_failure run_id=%s error=%s",
                            run.run_id,
                            exc,
                        )
            if cleanup_signals and interrupted_signum is None:
                interrupted_signum = cleanup_signals[0]
                interrupted_stage = Stage.CLEANUP
                logger.error(
                    "pipeline.interrupted run_id=%s stage=%s signal=%s",
                    run.run_id,
                    Stage.CLEANUP.value,
                    interrupted_signum,
                )

    return _finish(
        run,
        error=error,
        cleanup_error=cleanup_error,
        interrupted_signum=interrupted_signum,
        interrupted_stage=interrupted_stage,
        source_fingerprint=source_fingerprint,
        started_mono=started_mono,
        logger=logger,
    )


def run_pipeline(
    settings: AppSettings,
    *,
    options: RunOptions | None = None,
    logger: logging.Logger | None = None,
) -> RunResult:
    """Run extract, scan and pack for one source archive, always removing the workspace.

    The outcome is the first failure encountered; a cleanup failure after
    otherwise successful stages is itself a failure. Termination signals
    received during the run unwind it through cleanup and produce an
    ``interrupted`` result.
    """

    effective_logger = logger or LOGGER
    run_options = options or RunOptions()
    config = ResolvedRunConfig.build(settings, run_options)

    run = PipelineRun(
        run_id=f"repack-run-{uuid4().hex[:12]}",
        workspace_dir=config.workspace_dir,
        output_archive=config.output_archive,
    )
    started_mono = time.monotonic()

    with termination_handlers(logger=effective_logger):
        return _execute(run, config, run_options.source_archive, effective_logger, started_mono)
