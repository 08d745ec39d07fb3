"""Archive extraction step."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from archive_repack.collaborators.commands import ArchiverCommands
from archive_repack.collaborators.process import StepResult, run_tool
from archive_repack.stages import Stage
from archive_repack.workspace.manager import Workspace

LOGGER = logging.getLogger(__name__)


def extract(
    source_archive: Path,
    workspace: Workspace,
    *,
    archiver: ArchiverCommands,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> StepResult:
    """Extract ``source_archive`` into the workspace.

    Partial extraction is not detected or rolled back; the archiver's own
    behavior is inherited.
    """

    effective_logger = logger or LOGGER
    if not source_archive.is_file() or not os.access(source_archive, os.R_OK):
        effective_logger.error("extract.source_unreadable path=%s", source_archive)
        return StepResult.failed(Stage.EXTRACTING, f"source archive is missing or unreadable: {source_archive}")

    command = archiver.extract(source_archive, workspace.path)
    return run_tool(Stage.EXTRACTING, command, timeout=timeout, logger=effective_logger)
