"""Content scanner step."""

from __future__ import annotations

import logging

from archive_repack.collaborators.commands import scanner_command
from archive_repack.collaborators.process import StepResult, run_tool
from archive_repack.stages import Stage
from archive_repack.workspace.manager import Workspace

LOGGER = logging.getLogger(__name__)


def scan(
    workspace: Workspace,
    *,
    scanner: str,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> StepResult:
    """Run the scanner over the workspace; only exit status 0 is success."""

    command = scanner_command(scanner, workspace.path)
    return run_tool(Stage.SCANNING, command, timeout=timeout, logger=logger or LOGGER)
