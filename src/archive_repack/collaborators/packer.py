"""Archive packing step with atomic placement of the output archive."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from archive_repack.collaborators.commands import ArchiverCommands
from archive_repack.collaborators.process import StepResult, run_tool
from archive_repack.stages import Stage
from archive_repack.utils.paths import atomic_temp_path
from archive_repack.workspace.manager import Workspace

LOGGER = logging.getLogger(__name__)


def pack(
    workspace: Workspace,
    output_archive: Path,
    *,
    archiver: ArchiverCommands,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> StepResult:
    """Compress every immediate child of the workspace into ``output_archive``.

    The archiver writes to a hidden temp file beside the destination, which is
    moved into place only when the archiver succeeded and left a non-empty
    file. The temp file is removed on every other path, so a failed or
    interrupted pack never leaves anything at ``output_archive``.
    """

    effective_logger = logger or LOGGER
    children = workspace.children()
    if not children:
        effective_logger.error("pack.workspace_empty path=%s", workspace.path)
        return StepResult.failed(Stage.PACKING, f"workspace {workspace.path} is empty; nothing to pack")

    try:
        output_archive.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return StepResult.failed(Stage.PACKING, f"cannot create output directory {output_archive.parent}: {exc}")

    temp_path = atomic_temp_path(output_archive, keep_suffix=True)
    command = archiver.compress(children, temp_path)
    try:
        result = run_tool(Stage.PACKING, command, timeout=timeout, logger=effective_logger)
        if not result.ok:
            return result

        if not temp_path.is_file() or temp_path.stat().st_size == 0:
            effective_logger.error("pack.output_missing temp_path=%s", temp_path)
            return replace(result, ok=False, detail=f"archiver reported success but wrote no output to {temp_path}")

        try:
            os.replace(temp_path, output_archive)
        except OSError as exc:
            return replace(result, ok=False, detail=f"cannot move packed archive to {output_archive}: {exc}")

        effective_logger.info(
            "pack.output_written path=%s size_bytes=%s entries=%s",
            output_archive,
            output_archive.stat().st_size,
            len(children),
        )
        return result
    finally:
        if temp_path.exists():
            temp_path.unlink()
