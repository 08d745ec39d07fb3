"""Error taxonomy for pipeline runs."""

from __future__ import annotations

from archive_repack.stages import ExitCode, Stage


class PipelineError(Exception):
    """Base error carrying the failing stage and the collaborator exit status."""

    stage: Stage = Stage.FAILED
    exit_status: ExitCode

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        if self.exit_code is None:
            return f"[{self.stage.value}] {self.message}"
        return f"[{self.stage.value}] {self.message} (exit_code={self.exit_code})"


class SourceSelectionError(PipelineError):
    """The source archive could not be chosen unambiguously."""

    stage = Stage.START
    exit_status = ExitCode.SOURCE_SELECTION_FAILED


class WorkspaceError(PipelineError):
    """The working directory could not be created or cleared."""

    stage = Stage.ACQUIRING
    exit_status = ExitCode.WORKSPACE_FAILED


class ExtractionError(PipelineError):
    """The archiver failed to extract the source archive."""

    stage = Stage.EXTRACTING
    exit_status = ExitCode.EXTRACTION_FAILED


class ScanError(PipelineError):
    """The scanner reported failure."""

    stage = Stage.SCANNING
    exit_status = ExitCode.SCAN_FAILED


class PackError(PipelineError):
    """The archiver failed to produce the output archive."""

    stage = Stage.PACKING
    exit_status = ExitCode.PACK_FAILED


class CleanupError(PipelineError):
    """The working directory could not be removed."""

    stage = Stage.CLEANUP
    exit_status = ExitCode.CLEANUP_FAILED


ERRORS_BY_STAGE: dict[Stage, type[PipelineError]] = {
    Stage.EXTRACTING: ExtractionError,
    Stage.SCANNING: ScanError,
    Stage.PACKING: PackError,
}
