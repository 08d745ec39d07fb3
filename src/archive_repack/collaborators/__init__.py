"""Wrappers around the external archiver and scanner programs."""

from archive_repack.collaborators.commands import ArchiverCommands, scanner_command
from archive_repack.collaborators.extractor import extract
from archive_repack.collaborators.packer import pack
from archive_repack.collaborators.process import StepResult, run_tool
from archive_repack.collaborators.scanner import scan

__all__ = [
    "ArchiverCommands",
    "scanner_command",
    "StepResult",
    "run_tool",
    "extract",
    "scan",
    "pack",
]
