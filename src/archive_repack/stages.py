"""Pipeline stage names and process exit codes."""

from __future__ import annotations

from enum import Enum, IntEnum


class Stage(str, Enum):
    """Run states, in the order a successful run visits them."""

    START = "start"
    ACQUIRING = "acquiring"
    EXTRACTING = "extracting"
    SCANNING = "scanning"
    PACKING = "packing"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class ExitCode(IntEnum):
    """Process exit status for each terminal outcome."""

    SUCCESS = 0
    EXTRACTION_FAILED = 1
    SCAN_FAILED = 2
    PACK_FAILED = 3
    CLEANUP_FAILED = 4
    WORKSPACE_FAILED = 5
    SOURCE_SELECTION_FAILED = 6


def interrupted_exit_code(signum: int) -> int:
    """Shell convention for a process ended by signal ``signum``."""

    return 128 + signum
