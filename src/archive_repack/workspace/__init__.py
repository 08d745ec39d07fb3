"""Workspace lifecycle helpers."""

from archive_repack.workspace.manager import Workspace, acquire, release

__all__ = [
    "Workspace",
    "acquire",
    "release",
]
