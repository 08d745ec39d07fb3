"""Acquire and release the temporary extraction directory owned by one run."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

from archive_repack.config import WorkspacePolicy
from archive_repack.errors import CleanupError, WorkspaceError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Workspace:
    """Handle to a freshly created working directory.

    The handle is released at most once; later calls to :meth:`release` are
    no-ops. Using it as a context manager releases it on every exit path.
    """

    path: Path
    logger: logging.Logger = field(default=LOGGER, repr=False)
    released: bool = False

    def children(self) -> list[Path]:
        """Return the immediate children of the workspace in sorted order."""

        return sorted(self.path.iterdir(), key=lambda child: child.name)

    def release(self) -> None:
        """Recursively remove the workspace directory."""

        if self.released:
            return
        self.released = True
        if not self.path.exists():
            self.logger.warning("workspace.release_missing path=%s", self.path)
            return
        try:
            shutil.rmtree(self.path)
        except OSError as exc:
            self.logger.error("workspace.release_failed path=%s error=%s", self.path, exc)
            raise CleanupError(f"could not remove workspace {self.path}: {exc}") from exc
        self.logger.info("workspace.released path=%s", self.path)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def acquire(
    path: Path,
    *,
    policy: WorkspacePolicy = "fail",
    logger: logging.Logger | None = None,
) -> Workspace:
    """Create ``path`` as an empty directory and return its handle.

    With policy ``fail`` an existing path is an error, so stale contents from
    a crashed run are never reused. With ``force_clean`` an existing directory
    is removed first. A non-directory at ``path`` is always an error.
    """

    effective_logger = logger or LOGGER
    if path.exists() or path.is_symlink():
        if not path.is_dir() or path.is_symlink():
            raise WorkspaceError(f"workspace path exists and is not a directory: {path}")
        if policy != "force_clean":
            raise WorkspaceError(
                f"workspace already exists: {path}; remove it or use on_existing_workspace=force_clean"
            )
        effective_logger.warning("workspace.force_clean path=%s", path)
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise WorkspaceError(f"could not clear stale workspace {path}: {exc}") from exc

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.mkdir()
    except OSError as exc:
        raise WorkspaceError(f"could not create workspace {path}: {exc}") from exc

    effective_logger.info("workspace.acquired path=%s policy=%s", path, policy)
    return Workspace(path=path, logger=effective_logger)


def release(workspace: Workspace) -> None:
    """Remove ``workspace``; raises :class:`CleanupError` when removal fails."""

    workspace.release()
