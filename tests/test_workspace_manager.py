"""
Workspace acquisition and release
Run with: pytest tests/test_workspace_manager.py -v
"""
from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from archive_repack.errors import CleanupError, WorkspaceError
from archive_repack.workspace import acquire, release


def test_acquire_creates_empty_directory(tmp_path: Path):
    target = tmp_path / "nested" / "workspace"

    workspace = acquire(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []
    assert workspace.path == target
    assert not workspace.released


def test_acquire_refuses_existing_directory(tmp_path: Path):
    target = tmp_path / "workspace"
    target.mkdir()
    (target / "stale.bin").write_bytes(b"old")

    with pytest.raises(WorkspaceError, match="already exists"):
        acquire(target)

    assert (target / "stale.bin").exists()


def test_force_clean_removes_stale_contents(tmp_path: Path):
    target = tmp_path / "workspace"
    target.mkdir()
    (target / "stale.bin").write_bytes(b"old")

    workspace = acquire(target, policy="force_clean")

    assert workspace.path.is_dir()
    assert list(target.iterdir()) == []


def test_existing_file_is_never_cleared(tmp_path: Path):
    target = tmp_path / "workspace"
    target.write_text("not a directory", encoding="utf-8")

    with pytest.raises(WorkspaceError, match="not a directory"):
        acquire(target, policy="force_clean")

    assert target.read_text(encoding="utf-8") == "not a directory"


def test_release_removes_tree_once(tmp_path: Path):
    workspace = acquire(tmp_path / "workspace")
    (workspace.path / "sub").mkdir()
    (workspace.path / "sub" / "file.txt").write_text("x", encoding="utf-8")

    release(workspace)
    release(workspace)

    assert not workspace.path.exists()
    assert workspace.released


def test_context_manager_releases_on_error(tmp_path: Path):
    target = tmp_path / "workspace"

    with pytest.raises(RuntimeError):
        with acquire(target) as workspace:
            (workspace.path / "file.txt").write_text("x", encoding="utf-8")
            raise RuntimeError("boom")

    assert not target.exists()


def test_release_failure_raises_cleanup_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    workspace = acquire(tmp_path / "workspace")

    def refuse(path, *args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(shutil, "rmtree", refuse)

    with pytest.raises(CleanupError) as excinfo:
        workspace.release()

    assert excinfo.value.exit_status == 4
    assert "denied" in str(excinfo.value)


def test_release_of_vanished_workspace_is_not_an_error(tmp_path: Path):
    workspace = acquire(tmp_path / "workspace")
    workspace.path.rmdir()

    workspace.release()

    assert workspace.released


def test_children_are_sorted(tmp_path: Path):
    workspace = acquire(tmp_path / "workspace")
    for name in ("b.png", "a.png", "c"):
        (workspace.path / name).touch()

    assert [child.name for child in workspace.children()] == ["a.png", "b.png", "c"]
