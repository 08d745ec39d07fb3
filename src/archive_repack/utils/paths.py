"""Path and filesystem helper functions."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from uuid import uuid4


def atomic_temp_path(target_path: Path, *, keep_suffix: bool = False) -> Path:
    """Create a temp path in the target directory for atomic replacement.

    With ``keep_suffix`` the target's extension stays last, for tools that
    pick a format from the file name.
    """

    if keep_suffix:
        return target_path.parent / f".{target_path.stem}.{uuid4().hex}.tmp{target_path.suffix}"
    return target_path.parent / f".{target_path.name}.{uuid4().hex}.tmp"


def write_json_atomically(payload: dict[str, Any], output_path: Path) -> Path:
    """Write JSON payload atomically to output path."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = atomic_temp_path(output_path)
    try:
        temp_path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8")
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path


def file_fingerprint(path: Path) -> str | None:
    """Return a ``path|size|mtime_ns`` fingerprint, or None when the file is missing."""

    try:
        stats = path.stat()
    except OSError:
        return None
    return f"{path}|{stats.st_size}|{stats.st_mtime_ns}"
