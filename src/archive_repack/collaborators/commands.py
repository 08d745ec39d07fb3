"""Command-line builders for the supported archiver dialects."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from archive_repack.config import ArchiverDialect


@dataclass(frozen=True, slots=True)
class ArchiverCommands:
    """Builds extract and compress argv lists for one archiver executable."""

    executable: str
    dialect: ArchiverDialect = "7z"

    def extract(self, archive: Path, output_dir: Path) -> list[str]:
        """Extract every entry of ``archive`` into ``output_dir``, overwriting on conflict."""

        if self.dialect == "7z":
            # -aoa: overwrite all existing files without prompting
            return [self.executable, "x", "-aoa", "-y", str(archive), f"-o{output_dir}"]
        return [
            self.executable,
            "extract",
            str(archive),
            "--output-dir",
            str(output_dir),
            "--overwrite",
        ]

    def compress(self, inputs: Sequence[Path], archive: Path) -> list[str]:
        """Compress ``inputs`` into ``archive`` at maximum compression."""

        if not inputs:
            raise ValueError("compress needs at least one input path")
        if self.dialect == "7z":
            return [self.executable, "a", "-t7z", "-mx9", "-y", str(archive), *(str(item) for item in inputs)]
        return [
            self.executable,
            "compress",
            *(str(item) for item in inputs),
            "--output",
            str(archive),
            "--compression-level",
            "max",
        ]


def scanner_command(scanner: str, directory: Path) -> list[str]:
    """Return the scanner argv: the directory is its sole argument."""

    return [scanner, str(directory)]
