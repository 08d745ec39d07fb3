"""Choose the source archive for a run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from archive_repack.errors import SourceSelectionError

LOGGER = logging.getLogger(__name__)


def discover_candidates(search_dir: Path, pattern: str, exclude: Iterable[Path] = ()) -> list[Path]:
    """Return visible files in ``search_dir`` matching ``pattern``, minus ``exclude``.

    Hidden files are skipped the way a shell glob skips them, which also keeps
    in-flight temp archives out of the match.
    """

    excluded = {path.resolve() for path in exclude}
    matches: list[Path] = []
    for candidate in sorted(search_dir.glob(pattern)):
        if candidate.name.startswith(".") or not candidate.is_file():
            continue
        if candidate.resolve() in excluded:
            continue
        matches.append(candidate.resolve())
    return matches


def select_source_archive(
    explicit: Path | None,
    *,
    search_dir: Path,
    pattern: str,
    exclude: Iterable[Path] = (),
    logger: logging.Logger | None = None,
) -> Path:
    """Return the explicit archive path, or the single glob match in ``search_dir``.

    An explicit path is returned as-is even when it does not exist; the
    extraction step reports unreadable sources. An explicit path that is one
    of ``exclude`` is rejected, since the run would overwrite it.
    """

    effective_logger = logger or LOGGER
    excluded = [path.resolve() for path in exclude]
    if explicit is not None:
        resolved = explicit.resolve()
        if resolved in excluded:
            raise SourceSelectionError(f"source archive {resolved} is also the output archive of this run")
        return resolved

    matches = discover_candidates(search_dir, pattern, excluded)
    if len(matches) != 1:
        rendered = ", ".join(path.name for path in matches) or "none"
        raise SourceSelectionError(
            f"expected exactly one match for {pattern!r} in {search_dir}, found {len(matches)}: {rendered}"
        )
    effective_logger.info("source.selected path=%s pattern=%s", matches[0], pattern)
    return matches[0]
