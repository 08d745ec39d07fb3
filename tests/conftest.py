"""
Pytest configuration and fixtures

External collaborators are replaced by small executable Python scripts: a fake
archiver that understands both supported dialects (backed by zipfile), and
scanners with fixed behavior.
"""
from __future__ import annotations

import json
import stat
import sys
import textwrap
import zipfile
from pathlib import Path

import pytest

from archive_repack.config import AppSettings, ExecutionConfig, PathsConfig, ToolsConfig


FAKE_ARCHIVER = '''
import json
import os
import sys
import zipfile
from pathlib import Path


def record(action, argv):
    log_path = os.environ.get("FAKE_TOOL_LOG")
    if log_path:
        with open(log_path, "a", encoding="utf-8") as handle:
            handle.write(json.dumps({"tool": "archiver", "action": action, "argv": argv}) + "\\n")


def add_path(bundle, item):
    item = Path(item)
    if item.is_dir():
        for child in sorted(item.rglob("*")):
            if child.is_file():
                bundle.write(child, child.relative_to(item.parent).as_posix())
    else:
        bundle.write(item, item.name)


def do_extract(archive, output_dir):
    try:
        with zipfile.ZipFile(archive) as bundle:
            bundle.extractall(output_dir)
    except (OSError, zipfile.BadZipFile) as exc:
        print(f"cannot extract {archive}: {exc}", file=sys.stderr)
        return 2
    return 0


def do_compress(inputs, archive):
    if os.environ.get("FAKE_ARCHIVER_FAIL_COMPRESS"):
        Path(archive).write_bytes(b"partial")
        print("simulated compression failure", file=sys.stderr)
        return 2
    if os.environ.get("FAKE_ARCHIVER_SILENT_COMPRESS"):
        return 0
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as bundle:
        for item in inputs:
            add_path(bundle, item)
    return 0


def main(argv):
    if argv[0] == "x":
        record("extract", argv)
        positional = [arg for arg in argv[1:] if not arg.startswith("-")]
        output = [arg[2:] for arg in argv[1:] if arg.startswith("-o")][0]
        return do_extract(positional[0], output)
    if argv[0] == "a":
        record("compress", argv)
        positional = [arg for arg in argv[1:] if not arg.startswith("-")]
        return do_compress(positional[1:], positional[0])
    if argv[0] == "extract":
        record("extract", argv)
        return do_extract(argv[1], argv[argv.index("--output-dir") + 1])
    if argv[0] == "compress":
        record("compress", argv)
        output_index = argv.index("--output")
        return do_compress(argv[1:output_index], argv[output_index + 1])
    print(f"unknown command {argv[0]}", file=sys.stderr)
    return 7


sys.exit(main(sys.argv[1:]))
'''

SCANNER_TEMPLATE = '''
import json
import os
import sys
import time
from pathlib import Path

log_path = os.environ.get("FAKE_TOOL_LOG")
if log_path:
    files = sorted(p.name for p in Path(sys.argv[1]).rglob("*") if p.is_file())
    with open(log_path, "a", encoding="utf-8") as handle:
        handle.write(json.dumps({{"tool": "scanner", "argv": sys.argv[1:], "files": files}}) + "\\n")
{body}
'''


def write_tool(directory: Path, name: str, source: str) -> Path:
    """Write an executable Python script and return its path."""

    path = directory / name
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(source), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def make_archive(path: Path, files: dict[str, bytes]) -> Path:
    """Create a source archive understood by the fake archiver."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as bundle:
        for name, payload in files.items():
            bundle.writestr(name, payload)
    return path


def read_tool_log(path: Path) -> list[dict]:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 13


@pytest.fixture(autouse=True)
def isolated_settings_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the repository settings file and ambient env overrides out of tests."""

    monkeypatch.setenv("ARCHIVE_REPACK_SETTINGS_FILE", str(tmp_path / "no-settings.yaml"))
    monkeypatch.delenv("FAKE_ARCHIVER_FAIL_COMPRESS", raising=False)
    monkeypatch.delenv("FAKE_ARCHIVER_SILENT_COMPRESS", raising=False)


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "tools"
    directory.mkdir()
    return directory


@pytest.fixture
def tool_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "tool_calls.jsonl"
    monkeypatch.setenv("FAKE_TOOL_LOG", str(path))
    return path


@pytest.fixture
def fake_archiver(tools_dir: Path) -> Path:
    return write_tool(tools_dir, "fake_archiver", FAKE_ARCHIVER)


@pytest.fixture
def passing_scanner(tools_dir: Path) -> Path:
    return write_tool(tools_dir, "scanner_ok", SCANNER_TEMPLATE.format(body="sys.exit(0)"))


@pytest.fixture
def failing_scanner(tools_dir: Path) -> Path:
    body = 'print("bad header in image.png", file=sys.stderr)\nsys.exit(1)'
    return write_tool(tools_dir, "scanner_fail", SCANNER_TEMPLATE.format(body=body))


@pytest.fixture
def slow_scanner(tools_dir: Path) -> Path:
    return write_tool(tools_dir, "scanner_slow", SCANNER_TEMPLATE.format(body="time.sleep(30)\nsys.exit(0)"))


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "work"
    directory.mkdir()
    return directory


@pytest.fixture
def source_archive(work_dir: Path) -> Path:
    return make_archive(work_dir / "images.7z", {"image.png": PNG_BYTES})


@pytest.fixture
def settings_factory(work_dir: Path, fake_archiver: Path, passing_scanner: Path):
    """Build settings pointing at the fake collaborators inside ``work_dir``."""

    def _build(
        *,
        scanner: Path | None = None,
        archiver_dialect: str = "7z",
        step_timeout_seconds: float | None = None,
        on_existing_workspace: str = "fail",
    ) -> AppSettings:
        return AppSettings(
            paths=PathsConfig(
                search_dir=work_dir,
                source_pattern="*.7z",
                workspace_dir=work_dir / "my_temp_extract_dir",
                output_archive=work_dir / "temp_result.7z",
            ),
            tools=ToolsConfig(
                archiver=str(fake_archiver),
                archiver_dialect=archiver_dialect,
                scanner=str(scanner or passing_scanner),
            ),
            execution=ExecutionConfig(
                step_timeout_seconds=step_timeout_seconds,
                on_existing_workspace=on_existing_workspace,
            ),
        )

    return _build
