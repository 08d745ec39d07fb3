"""Typer CLI entrypoint for archive_repack."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import typer
import yaml

from archive_repack.config import AppSettings, WorkspacePolicy, load_settings
from archive_repack.logging_utils import configure_logging
from archive_repack.pipeline.models import RunOptions
from archive_repack.pipeline.orchestrator import run_pipeline
from archive_repack.utils.paths import write_json_atomically

app = typer.Typer(
    add_completion=False,
    help="Extract an archive, scan its contents, and repack it on success.",
)


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    configure: bool,
    verbose: bool = False,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file)
    if configure:
        level = logging.DEBUG if verbose else getattr(logging, settings.logging.level)
        logger = configure_logging(settings.logging.log_file, level=level)
    else:
        logger = logging.getLogger("archive_repack")
    return settings, logger


def _normalize_choice(value: str | None, *, allowed: set[str], option_name: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower().replace("-", "_")
    if normalized not in allowed:
        allowed_rendered = ",".join(sorted(allowed))
        raise typer.BadParameter(f"{option_name} must be one of: {allowed_rendered}")
    return normalized


@app.command()
def repack(
    source_archive: Path | None = typer.Argument(
        None,
        help="Archive to process. Defaults to the single match of paths.source_pattern in paths.search_dir.",
        dir_okay=False,
    ),
    workspace_dir: Path | None = typer.Option(
        None,
        "--workspace-dir",
        help="Temporary extraction directory (created and removed by the run).",
        file_okay=False,
    ),
    output_archive: Path | None = typer.Option(
        None,
        "--output-archive",
        help="Archive written when the scan succeeds.",
        dir_okay=False,
    ),
    on_existing_workspace: str | None = typer.Option(
        None,
        "--on-existing-workspace",
        help="What to do when the workspace already exists: fail or force_clean.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        min=0.001,
        help="Per-step timeout in seconds; a timeout fails that step.",
    ),
    summary_file: Path | None = typer.Option(
        None,
        "--summary-file",
        help="Optional path for a JSON run summary.",
        dir_okay=False,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    show_config: bool = typer.Option(
        False,
        "--show-config",
        help="Print the effective configuration after env overrides and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log at DEBUG level, including collaborator output.",
    ),
) -> None:
    """Extract SOURCE_ARCHIVE, run the scanner over it, and repack it on success."""

    policy = _normalize_choice(
        on_existing_workspace,
        allowed={"fail", "force_clean"},
        option_name="on-existing-workspace",
    )
    settings, logger = _load_and_optionally_configure_logger(config_file, configure=not show_config, verbose=verbose)

    if show_config:
        rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
        typer.echo(rendered)
        raise typer.Exit(code=0)

    options = RunOptions(
        source_archive=source_archive,
        workspace_dir=workspace_dir,
        output_archive=output_archive,
        step_timeout_seconds=timeout,
        on_existing_workspace=cast(WorkspacePolicy | None, policy),
    )
    result = run_pipeline(settings, options=options, logger=logger)

    if summary_file is not None:
        write_json_atomically(result.summary, summary_file)
        logger.info("repack.summary_written path=%s", summary_file)

    summary = result.summary
    typer.echo(f"run_id: {result.run_id}")
    typer.echo(f"outcome: {result.outcome}")
    typer.echo(f"failed_stage: {summary['failed_stage'] or '-'}")
    typer.echo(f"exit_code: {result.exit_code}")
    typer.echo(f"source_archive: {summary['source_archive'] or '-'}")
    if result.succeeded:
        typer.echo(f"output_archive: {summary['output_archive']}")
        typer.echo(f"output_size_bytes: {summary['output_size_bytes']}")
    else:
        typer.echo(f"error: {summary['error']}", err=True)

    raise typer.Exit(code=result.exit_code)


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
