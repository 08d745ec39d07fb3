"""Configuration models and loading logic."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_SETTINGS_FILE = Path("configs/settings.yaml")
SETTINGS_FILE_ENV = "ARCHIVE_REPACK_SETTINGS_FILE"

ArchiverDialect = Literal["7z", "archive-tool"]
WorkspacePolicy = Literal["fail", "force_clean"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class PathsConfig(BaseModel):
    """Filesystem locations read and written by one run."""

    search_dir: Path = Path(".")
    source_pattern: str = "*.7z"
    workspace_dir: Path = Path("./my_temp_extract_dir")
    output_archive: Path = Path("./temp_result.7z")

    def resolved(self, base_dir: Path) -> "PathsConfig":
        """Return a copy with relative paths resolved against ``base_dir``."""

        updates: dict[str, Path] = {}
        for field_name in ("search_dir", "workspace_dir", "output_archive"):
            value: Path = getattr(self, field_name)
            updates[field_name] = value if value.is_absolute() else (base_dir / value).resolve()
        return self.model_copy(update=updates)


class ToolsConfig(BaseModel):
    """External collaborator executables."""

    archiver: str = "7za"
    archiver_dialect: ArchiverDialect = "7z"
    scanner: str = "./png_header_scanner"


class ExecutionConfig(BaseModel):
    """Per-run execution policy."""

    step_timeout_seconds: float | None = Field(default=None, gt=0.0)
    on_existing_workspace: WorkspacePolicy = "fail"


class LoggingConfig(BaseModel):
    """Logging destinations and verbosity."""

    level: LogLevel = "INFO"
    log_file: Path | None = None


class AppSettings(BaseSettings):
    """Top-level application settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    paths: PathsConfig = Field(default_factory=PathsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVE_REPACK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use YAML defaults while allowing env vars to override values."""

        yaml_file = resolve_settings_file(cls._yaml_file_override)
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    def as_dict(self) -> dict[str, object]:
        """Return settings as a standard nested dictionary."""

        return self.model_dump(mode="json")


def find_project_root(start: Path | None = None) -> Path:
    """Locate the project root by traversing upward for config markers."""

    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / DEFAULT_SETTINGS_FILE).exists():
            return candidate
    return current


def resolve_settings_file(override: Path | None = None) -> Path:
    """Resolve settings file from explicit override, env var, or default."""

    chosen = override
    if chosen is None:
        env_value = os.getenv(SETTINGS_FILE_ENV)
        if env_value:
            chosen = Path(env_value)
    if chosen is None:
        chosen = DEFAULT_SETTINGS_FILE

    if not chosen.is_absolute():
        chosen = (find_project_root() / chosen).resolve()
    return chosen


def load_settings(config_file: Path | None = None, base_dir: Path | None = None) -> AppSettings:
    """Load settings with YAML defaults and environment variable overrides.

    Relative paths are resolved against ``base_dir`` (the current working
    directory by default), since the pipeline operates on the directory it is
    launched from.
    """

    settings_file = resolve_settings_file(config_file)
    AppSettings._yaml_file_override = settings_file
    try:
        settings = AppSettings()
    finally:
        AppSettings._yaml_file_override = None
    resolved_paths = settings.paths.resolved(base_dir=(base_dir or Path.cwd()).resolve())
    return settings.model_copy(update={"paths": resolved_paths})
