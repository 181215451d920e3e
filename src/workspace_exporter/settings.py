from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workspace_exporter.config import OutputFormat, TemplateDefinition
from workspace_exporter.exceptions import ConfigFileError

ENV_FILE = find_dotenv(usecwd=True)
CONFIG_FILE_NAME = "workspace-exporter.yaml"
CONFIG_ENV_VAR = "WORKSPACE_EXPORTER_CONFIG"


class ExporterConfig(BaseModel):
    """Project-level defaults read from `workspace-exporter.yaml`."""

    model_config = ConfigDict(extra="ignore")

    output_format: OutputFormat = Field(default=OutputFormat.PLAIN, description="Default output format.")
    include_file_tree: bool = Field(default=True, description="Prepend the project tree to the first segment.")
    chunk_size: int = Field(default=0, ge=0, description="Token budget per segment, 0 for a single segment.")
    global_excludes: list[str] = Field(
        default_factory=list,
        description="Exclude globs applied on top of every template.",
    )
    custom_templates: list[TemplateDefinition] = Field(
        default_factory=list,
        description="User templates, listed after the built-in ones.",
    )


class Settings(BaseModel):
    """Configuration settings for one workspace_exporter command run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    command: str = Field(default="export", description="Subcommand: export, preview or templates.")
    repo: Path = Field(default_factory=Path.cwd, description="Project root.")
    log_file: str = Field(default="", description="Log file path.")
    config: str = Field(default="", description="Explicit config file path.")

    template: str = Field(default="", description="Template id used to select files.")
    staged: bool = Field(default=False, description="Export git staged files.")
    changes: bool = Field(default=False, description="Export files changed against HEAD.")
    no_git: bool = Field(default=False, description="Do not use git ls-files.")
    include_glob: list[str] = Field(default_factory=list, description="Include glob.")
    exclude_glob: list[str] = Field(default_factory=list, description="Exclude glob.")

    format: OutputFormat | None = Field(default=None, description="Force format.")
    chunk_size: int | None = Field(default=None, ge=0, description="Token budget per segment.")
    no_tree: bool = Field(default=False, description="Do not prepend the project tree.")
    output_dir: Path | None = Field(default=None, description="Directory for written segments.")
    base_name: str = Field(default="", description="Base file name of written segments.")
    stdout: bool = Field(default=False, description="Write segments to stdout.")
    prefetch: int = Field(default=0, ge=0, description="Number of file reads kept in flight.")


def resolve_config_path(repo: Path, explicit: str = "") -> Path | None:
    """Locate the project configuration file.

    Lookup order: the explicit path, then `WORKSPACE_EXPORTER_CONFIG` (a `.env`
    file found from the working directory is loaded first), then
    `workspace-exporter.yaml` at the project root.

    Args:
        repo (Path): the project root
        explicit (str): a path given on the command line, may be empty

    Returns:
        Path | None: the config file to read, or None when there is none
    """
    if explicit:
        return Path(explicit)
    if ENV_FILE:
        load_dotenv(ENV_FILE, override=False)
    from_env = os.environ.get(CONFIG_ENV_VAR, "")
    if from_env:
        return Path(from_env)
    candidate = repo / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def load_config_file(path: Path | None) -> ExporterConfig:
    """Parse a YAML configuration file into an ExporterConfig.

    Args:
        path (Path | None): the config file; None yields the defaults

    Raises:
        ConfigFileError: if the file is missing, is not valid YAML, or does not
            validate against ExporterConfig

    Returns:
        ExporterConfig: the parsed configuration
    """
    if path is None:
        return ExporterConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigFileError(file=path, message=f"unreadable: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigFileError(file=path, message=f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigFileError(file=path, message="top-level value must be a mapping")
    try:
        return ExporterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigFileError(file=path, message=str(e)) from e
