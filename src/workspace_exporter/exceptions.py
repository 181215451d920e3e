from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WorkspaceExporterError(Exception):
    """Base exception for errors in the workspace_exporter package."""


@dataclass(frozen=True)
class GitCommandError(WorkspaceExporterError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class NotAGitRepositoryError(WorkspaceExporterError):
    """Raised when the specified directory is not a Git repository."""

    folder: Path
    message: str = "The specified directory is not a Git repository."


@dataclass(frozen=True)
class UnknownTemplateError(WorkspaceExporterError):
    """Raised when an export template id matches no built-in or custom template."""

    template_id: str
    available: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfigFileError(WorkspaceExporterError):
    """Raised when the project configuration file cannot be parsed."""

    file: Path
    message: str
