"""
workspace_exporter: bundle project files for an LLM, an archive or a review.

Overview
--------
Selected files are streamed, in a deterministic order, into one or more
export segments:

1) **text** (default): each file between
   `<<<WORKSPACE_EXPORTER_FILE_BEGIN>>>` / `<<<WORKSPACE_EXPORTER_FILE_END>>>`
   sentinel lines;
2) **markdown**: a `## File:` heading and a fenced code block per file;
3) **xml**: one `<file path="...">` element per file, CDATA-wrapped.

`--chunk-size N` caps every segment at roughly N tokens (chars / 4) without
ever splitting a file; segments are then written as `<name>_partK.<ext>`.
Binary files are replaced by a placeholder, unreadable ones by an error marker.

Usage
-----
    - Export with a template, in markdown:
        workspace-exporter export --template python_web_django_flask --format markdown

    - Staged changes only, 8k-token parts:
        workspace-exporter export --staged --chunk-size 8000

    - Token estimate for a selection:
        workspace-exporter preview --include-glob "src/**/*.py"

Defaults can be stored in `workspace-exporter.yaml` at the project root.
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from workspace_exporter import __version__
from workspace_exporter.assembler import CancellationToken, export
from workspace_exporter.config import FileIdentifier, OutputFormat
from workspace_exporter.discovery import (
    all_templates,
    apply_filters,
    apply_template,
    find_template,
    git_changed_files,
    list_files,
    make_identifiers,
)
from workspace_exporter.exceptions import WorkspaceExporterError
from workspace_exporter.logging import logger, setup_logging
from workspace_exporter.preview import build_preview, render_preview
from workspace_exporter.settings import ExporterConfig, Settings, load_config_file, resolve_config_path
from workspace_exporter.sink import FileSink, StreamSink, artifact_pattern

if TYPE_CHECKING:
    from collections.abc import Sequence

    from workspace_exporter.sink import Sink

EXIT_CANCELLED = 130
PROGRESS_LOG_EVERY = 50


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        msg = f"invalid int value: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if n < 0:
        msg = f"must be >= 0, got {n}"
        raise argparse.ArgumentTypeError(msg)
    return n


def _add_selection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--repo", type=str, default=".", help="Project root.")
    p.add_argument("--config", type=str, default="", help="Config file (default: workspace-exporter.yaml).")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--no-git", action="store_true", help="Do not use git ls-files.")
    p.add_argument("--prefetch", type=_non_negative_int, default=0, help="Number of file reads kept in flight.")

    source = p.add_mutually_exclusive_group()
    source.add_argument("--template", type=str, default="", help="Template id (see `templates`).")
    source.add_argument("--staged", action="store_true", help="Export git staged files.")
    source.add_argument("--changes", action="store_true", help="Export files changed against HEAD.")

    p.add_argument(
        "--include-glob",
        action="append",
        default=[],
        help="Include glob (repeatable).",
    )
    p.add_argument(
        "--exclude-glob",
        action="append",
        default=[],
        help="Exclude glob (repeatable).",
    )


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into Settings.

    Args:
        argv (Sequence[str] | None): arguments without the program name; None reads sys.argv

    Returns:
        Settings: the parsed settings
    """
    p = argparse.ArgumentParser(
        prog="workspace-exporter",
        description="Export project files for LLM consumption (text/markdown/xml).",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    exp = sub.add_parser("export", help="Write the export segments.")
    _add_selection_args(exp)
    exp.add_argument(
        "--format",
        type=OutputFormat,
        choices=list(OutputFormat),
        default=None,
        help="Output format (default from config, else text).",
    )
    exp.add_argument(
        "--chunk-size",
        type=_non_negative_int,
        default=None,
        help="Token budget per segment, 0 for a single segment.",
    )
    exp.add_argument("--no-tree", action="store_true", help="Do not prepend the project tree.")
    exp.add_argument("--output-dir", type=Path, default=None, help="Directory for written segments.")
    exp.add_argument("--base-name", type=str, default="", help="Base file name of written segments.")
    exp.add_argument("--stdout", action="store_true", help="Write segments to stdout.")

    prev = sub.add_parser("preview", help="Show per-file token estimates.")
    _add_selection_args(prev)

    tpl = sub.add_parser("templates", help="List available templates.")
    tpl.add_argument("--repo", type=str, default=".", help="Project root.")
    tpl.add_argument("--config", type=str, default="", help="Config file.")
    tpl.add_argument("--log-file", type=str, default="", help="Log file path.")

    args = p.parse_args(argv)
    return Settings(**vars(args))


def select_identifiers(repo: Path, settings: Settings, config: ExporterConfig) -> list[FileIdentifier]:
    """Resolve the file selection described by the settings.

    Args:
        repo (Path): the resolved project root
        settings (Settings): parsed command line settings
        config (ExporterConfig): project configuration

    Raises:
        WorkspaceExporterError: when git is required but unavailable or the template is unknown

    Returns:
        list[FileIdentifier]: selected files (not yet ordered)
    """
    excludes = [*settings.exclude_glob, *config.global_excludes]
    if settings.staged or settings.changes:
        files = git_changed_files(repo, staged=settings.staged)
        files = apply_filters(files, repo, includes=settings.include_glob, excludes=excludes)
    elif settings.template:
        template = find_template(settings.template, config.custom_templates)
        files = apply_template(list_files(repo, no_git=settings.no_git), repo, template, config.global_excludes)
        files = apply_filters(files, repo, includes=settings.include_glob, excludes=settings.exclude_glob)
    else:
        files = apply_filters(
            list_files(repo, no_git=settings.no_git),
            repo,
            includes=settings.include_glob,
            excludes=excludes,
        )
    return make_identifiers(files, repo)


def default_base_name(repo: Path, settings: Settings) -> str:
    """Artifact base name: `<project>_<template id>`, or a name for the git and custom selections."""
    if settings.base_name:
        return settings.base_name
    if settings.template:
        label = settings.template
    elif settings.staged:
        label = "staged"
    elif settings.changes:
        label = "changes"
    else:
        label = "custom_export"
    return f"{repo.name}_{label}"


def output_directory(repo: Path, settings: Settings) -> Path:
    """Directory written segments go to: `--output-dir`, else the project root."""
    return (settings.output_dir or repo).resolve()


def drop_own_artifacts(idents: list[FileIdentifier], directory: Path, base_name: str) -> list[FileIdentifier]:
    """Remove earlier export artifacts of this base name from a selection.

    An export into the project root never reads back its own earlier output.

    Args:
        idents (list[FileIdentifier]): the selection
        directory (Path): resolved output directory
        base_name (str): artifact base name

    Returns:
        list[FileIdentifier]: the selection without `<base_name>[_partN].<ext>` files of `directory`
    """
    pattern = artifact_pattern(base_name)
    kept = [i for i in idents if not (i.path.parent == directory and pattern.fullmatch(i.path.name))]
    if len(kept) < len(idents):
        logger.info("own_artifacts_skipped", count=len(idents) - len(kept))
    return kept


def render_templates(config: ExporterConfig) -> str:
    """List templates as `id  label - description` lines."""
    lines = [f"{t.id}  {t.label} - {t.description}" for t in all_templates(config.custom_templates)]
    return "\n".join(lines) + "\n"


def _log_progress(processed: int, total: int) -> None:
    if processed == total or processed % PROGRESS_LOG_EVERY == 0:
        logger.info("export_progress", processed=processed, total=total)


def run_export(repo: Path, settings: Settings, config: ExporterConfig, idents: list[FileIdentifier]) -> int:
    """Export the selection to the configured sink and report the outcome.

    SIGINT is turned into a cooperative cancellation while the export runs.

    Returns:
        int: 0 on success, 130 when cancelled
    """
    fmt = settings.format or config.output_format
    budget = config.chunk_size if settings.chunk_size is None else settings.chunk_size
    chunked = budget > 0
    sink: Sink
    if settings.stdout:
        sink = StreamSink(sys.stdout, fmt, chunked=chunked)
    else:
        sink = FileSink(output_directory(repo, settings), default_base_name(repo, settings), fmt, chunked=chunked)

    token = CancellationToken()
    previous = signal.signal(signal.SIGINT, lambda *_: token.cancel())
    try:
        summary = export(
            idents,
            sink,
            fmt=fmt,
            budget=budget,
            include_tree=config.include_file_tree and not settings.no_tree,
            cancel=token,
            progress=_log_progress,
            prefetch=settings.prefetch,
        )
    finally:
        signal.signal(signal.SIGINT, previous)

    report = sys.stderr if settings.stdout else sys.stdout
    print(
        f"Exported files={summary.files}/{summary.total_files} segments={summary.segments} "
        f"format={fmt} tokens~{summary.tokens}" + (" (cancelled)" if summary.cancelled else ""),
        file=report,
    )
    return EXIT_CANCELLED if summary.cancelled else 0


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    repo = Path(settings.repo).resolve()
    try:
        config = load_config_file(resolve_config_path(repo, settings.config))
        if settings.command == "templates":
            print(render_templates(config), end="")
            return 0
        idents = select_identifiers(repo, settings, config)
        idents = drop_own_artifacts(idents, output_directory(repo, settings), default_base_name(repo, settings))
    except WorkspaceExporterError as e:
        logger.error("selection_failed", error=repr(e))
        print(f"Error: {e!r}", file=sys.stderr)
        return 1

    if not idents:
        print("No files selected.")
        return 0

    if settings.command == "preview":
        print(render_preview(build_preview(idents, prefetch=settings.prefetch)), end="")
        return 0

    return run_export(repo, settings, config, idents)


if __name__ == "__main__":
    raise SystemExit(main())
