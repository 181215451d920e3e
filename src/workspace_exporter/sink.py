from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol, TextIO

from workspace_exporter.config import OutputFormat
from workspace_exporter.encoding import wrap_document
from workspace_exporter.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from workspace_exporter.config import Segment


class Sink(Protocol):
    """Destination for export segments, called once per segment in order."""

    def write(self, segment: Segment) -> None: ...


def part_suffix(index: int, *, chunked: bool) -> str:
    """Return the file name suffix for a segment: `_part{N}` when chunked, else ""."""
    return f"_part{index}" if chunked else ""


def segment_filename(base_name: str, index: int, fmt: OutputFormat, *, chunked: bool) -> str:
    """Build the artifact file name for a segment.

    Args:
        base_name (str): name shared by all parts of one export
        index (int): 1-based segment index
        fmt (OutputFormat): the output format, which picks the extension
        chunked (bool): whether the export runs with a budget

    Returns:
        str: e.g. `project_export_part2.md`
    """
    return f"{base_name}{part_suffix(index, chunked=chunked)}.{fmt.extension}"


def artifact_pattern(base_name: str, fmt: OutputFormat | None = None) -> re.Pattern[str]:
    """Match the file names a FileSink writes for `base_name`.

    Args:
        base_name (str): name shared by all parts of one export
        fmt (OutputFormat | None): restrict to one format's extension; None matches all formats

    Returns:
        re.Pattern[str]: pattern to use with `fullmatch` on a file name
    """
    formats = [fmt] if fmt is not None else list(OutputFormat)
    extensions = "|".join(re.escape(f.extension) for f in formats)
    return re.compile(rf"{re.escape(base_name)}(?:_part\d+)?\.(?:{extensions})")


def finalize_text(segment: Segment, fmt: OutputFormat, *, chunked: bool) -> str:
    """Return the text to persist; unchunked output gets its document envelope."""
    return segment.text if chunked else wrap_document(segment.text, fmt)


class FileSink:
    """Write each segment to its own file under `directory`.

    Before the first segment is written, files left by an earlier export with
    the same base name and format are removed, so a directory never mixes parts
    of two runs.
    """

    def __init__(self, directory: Path, base_name: str, fmt: OutputFormat, *, chunked: bool) -> None:
        self.directory = directory
        self.base_name = base_name
        self.fmt = fmt
        self.chunked = chunked
        self.written: list[Path] = []

    def _remove_stale(self) -> None:
        pattern = artifact_pattern(self.base_name, self.fmt)
        for path in self.directory.iterdir():
            if path.is_file() and pattern.fullmatch(path.name):
                path.unlink()
                logger.info("stale_segment_removed", path=str(path))

    def write(self, segment: Segment) -> None:
        path = self.directory / segment_filename(self.base_name, segment.index, self.fmt, chunked=self.chunked)
        self.directory.mkdir(parents=True, exist_ok=True)
        if not self.written:
            self._remove_stale()
        path.write_text(finalize_text(segment, self.fmt, chunked=self.chunked), encoding="utf-8")
        self.written.append(path)
        logger.info("segment_written", path=str(path), tokens=segment.tokens)


class StreamSink:
    """Write segments to a text stream, separated by a part marker line when chunked."""

    def __init__(self, stream: TextIO, fmt: OutputFormat, *, chunked: bool) -> None:
        self.stream = stream
        self.fmt = fmt
        self.chunked = chunked

    def write(self, segment: Segment) -> None:
        if self.chunked:
            self.stream.write(f"----- part {segment.index} (~{segment.tokens} tokens) -----\n")
        self.stream.write(finalize_text(segment, self.fmt, chunked=self.chunked))
        self.stream.flush()
