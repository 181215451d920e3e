from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from workspace_exporter.config import OutputFormat, Segment
from workspace_exporter.encoding import encode_file
from workspace_exporter.loading import iter_records, read_bytes
from workspace_exporter.logging import logger
from workspace_exporter.ordering import order_identifiers
from workspace_exporter.tokens import tokens_for_units, utf16_units
from workspace_exporter.tree import render_tree

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from workspace_exporter.config import FileIdentifier
    from workspace_exporter.loading import ByteReader
    from workspace_exporter.sink import Sink

    ProgressFn = Callable[[int, int], None]


class CancellationToken:
    """Cooperative stop signal, checked by the assembler between files.

    Safe to set from a signal handler or another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request that the export stops before the next file."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether a stop has been requested."""
        return self._event.is_set()


class ExportSummary(BaseModel):
    """Outcome of an export run."""

    segments: int = Field(default=0, ge=0, description="Segments handed to the sink")
    files: int = Field(default=0, ge=0, description="File fragments handed to the sink")
    total_files: int = Field(default=0, ge=0, description="Files selected after deduplication")
    tokens: int = Field(default=0, ge=0, description="Sum of segment token estimates")
    cancelled: bool = Field(default=False, description="Stopped before every file was emitted")


class _Buffer:
    """Pending segment text, with its size tracked in UTF-16 units."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.paths: list[str] = []
        self.units = 0

    def __bool__(self) -> bool:
        return bool(self.parts)

    @property
    def tokens(self) -> int:
        return tokens_for_units(self.units)

    def add(self, text: str, units: int, rel: str | None = None) -> None:
        self.parts.append(text)
        self.units += units
        if rel is not None:
            self.paths.append(rel)

    def to_segment(self, index: int) -> Segment:
        return Segment(index=index, text="".join(self.parts), tokens=self.tokens, paths=tuple(self.paths))


def iter_segments(
    identifiers: Iterable[FileIdentifier],
    *,
    fmt: OutputFormat,
    budget: int = 0,
    include_tree: bool = True,
    reader: ByteReader = read_bytes,
    cancel: CancellationToken | None = None,
    progress: ProgressFn | None = None,
    prefetch: int = 0,
) -> Iterator[Segment]:
    """Lazily assemble encoded files into budget-bounded segments.

    Files are loaded and encoded one at a time, in canonical order. With
    `budget == 0` everything goes into a single segment. Otherwise a segment is
    emitted as soon as the next fragment would push it over `budget`; a
    fragment is never split, so a file that alone exceeds the budget becomes
    its own over-budget segment.

    The tree summary (not for the structured format) is computed once and seeds
    the first segment, counting toward its budget. `cancel` is checked before
    each file and before the final flush; once set, the pending buffer is
    dropped and nothing more is yielded.

    Args:
        identifiers (Iterable[FileIdentifier]): files to export; ordered and deduplicated here
        fmt (OutputFormat): the output format
        budget (int): token budget per segment, 0 for unbounded
        include_tree (bool): prepend the project tree to the first segment
        reader (ByteReader): backing store returning raw bytes for an identifier
        cancel (CancellationToken | None): cooperative stop signal
        progress (ProgressFn | None): called with `(processed, total)` after each file
        prefetch (int): size of the read-ahead window, 0 to read sequentially

    Yields:
        Iterator[Segment]: completed segments, in order
    """
    if budget < 0:
        msg = f"budget must be >= 0, got {budget}"
        raise ValueError(msg)
    idents = order_identifiers(identifiers)
    total = len(idents)
    if not total:
        return
    if budget > 0 and fmt is OutputFormat.STRUCTURED:
        logger.warning("structured_output_chunked", budget=budget, detail="segments are a <file> element stream")

    buf = _Buffer()
    index = 1
    if include_tree and fmt is not OutputFormat.STRUCTURED:
        tree = render_tree([i.rel for i in idents])
        buf.add(tree, utf16_units(tree))

    records = iter_records(idents, reader, prefetch=prefetch)
    try:
        for processed in range(1, total + 1):
            if cancel is not None and cancel.cancelled:
                logger.info("export_cancelled", processed=processed - 1, total=total)
                return
            record = next(records)
            fragment = encode_file(record.rel, record.content, fmt)
            units = utf16_units(fragment)
            if budget > 0 and buf and buf.tokens + tokens_for_units(units) > budget:
                yield buf.to_segment(index)
                index += 1
                buf = _Buffer()
            buf.add(fragment, units, record.rel)
            if progress is not None:
                progress(processed, total)
        if cancel is not None and cancel.cancelled:
            logger.info("export_cancelled", processed=total, total=total)
            return
        if buf:
            yield buf.to_segment(index)
    finally:
        records.close()


def export(
    identifiers: Iterable[FileIdentifier],
    sink: Sink,
    *,
    fmt: OutputFormat,
    budget: int = 0,
    include_tree: bool = True,
    reader: ByteReader = read_bytes,
    cancel: CancellationToken | None = None,
    progress: ProgressFn | None = None,
    prefetch: int = 0,
) -> ExportSummary:
    """Run the pipeline and push every segment to `sink` as soon as it completes.

    Args:
        identifiers (Iterable[FileIdentifier]): files to export
        sink (Sink): receives each segment, once, in emission order
        fmt (OutputFormat): the output format
        budget (int): token budget per segment, 0 for unbounded
        include_tree (bool): prepend the project tree to the first segment
        reader (ByteReader): backing store returning raw bytes for an identifier
        cancel (CancellationToken | None): cooperative stop signal
        progress (ProgressFn | None): called with `(processed, total)` after each file
        prefetch (int): size of the read-ahead window

    Returns:
        ExportSummary: counts of what reached the sink
    """
    ordered = order_identifiers(identifiers)
    summary = ExportSummary(total_files=len(ordered))
    for segment in iter_segments(
        ordered,
        fmt=fmt,
        budget=budget,
        include_tree=include_tree,
        reader=reader,
        cancel=cancel,
        progress=progress,
        prefetch=prefetch,
    ):
        sink.write(segment)
        summary.segments += 1
        summary.files += segment.file_count
        summary.tokens += segment.tokens
        logger.info("segment_emitted", index=segment.index, files=segment.file_count, tokens=segment.tokens)
    summary.cancelled = summary.files < summary.total_files
    return summary
