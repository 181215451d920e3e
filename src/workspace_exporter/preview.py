from __future__ import annotations

import io
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, computed_field

from workspace_exporter.loading import iter_records, read_bytes
from workspace_exporter.ordering import order_identifiers
from workspace_exporter.tokens import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Iterable

    from workspace_exporter.config import FileIdentifier
    from workspace_exporter.loading import ByteReader


class PreviewEntry(BaseModel):
    """Estimated cost of one file's content."""

    rel: str
    tokens: int = Field(..., ge=0)
    is_binary: bool = False
    error: bool = False


class PreviewReport(BaseModel):
    """Per-file and total token estimates for a selection, before exporting."""

    entries: list[PreviewEntry] = Field(default_factory=list)

    @computed_field
    @property
    def total_files(self) -> int:
        """Number of files in the selection."""
        return len(self.entries)

    @computed_field
    @property
    def total_tokens(self) -> int:
        """Sum of per-file content estimates (without format overhead)."""
        return sum(e.tokens for e in self.entries)


def build_preview(
    identifiers: Iterable[FileIdentifier],
    reader: ByteReader = read_bytes,
    *,
    prefetch: int = 0,
) -> PreviewReport:
    """Estimate the token cost of each selected file.

    Binary and unreadable files are counted at the size of their marker.

    Args:
        identifiers (Iterable[FileIdentifier]): the selection
        reader (ByteReader): backing store returning raw bytes for an identifier
        prefetch (int): size of the read-ahead window

    Returns:
        PreviewReport: entries in canonical order
    """
    entries = [
        PreviewEntry(
            rel=record.rel,
            tokens=estimate_tokens(record.content),
            is_binary=record.is_binary,
            error=record.error,
        )
        for record in iter_records(order_identifiers(identifiers), reader, prefetch=prefetch)
    ]
    return PreviewReport(entries=entries)


def render_preview(report: PreviewReport) -> str:
    """Format a preview report as a plain-text table."""
    out = io.StringIO()
    width = max((len(e.rel) for e in report.entries), default=4)
    for e in report.entries:
        flag = " (binary)" if e.is_binary else " (error)" if e.error else ""
        out.write(f"{e.rel.ljust(width)}  {e.tokens:>8}{flag}\n")
    out.write(f"files={report.total_files} tokens~{report.total_tokens}\n")
    return out.getvalue()
