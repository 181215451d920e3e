from __future__ import annotations

from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from xml.sax.saxutils import quoteattr

from workspace_exporter.config import HEADER_BEGIN, HEADER_END, OutputFormat

if TYPE_CHECKING:
    from collections.abc import Iterable

DOCUMENT_ROOT = "workspace"
_CDATA_END = "]]>"


def fence_language(rel: str) -> str:
    """Return the code fence tag for a path: its extension without the dot, or ""."""
    return PurePosixPath(rel).suffix.removeprefix(".")


def cdata(content: str) -> str:
    """Wrap text in CDATA, splitting any `]]>` so the section cannot close early."""
    return "<![CDATA[" + content.replace(_CDATA_END, "]]]]><![CDATA[>") + _CDATA_END


def encode_file(rel: str, content: str, fmt: OutputFormat) -> str:
    """Render one file in the given output format.

    The result always ends with a newline, so fragments can be concatenated
    as-is.

    Args:
        rel (str): relative path of the file
        content (str): file text (or a marker)
        fmt (OutputFormat): the output format

    Returns:
        str: the encoded fragment
    """
    match fmt:
        case OutputFormat.PLAIN:
            return f'{HEADER_BEGIN} path="{rel}"\n{content}\n{HEADER_END} path="{rel}"\n'
        case OutputFormat.MARKUP:
            return f"## File: {rel}\n```{fence_language(rel)}\n{content}\n```\n"
        case OutputFormat.STRUCTURED:
            body = cdata(f"\n{content}\n")
            return f"  <file path={quoteattr(rel)}>{body}</file>\n"
    msg = f"unsupported output format: {fmt!r}"
    raise ValueError(msg)


def encode_files(pairs: Iterable[tuple[str, str]], fmt: OutputFormat) -> str:
    """Render several `(path, content)` pairs, in the order given.

    Args:
        pairs (Iterable[tuple[str, str]]): relative paths with their content
        fmt (OutputFormat): the output format

    Returns:
        str: the concatenated fragments, "" for no pairs
    """
    return "".join(encode_file(rel, content, fmt) for rel, content in pairs)


def wrap_document(body: str, fmt: OutputFormat) -> str:
    """Wrap a complete export in its document envelope.

    Only the structured format has one (a single root element). It must be
    applied once, to unchunked output; chunked structured output is a stream
    of `<file>` elements.

    Args:
        body (str): concatenated fragments
        fmt (OutputFormat): the output format

    Returns:
        str: the document text
    """
    if fmt is OutputFormat.STRUCTURED:
        return f"<{DOCUMENT_ROOT}>\n{body}</{DOCUMENT_ROOT}>\n"
    return body
