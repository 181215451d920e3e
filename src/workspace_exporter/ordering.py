from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from workspace_exporter.config import FileIdentifier


def order_identifiers(identifiers: Iterable[FileIdentifier]) -> list[FileIdentifier]:
    """Sort identifiers by relative path and drop duplicate paths.

    Comparison is by code point (plain `str` ordering), so the result does not
    depend on the locale. When two identifiers share a relative path the first
    one seen is kept.

    Args:
        identifiers (Iterable[FileIdentifier]): identifiers in any order, possibly repeated

    Returns:
        list[FileIdentifier]: unique identifiers in canonical order
    """
    seen: dict[str, FileIdentifier] = {}
    for ident in identifiers:
        seen.setdefault(ident.rel, ident)
    return [seen[rel] for rel in sorted(seen)]
