from __future__ import annotations

from typing import TYPE_CHECKING, Any

from workspace_exporter.config import TREE_HEADER, TREE_SEPARATOR

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_tree_lines(rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    A path segment with children is a directory; directories are listed before
    files at every level, and siblings of the same kind sort by code point.

    Args:
        rel_paths (Sequence[str]): the file paths relative to the root, using POSIX separators (e.g. "src/main.py")

    Returns:
        list[str]: one string per node, with `├── `/`└── ` connectors
    """
    tree: dict[str, Any] = {}
    for rp in rel_paths:
        cur = tree
        for part in rp.split("/"):
            cur = cur.setdefault(part, {})

    lines: list[str] = []

    def walk(node: dict[str, Any], prefix: str) -> None:
        names = sorted(node, key=lambda name: (not node[name], name))
        for idx, name in enumerate(names):
            last = idx == len(names) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name)
            if node[name]:
                ext = "    " if last else "│   "
                walk(node[name], prefix + ext)

    walk(tree, "")
    return lines


def render_tree(rel_paths: Sequence[str]) -> str:
    """Render the project tree block placed at the top of an export.

    Args:
        rel_paths (Sequence[str]): the exported relative paths

    Returns:
        str: header line, tree lines and a trailing separator line
    """
    body = "".join(line + "\n" for line in build_tree_lines(rel_paths))
    return f"{TREE_HEADER}\n{body}\n{TREE_SEPARATOR}\n\n"
