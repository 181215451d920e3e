"""Shared test fixtures for workspace_exporter tests."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from workspace_exporter.config import FileIdentifier

if TYPE_CHECKING:
    from collections.abc import Callable


class MemoryStore:
    """In-memory backing store keyed by relative path; missing keys raise FileNotFoundError."""

    def __init__(self, files: dict[str, bytes | str]) -> None:
        self.files = {k: v.encode("utf-8") if isinstance(v, str) else v for k, v in files.items()}
        self.reads: list[str] = []

    def __call__(self, ident: FileIdentifier) -> bytes:
        self.reads.append(ident.rel)
        try:
            return self.files[ident.rel]
        except KeyError:
            raise FileNotFoundError(ident.rel) from None

    def identifiers(self) -> list[FileIdentifier]:
        return [FileIdentifier(path=Path("/virtual") / rel, rel=rel) for rel in self.files]


@pytest.fixture
def memory_store() -> Callable[[dict[str, bytes | str]], MemoryStore]:
    """Build a MemoryStore from a mapping of relative path to content."""
    return MemoryStore


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small project tree on disk."""
    files = {
        "src/app.py": "print('hi')\n",
        "src/util/helpers.py": "def helper():\n    return 1\n",
        "README.md": "# Demo\n",
        "docs/guide.txt": "guide\n",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    return tmp_path
