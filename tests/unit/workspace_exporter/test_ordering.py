from pathlib import Path

import pytest

from workspace_exporter.config import FileIdentifier
from workspace_exporter.ordering import order_identifiers


def _ident(rel: str, root: str = "/repo") -> FileIdentifier:
    return FileIdentifier(path=Path(root) / rel, rel=rel)


@pytest.mark.unit
def test_order_identifiers_uses_code_point_order() -> None:
    ordered = order_identifiers([_ident("b.txt"), _ident("a_dir/file.txt"), _ident("B.txt")])

    assert [i.rel for i in ordered] == ["B.txt", "a_dir/file.txt", "b.txt"]


@pytest.mark.unit
def test_order_identifiers_keeps_first_duplicate() -> None:
    first = _ident("x.txt", "/first")
    second = _ident("x.txt", "/second")

    ordered = order_identifiers([first, _ident("a.txt"), second])

    assert [i.rel for i in ordered] == ["a.txt", "x.txt"]
    assert ordered[1].path == Path("/first/x.txt")


@pytest.mark.unit
def test_order_identifiers_is_stable_across_calls() -> None:
    idents = [_ident(r) for r in ["c", "a/b", "a", "b"]]

    assert order_identifiers(idents) == order_identifiers(list(reversed(idents)))
    assert order_identifiers([]) == []
