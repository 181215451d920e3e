from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from workspace_exporter import discovery
from workspace_exporter.config import TemplateDefinition
from workspace_exporter.exceptions import GitCommandError, NotAGitRepositoryError, UnknownTemplateError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_expand_braces_handles_flat_and_nested_groups() -> None:
    assert discovery.expand_braces("*.py") == ["*.py"]
    assert discovery.expand_braces("**/{a,b}/**") == ["**/a/**", "**/b/**"]
    assert discovery.expand_braces("{x,{y,z}}.txt") == ["x.txt", "y.txt", "z.txt"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("rel", "pattern", "expected"),
    [
        ("setup.py", "**/*.py", True),
        ("src/pkg/mod.py", "**/*.py", True),
        ("src/pkg/mod.pyc", "**/*.py", False),
        ("Dockerfile", "**/{Dockerfile,*.md}", True),
        ("node_modules/x/index.js", "**/{node_modules,dist}/**", True),
        ("web/dist/app.js", "**/{node_modules,dist}/**", True),
        ("src/distance.js", "**/{node_modules,dist}/**", False),
    ],
)
def test_match_glob(rel: str, pattern: str, expected: bool) -> None:  # noqa: FBT001
    assert discovery.match_glob(rel, pattern) is expected


@pytest.mark.unit
def test_normalize_globs_strips_and_normalizes() -> None:
    globs = ["  src/**/*.py ", "\\tests\\*.py", ""]

    assert discovery.normalize_globs(globs) == ["src/**/*.py", "/tests/*.py"]


@pytest.mark.unit
def test_walk_files_prunes_default_excludes(project: Path) -> None:
    rels = sorted(discovery.relpath(p, project.resolve()) for p in discovery.walk_files(project.resolve()))

    assert rels == ["README.md", "docs/guide.txt", "src/app.py", "src/util/helpers.py"]


@pytest.mark.unit
def test_apply_filters_respects_includes_excludes(project: Path) -> None:
    repo = project.resolve()
    files = discovery.walk_files(repo)

    selected = discovery.apply_filters(files, repo, includes=["src/**"], excludes=["**/helpers.py"])

    assert [discovery.relpath(p, repo) for p in selected] == ["src/app.py"]


@pytest.mark.unit
def test_apply_template_uses_pattern_and_global_excludes(project: Path) -> None:
    repo = project.resolve()
    template = discovery.find_template("python_data_science")

    selected = discovery.apply_template(discovery.walk_files(repo), repo, template, ["docs/**"])

    assert sorted(discovery.relpath(p, repo) for p in selected) == ["README.md", "src/app.py", "src/util/helpers.py"]


@pytest.mark.unit
def test_find_template_unknown_id_raises() -> None:
    with pytest.raises(UnknownTemplateError) as exc_info:
        discovery.find_template("nope")

    assert "generic_web" in exc_info.value.available


@pytest.mark.unit
def test_custom_template_shadows_builtin() -> None:
    custom = TemplateDefinition(id="generic_web", label="Mine", pattern="**/*.vue")

    assert discovery.find_template("generic_web", [custom]).label == "Mine"


@pytest.mark.unit
def test_git_changed_files_requires_repository(tmp_path: Path) -> None:
    with pytest.raises(NotAGitRepositoryError):
        discovery.git_changed_files(tmp_path, staged=True)


@pytest.mark.unit
def test_git_changed_files_uses_cached_diff(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / "kept.py").write_text("x = 1\n", encoding="utf-8")
    run = mocker.patch.object(
        discovery.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="kept.py\ndeleted.py\n", stderr=""),
    )

    files = discovery.git_changed_files(tmp_path, staged=True)

    assert files == [(tmp_path / "kept.py").resolve()]
    assert run.call_args.args[0] == ["git", "diff", "--name-only", "--cached"]


@pytest.mark.unit
def test_git_changed_files_against_head(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / ".git").mkdir()
    run = mocker.patch.object(
        discovery.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr=""),
    )

    assert discovery.git_changed_files(tmp_path, staged=False) == []
    assert run.call_args.args[0] == ["git", "diff", "--name-only", "HEAD"]


@pytest.mark.unit
def test_git_failure_raises_git_command_error(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / ".git").mkdir()
    mocker.patch.object(
        discovery.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal: bad revision"),
    )

    with pytest.raises(GitCommandError) as exc_info:
        discovery.git_changed_files(tmp_path, staged=False)

    assert exc_info.value.returncode == 128
    assert "bad revision" in exc_info.value.stderr


@pytest.mark.unit
def test_list_files_falls_back_to_walk(project: Path) -> None:
    repo = project.resolve()

    files = discovery.list_files(repo)

    assert len(files) == 4


@pytest.mark.unit
def test_make_identifiers_uses_posix_relative_paths(project: Path) -> None:
    repo = project.resolve()

    idents = discovery.make_identifiers([repo / "src" / "util" / "helpers.py"], repo)

    assert idents[0].rel == "src/util/helpers.py"
    assert idents[0].path == repo / "src" / "util" / "helpers.py"
