from __future__ import annotations

import fnmatch
import os
import stat
import subprocess  # noqa: S404
from pathlib import Path
from typing import TYPE_CHECKING

from workspace_exporter.config import BUILTIN_TEMPLATES, DEFAULT_EXCLUDES, FileIdentifier, TemplateDefinition
from workspace_exporter.exceptions import GitCommandError, NotAGitRepositoryError, UnknownTemplateError
from workspace_exporter.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode)


def _run_git(repo: Path, args: list[str]) -> list[str]:
    git_dir = repo / ".git"
    if not git_dir.exists():
        raise NotAGitRepositoryError(folder=repo)
    cmd = ["git", *args]
    out = subprocess.run(  # noqa: S603
        cmd,
        cwd=str(repo),
        text=True,
        capture_output=True,
        check=False,
    )
    if out.returncode != 0:
        raise GitCommandError(
            command=" ".join(cmd),
            returncode=out.returncode,
            stdout=out.stdout,
            stderr=out.stderr,
        )
    return [line.strip() for line in out.stdout.splitlines() if line.strip()]


def git_ls_files(repo: Path) -> list[Path]:
    """Get the list of tracked files in a git repository using `git ls-files`.

    Args:
        repo (Path): the root of the git repository to query

    Raises:
        NotAGitRepositoryError: if `.git` is missing.
        GitCommandError: if the `git` invocation fails.

    Returns:
        list[Path]: the list of tracked files within the repository
    """
    return [(repo / line).resolve() for line in _run_git(repo, ["ls-files"])]


def git_changed_files(repo: Path, *, staged: bool) -> list[Path]:
    """List files reported by `git diff --name-only`.

    Args:
        repo (Path): the root of the git repository to query
        staged (bool): True for the index (`--cached`), False for changes against HEAD

    Raises:
        NotAGitRepositoryError: if `.git` is missing.
        GitCommandError: if the `git` invocation fails.

    Returns:
        list[Path]: changed files that still exist on disk
    """
    args = ["diff", "--name-only", "--cached"] if staged else ["diff", "--name-only", "HEAD"]
    files = [(repo / line).resolve() for line in _run_git(repo, args)]
    return [f for f in files if is_regular_file(f)]


def walk_files(repo: Path) -> list[Path]:
    """Walk the directory tree rooted at `repo` and return a list of all files.

    Directories named in `DEFAULT_EXCLUDES` are pruned.

    Args:
        repo (Path): the root directory to walk

    Returns:
        list[Path]: a list of all files found
    """
    results: list[Path] = []
    for root, dirs, files in os.walk(repo):
        dirs[:] = [d for d in dirs if d not in DEFAULT_EXCLUDES]
        for f in files:
            p = (Path(root) / f).resolve()
            if p.is_file():
                results.append(p)
    return results


def list_files(repo: Path, *, no_git: bool = False) -> list[Path]:
    """List candidate files, preferring `git ls-files` and falling back to a walk.

    Args:
        repo (Path): the project root
        no_git (bool): skip git entirely

    Returns:
        list[Path]: candidate files
    """
    if not no_git:
        try:
            return git_ls_files(repo)
        except (NotAGitRepositoryError, GitCommandError, OSError) as e:
            logger.info("git_listing_unavailable", repo=str(repo), error=repr(e))
    return walk_files(repo)


def expand_braces(pattern: str) -> list[str]:
    """Expand `{a,b}` alternations in a glob pattern.

    Nested groups are expanded recursively; a pattern without braces is
    returned unchanged.

    Args:
        pattern (str): the glob pattern

    Returns:
        list[str]: the alternatives, in order of appearance
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    options: list[str] = []
    last = start + 1
    for i in range(start, len(pattern)):
        ch = pattern[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[last:i])
                head, tail = pattern[:start], pattern[i + 1 :]
                return [expanded for opt in options for expanded in expand_braces(head + opt + tail)]
        elif ch == "," and depth == 1:
            options.append(pattern[last:i])
            last = i + 1
    return [pattern]


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Normalize a sequence of glob patterns by stripping whitespace and
    replacing backslashes with forward slashes.

    Args:
        globs (Sequence[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return out


def match_glob(rel: str, pattern: str) -> bool:
    """Check a relative path against one glob with `**` and `{a,b}` support.

    A leading `**/` also matches at the root, so `**/*.py` matches `setup.py`.

    Args:
        rel (str): the relative path to check
        pattern (str): the glob pattern

    Returns:
        bool: True if `rel` matches
    """
    for pat in expand_braces(pattern):
        if fnmatch.fnmatchcase(rel, pat):
            return True
        if pat.startswith("**/") and fnmatch.fnmatchcase(rel, pat[3:]):
            return True
    return False


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check if a relative path matches any of the provided glob patterns.

    Args:
        rel (str): the relative path to check
        globs (Sequence[str]): the glob patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `globs`, False otherwise
    """
    return any(match_glob(rel, g) for g in globs)


def in_default_excludes(repo: Path, path: Path) -> bool:
    """Check if a path is in the default excludes.

    Args:
        repo (Path): the root directory of the repository
        path (Path): the path to check

    Returns:
        bool: True if the path is in the default excludes, False otherwise
    """
    try:
        parts = path.relative_to(repo).parts
    except ValueError:
        return True
    return any(p in DEFAULT_EXCLUDES for p in parts)


def apply_filters(
    files: Sequence[Path],
    repo: Path,
    includes: Sequence[str],
    excludes: Sequence[str],
) -> list[Path]:
    """Apply include/exclude filters to a list of files.

    Args:
        files (Sequence[Path]): the list of file paths to filter (absolute paths)
        repo (Path): the root path to relativize file paths against for filtering
        includes (Sequence[str]): glob patterns to include (relative to repo); empty keeps all
        excludes (Sequence[str]): glob patterns to exclude (relative to repo)

    Returns:
        list[Path]: the filtered list of file paths
    """
    inc = normalize_globs(includes)
    exc = normalize_globs(excludes)

    out: list[Path] = []
    for f in files:
        if not is_regular_file(f):
            continue
        if in_default_excludes(repo, f):
            continue
        r = relpath(f, repo)
        if inc and not match_any_glob(r, inc):
            continue
        if exc and match_any_glob(r, exc):
            continue
        out.append(f)
    return out


def all_templates(custom: Sequence[TemplateDefinition] = ()) -> list[TemplateDefinition]:
    """Return built-in templates followed by custom ones."""
    return [*BUILTIN_TEMPLATES, *custom]


def find_template(template_id: str, custom: Sequence[TemplateDefinition] = ()) -> TemplateDefinition:
    """Look up a template by id; custom templates shadow built-in ones.

    Args:
        template_id (str): the template id
        custom (Sequence[TemplateDefinition]): templates from the config file

    Raises:
        UnknownTemplateError: if no template has this id

    Returns:
        TemplateDefinition: the matching template
    """
    for template in reversed(all_templates(custom)):
        if template.id == template_id:
            return template
    raise UnknownTemplateError(
        template_id=template_id,
        available=tuple(t.id for t in all_templates(custom)),
    )


def apply_template(
    files: Sequence[Path],
    repo: Path,
    template: TemplateDefinition,
    global_excludes: Sequence[str] = (),
) -> list[Path]:
    """Select files with a template's include pattern and excludes.

    Args:
        files (Sequence[Path]): candidate files (absolute paths)
        repo (Path): the project root
        template (TemplateDefinition): the selection preset
        global_excludes (Sequence[str]): extra exclude globs from the config file

    Returns:
        list[Path]: the selected files
    """
    excludes = [template.exclude, *global_excludes] if template.exclude else list(global_excludes)
    return apply_filters(files, repo, includes=[template.pattern], excludes=excludes)


def make_identifiers(files: Sequence[Path], repo: Path) -> list[FileIdentifier]:
    """Create FileIdentifier objects for the given files.

    Args:
        files (Sequence[Path]): absolute file paths
        repo (Path): the root path to relativize file paths against for the `rel` field

    Returns:
        list[FileIdentifier]: identifiers in input order
    """
    return [FileIdentifier(path=f, rel=relpath(f, repo)) for f in files]
