"""File scanning utilities for codetower."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _in_excluded_dir(rel_path: str, excluded_dirs: Sequence[str]) -> bool:
    return any(
        rel_path == excluded or rel_path.startswith(excluded.rstrip("/") + "/")
        for excluded in excluded_dirs
    )


def _is_regular_file_in_tree(path: Path, root: Path) -> bool:
    if not path.is_file() or path.is_symlink():
        return False
    return _is_within_root(path, root)


def _should_include_file(
    path: Path,
    root: Path,
    excluded_dirs: Sequence[str],
    gitignore_matches: Callable[[str], bool] | None,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a source file should be part of the code model."""
    if not _is_regular_file_in_tree(path, root):
        return False

    rel_path_str = path.relative_to(root).as_posix()

    if _in_excluded_dir(rel_path_str, excluded_dirs):
        return False

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    if include_patterns and not any(
        fnmatch(rel_path_str, pat) for pat in include_patterns
    ):
        return False

    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def _iter_gitignore_files(root: Path) -> list[Path]:
    """Return sorted list of .gitignore files under root (including root)."""
    gitignore_paths = [root / ".gitignore"]
    gitignore_paths.extend(root.rglob(".gitignore"))
    unique_paths = {
        path for path in gitignore_paths if path.is_file() and not path.is_symlink()
    }
    return sorted(unique_paths, key=lambda p: p.relative_to(root).as_posix())


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = _iter_gitignore_files(root)
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def find_python_files(
    directory: Path,
    *,
    excluded_dirs: Sequence[str] = (),
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find the Python files that make up a codebase's code model.

    Args:
        directory: Codebase root
        excluded_dirs: Root-relative folders to skip entirely (the backup
            store, for one)
        include_patterns: Optional fnmatch patterns; when given, files must
            match at least one
        exclude_patterns: Optional fnmatch patterns; matching files are skipped
        nested_gitignore: Honor .gitignore files below the root as well

    Yields:
        Paths sorted by their root-relative posix path.
    """
    gitignore_matches = _build_gitignore_matcher(
        directory,
        nested_gitignore=nested_gitignore,
    )

    matched_files = [
        path
        for path in directory.rglob("*.py")
        if _should_include_file(
            path,
            directory,
            excluded_dirs,
            gitignore_matches,
            include_patterns,
            exclude_patterns,
        )
    ]

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


def iter_tree_files(
    directory: Path,
    *,
    excluded_dirs: Sequence[str] = (),
) -> Iterator[Path]:
    """Every regular file below ``directory``, ignoring .gitignore.

    Symlinks and files under ``excluded_dirs`` are skipped. Used for whole
    tree snapshots, where ignored files must be captured too.
    """
    files = [
        path
        for path in directory.rglob("*")
        if _is_regular_file_in_tree(path, directory)
        and not _in_excluded_dir(path.relative_to(directory).as_posix(), excluded_dirs)
    ]
    files.sort(key=lambda p: p.relative_to(directory).as_posix())
    yield from files


__all__ = ["_should_include_file", "find_python_files", "iter_tree_files"]
