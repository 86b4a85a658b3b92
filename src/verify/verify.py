"""Verification of a codebase tree against a backup snapshot."""

from __future__ import annotations

import filecmp
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scan.files import iter_tree_files

if TYPE_CHECKING:
    from pathlib import Path

    from backup.service import BackupSnapshot


@dataclass(frozen=True)
class TreeDiff:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _list_relative_files(root: Path, excluded_dirs: tuple[str, ...] = ()) -> set[str]:
    return {
        path.relative_to(root).as_posix()
        for path in iter_tree_files(root, excluded_dirs=excluded_dirs)
    }


def verify_snapshot(snapshot: BackupSnapshot) -> TreeDiff:
    """Compare the snapshot's root byte-for-byte against the snapshot.

    Files present in the snapshot but absent from the root are ``missing``;
    files under the root that the snapshot never held are ``extra``. Extra
    files do not fail verification, since a restore leaves them in place.

    Raises:
        FileNotFoundError: If the snapshot directory does not exist.
    """
    if not snapshot.path.is_dir():
        msg = f"Backup does not exist: {snapshot.path}"
        raise FileNotFoundError(msg)

    backup_folder = snapshot.path.parent.relative_to(snapshot.root).as_posix()
    expected = _list_relative_files(snapshot.path)
    actual = _list_relative_files(snapshot.root, (backup_folder,))

    missing = sorted(expected - actual)
    extra = sorted(actual - expected)
    mismatches = sorted(
        path
        for path in expected & actual
        if not filecmp.cmp(snapshot.path / path, snapshot.root / path, shallow=False)
    )

    return TreeDiff(
        ok=not missing and not mismatches,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )


__all__ = ["TreeDiff", "verify_snapshot"]
