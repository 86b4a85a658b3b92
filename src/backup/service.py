"""Timestamped whole-tree backups taken before a restructuring run."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import orjson
from loguru import logger

from scan.files import iter_tree_files

BACKUP_FOLDER = ".codetower_backup"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
RECORD_SUFFIX = ".json"


@dataclass(frozen=True)
class BackupSnapshot:
    """A read-only copy of ``root`` stored at ``path``."""

    root: Path
    path: Path
    created_at: datetime
    file_count: int


def _snapshot_time(name: str) -> datetime | None:
    stamp = name.split("_")[:2]
    try:
        return datetime.strptime("_".join(stamp), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def snapshot_record_path(snapshot_dir: Path) -> Path:
    """Where the record describing ``snapshot_dir`` lives, next to it."""
    return snapshot_dir.parent / f"{snapshot_dir.name}{RECORD_SUFFIX}"


def _write_record(snapshot_dir: Path, backup_folder: str, file_count: int) -> None:
    record = {
        "backup_folder": Path(backup_folder).as_posix(),
        "file_count": file_count,
    }
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    snapshot_record_path(snapshot_dir).write_bytes(orjson.dumps(record, option=opts) + b"\n")


def _read_record(snapshot_dir: Path) -> dict[str, object] | None:
    record_path = snapshot_record_path(snapshot_dir)
    if not record_path.is_file():
        return None
    try:
        record = orjson.loads(record_path.read_bytes())
    except orjson.JSONDecodeError as exc:
        msg = f"Invalid backup record {record_path}: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(record, dict) or not isinstance(record.get("backup_folder"), str):
        msg = f"Invalid backup record {record_path}: missing backup_folder"
        raise ValueError(msg)
    return record


class BackupService:
    """Copies a codebase into ``<root>/<backup_folder>/<timestamp>``.

    Each snapshot directory is paired with a ``<timestamp>.json`` record
    naming the backup folder it was created under, so a snapshot can be
    traced back to its root without knowing the configuration.
    """

    def __init__(self, backup_folder: str = BACKUP_FOLDER) -> None:
        self._backup_folder = backup_folder

    @property
    def backup_folder(self) -> str:
        return self._backup_folder

    def _free_snapshot_dir(self, base: Path, created_at: datetime) -> Path:
        stamp = created_at.strftime(TIMESTAMP_FORMAT)
        candidate = base / stamp
        suffix = 0
        while candidate.exists() or snapshot_record_path(candidate).exists():
            suffix += 1
            candidate = base / f"{stamp}_{suffix}"
        return candidate

    def create_backup(self, root: Path) -> BackupSnapshot:
        """Copy every regular file under ``root`` except earlier backups."""
        root = root.resolve()
        created_at = datetime.now().replace(microsecond=0)
        snapshot_dir = self._free_snapshot_dir(root / self._backup_folder, created_at)
        logger.info("Creating backup in {}", snapshot_dir)

        snapshot_dir.mkdir(parents=True)
        count = 0
        for source in iter_tree_files(root, excluded_dirs=(self._backup_folder,)):
            destination = snapshot_dir / source.relative_to(root)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            count += 1

        _write_record(snapshot_dir, self._backup_folder, count)
        logger.info("Backup completed: {} file(s)", count)
        return BackupSnapshot(root, snapshot_dir, created_at, count)

    def restore_backup(self, snapshot: BackupSnapshot) -> int:
        """Overwrite files under the snapshot's root with their backed-up copies.

        Files created after the snapshot was taken are left in place.
        Returns the number of restored files.
        """
        if not snapshot.path.is_dir():
            msg = f"Backup does not exist: {snapshot.path}"
            raise FileNotFoundError(msg)

        logger.info("Restoring {} from {}", snapshot.root, snapshot.path)
        count = 0
        for source in iter_tree_files(snapshot.path):
            destination = snapshot.root / source.relative_to(snapshot.path)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            count += 1

        logger.info("Restore completed: {} file(s)", count)
        return count

    def list_backups(self, root: Path) -> list[BackupSnapshot]:
        """Snapshots of ``root``, oldest first."""
        base = root.resolve() / self._backup_folder
        if not base.is_dir():
            return []
        snapshots = [
            self.load_snapshot(path)
            for path in base.iterdir()
            if path.is_dir() and _snapshot_time(path.name) is not None
        ]
        snapshots.sort(key=lambda s: (s.created_at, len(s.path.name), s.path.name))
        return snapshots

    def load_snapshot(self, path: Path) -> BackupSnapshot:
        """Describe an existing snapshot directory.

        The root comes from the snapshot's record when there is one, and
        from this service's backup folder otherwise.

        Raises:
            FileNotFoundError: If ``path`` is not a snapshot directory.
            ValueError: If the snapshot's record is unreadable or does not
                match where the snapshot sits.
        """
        path = path.resolve()
        created_at = _snapshot_time(path.name)
        if not path.is_dir() or created_at is None:
            msg = f"Not a backup snapshot: {path}"
            raise FileNotFoundError(msg)

        record = _read_record(path)
        backup_folder = self._backup_folder if record is None else str(record["backup_folder"])
        depth = len(Path(backup_folder).parts)
        if depth >= len(path.parents):
            msg = f"Backup folder {backup_folder} is deeper than {path}"
            raise ValueError(msg)
        root = path.parents[depth]
        if root / backup_folder != path.parent:
            msg = f"Snapshot {path} is not inside backup folder {backup_folder}"
            raise ValueError(msg)

        file_count = sum(1 for _ in iter_tree_files(path))
        return BackupSnapshot(root, path, created_at, file_count)


__all__ = ["BACKUP_FOLDER", "BackupService", "BackupSnapshot", "snapshot_record_path"]
