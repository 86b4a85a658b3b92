"""Command-line interface for codetower."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from backup.service import BackupService
from engine.engine import build_engine
from engine.errors import RestructuringError
from engine.scaffolding import TEMPLATES, template_transformations
from engine.transformations import load_transformations
from rules.config import ConfigError, backup_folder_name, load_config
from verify.verify import verify_snapshot


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every staged edit (DEBUG level)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codetower")
    subparsers = parser.add_subparsers(dest="command", required=True)

    restructure_parser = subparsers.add_parser(
        "restructure", help="Apply configured transformations to a codebase"
    )
    restructure_parser.add_argument(
        "--solution", required=True, help="Codebase root to restructure"
    )
    restructure_parser.add_argument(
        "--config",
        required=True,
        help="Transformation list (JSON, or TOML when the file ends in .toml)",
    )
    _add_verbose(restructure_parser)

    generate_parser = subparsers.add_parser(
        "generate", help="Scaffold an architecture template"
    )
    generate_parser.add_argument("--solution", required=True, help="Codebase root")
    generate_parser.add_argument(
        "--template",
        default="cleanarchitecture",
        help=f"Architecture template ({', '.join(sorted(TEMPLATES))})",
    )
    _add_verbose(generate_parser)

    restore_parser = subparsers.add_parser(
        "restore", help="Restore a codebase from a backup snapshot"
    )
    restore_parser.add_argument(
        "--backup", default=None, help="Snapshot directory to restore"
    )
    restore_parser.add_argument(
        "--solution",
        default=None,
        help="Codebase root; restores its latest snapshot unless --backup is given",
    )
    _add_verbose(restore_parser)

    return parser


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _resolve_existing(value: str, label: str) -> Path | None:
    path = Path(value).expanduser().resolve()
    if not path.exists():
        sys.stderr.write(f"{label}: {path}\n")
        sys.stderr.write("error: path does not exist\n")
        return None
    return path


def _report_failure(exc: Exception) -> int:
    logger.error("{}", exc)
    for detail in getattr(exc, "details", ()):
        logger.error("  {}", detail)
    if isinstance(exc, RestructuringError):
        logger.info("The backup taken before the run is untouched; use 'codetower restore' to recover")
    return 1


def _handle_restructure(solution: str, config: str) -> int:
    root = _resolve_existing(solution, "solution")
    config_path = _resolve_existing(config, "config")
    if root is None or config_path is None:
        return 2

    try:
        transformations = load_transformations(config_path)
        engine = build_engine(root)
        result = engine.run(root, transformations)
    except (RestructuringError, ConfigError) as exc:
        return _report_failure(exc)

    logger.info(
        "Restructured {}: {} file(s) written, {} deleted",
        root,
        len(result.written),
        len(result.deleted),
    )
    return 0


def _handle_generate(solution: str, template: str) -> int:
    root = _resolve_existing(solution, "solution")
    if root is None:
        return 2

    try:
        transformations = template_transformations(template)
        engine = build_engine(root)
        result = engine.run(root, transformations)
    except (RestructuringError, ConfigError) as exc:
        return _report_failure(exc)

    logger.info("Generated {} template: {} file(s) written", template, len(result.written))
    return 0


def _handle_restore(backup: str | None, solution: str | None) -> int:
    if backup is None and solution is None:
        sys.stderr.write("error: restore needs --backup or --solution\n")
        return 2

    try:
        if solution is not None:
            root = _resolve_existing(solution, "solution")
            if root is None:
                return 2
            service = BackupService(backup_folder_name(root, load_config(root)))
        else:
            service = BackupService()

        if backup is not None:
            snapshot_dir = _resolve_existing(backup, "backup")
            if snapshot_dir is None:
                return 2
            snapshot = service.load_snapshot(snapshot_dir)
        else:
            snapshots = service.list_backups(root)
            if not snapshots:
                sys.stderr.write(f"error: no backups found under {root}\n")
                return 2
            snapshot = snapshots[-1]

        service.restore_backup(snapshot)
        result = verify_snapshot(snapshot)
    except FileNotFoundError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    except (ConfigError, OSError, ValueError) as exc:
        return _report_failure(exc)

    if not result.ok:
        for label, paths in (
            ("missing", result.missing),
            ("mismatches", result.mismatches),
        ):
            for path in paths:
                sys.stderr.write(f"{label}: {path}\n")
        return 1
    for path in result.extra:
        logger.debug("Not in backup, left in place: {}", path)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if args.command == "restructure":
        return _handle_restructure(args.solution, args.config)

    if args.command == "generate":
        return _handle_generate(args.solution, args.template)

    if args.command == "restore":
        return _handle_restore(args.backup, args.solution)

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
