"""The restructuring state machine.

A run is ``initialize`` (backup, then open the code model), any number of
``apply_transformation`` calls that only stage edits on the in-memory
Revision, and a single ``commit_changes`` that writes the final Revision
and performs every deletion. Any failure before commit leaves the tree on
disk as it was.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from analysis.analyzer import DependencyAnalyzer
from backup.service import BackupService
from engine.errors import (
    CommitFailure,
    EngineStateError,
    InitializationError,
    RelocationConflict,
    UnsupportedTransformation,
    ValidationConflict,
)
from engine.transformations import (
    ExtractClass,
    GenerateLayer,
    MoveNamespace,
    RenameNamespace,
)
from model.python_model import PythonCodeModel
from model.revision import Document, Unit
from rules.config import CodeTowerConfig, backup_folder_name, load_config
from rules.layers import DEFAULT_LAYER_REFERENCES, layer_references
from utils import snake_case

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from analysis.analyzer import ValidationResult
    from backup.service import BackupSnapshot
    from engine.transformations import Transformation
    from model.provider import CodeModelProvider
    from model.revision import Revision
    from rules.config import LayersConfig

TEMP_MARKER = "__codetower_tmp_"

_SUPPORTED = (MoveNamespace, RenameNamespace, ExtractClass, GenerateLayer)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    APPLYING = "applying"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitResult:
    written: tuple[str, ...]
    deleted: tuple[str, ...]


def _path_taken(revision: Revision, path: str) -> bool:
    """True when writing ``path`` would clobber a live document or an unscanned file."""
    if path in revision:
        return True
    return path not in revision.persisted and (revision.root / path).exists()


def _placeholder_init(identifier: str) -> str:
    return f'"""{identifier.rsplit(".", 1)[-1]} package."""\n'


def _service_stub(layer: str, namespace: str, subfolder: str) -> str:
    return (
        f'"""{subfolder} services of the {layer} layer."""\n'
        "\n\n"
        f"class {subfolder}Service:\n"
        f'    """Entry point for {namespace}."""\n'
        "\n"
        "    def execute(self) -> None:\n"
        "        pass\n"
    )


class RestructuringEngine:
    """Validates, stages and commits transformations against one codebase."""

    def __init__(
        self,
        provider: CodeModelProvider,
        analyzer: DependencyAnalyzer,
        backup_service: BackupService,
        *,
        layers: LayersConfig | None = None,
    ) -> None:
        self._provider = provider
        self._analyzer = analyzer
        self._backup = backup_service
        self._layer_references: Mapping[str, Sequence[str]] = (
            layers.references if layers is not None else DEFAULT_LAYER_REFERENCES
        )
        self._state = EngineState.UNINITIALIZED
        self._revision: Revision | None = None
        self._snapshot: BackupSnapshot | None = None
        self._pending_deletes: set[str] = set()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def revision(self) -> Revision | None:
        return self._revision

    @property
    def snapshot(self) -> BackupSnapshot | None:
        return self._snapshot

    @property
    def pending_deletes(self) -> frozenset[str]:
        return frozenset(self._pending_deletes)

    def _require(self, *states: EngineState, operation: str) -> Revision:
        if self._state not in states:
            msg = f"Cannot {operation} while the engine is {self._state.value}"
            raise EngineStateError(msg)
        if self._revision is None and self._state is not EngineState.UNINITIALIZED:
            msg = f"Cannot {operation}: no revision is open"
            raise EngineStateError(msg)
        return self._revision  # type: ignore[return-value]

    # Lifecycle

    def initialize(self, root: Path) -> Revision:
        """Back up ``root`` and open the initial revision."""
        self._require(EngineState.UNINITIALIZED, operation="initialize")
        logger.info("Initializing {}", root)
        try:
            self._snapshot = self._backup.create_backup(root)
            self._revision = self._provider.open(root)
        except Exception as exc:
            self._state = EngineState.FAILED
            msg = f"Failed to initialize {root}: {exc}"
            raise InitializationError(msg) from exc

        self._state = EngineState.READY
        logger.info(
            "Initialized {} ({} module(s), backup at {})",
            root,
            len(self._revision.documents),
            self._snapshot.path,
        )
        return self._revision

    def validate(self, transformation: Transformation) -> ValidationResult:
        """Check ``transformation`` against the current revision without staging it."""
        revision = self._require(
            EngineState.READY, EngineState.APPLYING, operation="validate"
        )
        return self._analyzer.validate(revision, transformation)

    def apply_transformation(self, transformation: Transformation) -> Revision:
        """Validate and stage one transformation.

        Raises:
            ValidationConflict: The move would violate layers or close a cycle.
            UnsupportedTransformation: ``transformation`` is of an unknown kind.
            RelocationConflict: A staged file would overwrite another file.
        """
        revision = self._require(
            EngineState.READY, EngineState.APPLYING, operation="apply a transformation"
        )
        self._state = EngineState.APPLYING
        try:
            if not isinstance(transformation, _SUPPORTED):
                msg = f"Transformation type not supported: {type(transformation).__name__}"
                raise UnsupportedTransformation(msg)

            result = self._analyzer.validate(revision, transformation)
            if not result.ok:
                msg = (
                    f"{transformation.type} {transformation.source} -> "
                    f"{transformation.target} has {len(result.conflicts)} "
                    "dependency conflict(s)"
                )
                raise ValidationConflict(msg, result.conflicts)

            deletes: set[str] = set()
            revision = self._dispatch(revision, transformation, deletes)
        except Exception:
            self._state = EngineState.FAILED
            raise

        self._revision = revision
        self._pending_deletes |= deletes
        logger.info(
            "Staged {} {} -> {} (revision {})",
            transformation.type,
            transformation.source or "-",
            transformation.target,
            revision.number,
        )
        return revision

    def run(self, root: Path, transformations: Iterable[Transformation]) -> CommitResult:
        """Initialize, apply every transformation in order, then commit."""
        self.initialize(root)
        for transformation in transformations:
            self.apply_transformation(transformation)
        return self.commit_changes()

    def commit_changes(self) -> CommitResult:
        """Write the current revision, then delete the staged paths.

        Raises:
            CommitFailure: Writing or deleting failed. The backup taken at
                initialize is the recovery point.
        """
        revision = self._require(
            EngineState.READY, EngineState.APPLYING, operation="commit"
        )
        try:
            applied = self._provider.apply(revision)
            if not applied:
                msg = f"Failed to write revision {revision.number} to {revision.root}"
                raise CommitFailure(msg)
            deleted = self._delete_pending(revision)
        except OSError as exc:
            self._state = EngineState.FAILED
            msg = f"Failed to commit revision {revision.number}: {exc}"
            raise CommitFailure(msg) from exc
        except CommitFailure:
            self._state = EngineState.FAILED
            raise

        self._pending_deletes.clear()
        self._state = EngineState.COMMITTED
        written = tuple(sorted(revision.changed))
        logger.info("Committed {} written, {} deleted", len(written), len(deleted))
        return CommitResult(written, deleted)

    def _delete_pending(self, revision: Revision) -> tuple[str, ...]:
        deleted: list[str] = []
        for path in sorted(self._pending_deletes):
            if path in revision:
                continue
            target = revision.root / path
            target.unlink(missing_ok=True)
            deleted.append(path)
            logger.debug("Deleted {}", path)
            self._prune_empty_parents(revision.root, target.parent)
        return tuple(deleted)

    @staticmethod
    def _prune_empty_parents(root: Path, folder: Path) -> None:
        root = root.resolve()
        folder = folder.resolve()
        while folder != root and folder.is_relative_to(root):
            if not folder.is_dir() or any(folder.iterdir()):
                return
            folder.rmdir()
            folder = folder.parent

    # Dispatch

    def _dispatch(
        self, revision: Revision, transformation: Transformation, deletes: set[str]
    ) -> Revision:
        if isinstance(transformation, (MoveNamespace, RenameNamespace)):
            return self._move_namespace(
                revision, transformation.source, transformation.target, deletes
            )
        if isinstance(transformation, ExtractClass):
            return self._extract_class(revision, transformation)
        if isinstance(transformation, GenerateLayer):
            return self._generate_layer(revision, transformation)
        msg = f"Transformation type not supported: {type(transformation).__name__}"
        raise UnsupportedTransformation(msg)

    def _temporary_identifier(self, revision: Revision, source: str) -> str:
        while True:
            candidate = f"{source}.{TEMP_MARKER}{uuid.uuid4().hex[:6]}"
            if not (
                revision.has_namespace(candidate)
                or revision.is_module(candidate)
                or revision.paths_under(candidate)
            ):
                return candidate

    def _move_namespace(
        self, revision: Revision, source: str, target: str, deletes: set[str]
    ) -> Revision:
        if not self._provider.find_namespaces(revision, source):
            logger.warning("Namespace {} not found; nothing to move", source)
            return revision

        target_existed = revision.has_namespace(target)
        temporary = self._temporary_identifier(revision, source)
        revision = self._rename_namespace(revision, source, temporary, deletes)
        revision = self._rename_namespace(revision, temporary, target, deletes)

        top_level = target.split(".", 1)[0]
        if "." not in source and top_level != source:
            revision = revision.rename_unit(source, top_level)
        if top_level not in revision.units:
            revision = revision.with_unit(Unit(top_level))

        return self._ensure_initializer(revision, target, target_existed)

    def _rename_namespace(
        self, revision: Revision, old: str, new: str, deletes: set[str]
    ) -> Revision:
        revision = self._provider.rename_namespace(revision, old, new)
        return self._relocate(revision, old, new, deletes)

    def _relocate(
        self, revision: Revision, old: str, new: str, deletes: set[str]
    ) -> Revision:
        """Move the documents of ``old`` into the folder of ``new``."""
        old_folder = revision.folder_for(old)
        new_folder = revision.folder_for(new)
        moves = {
            path: new_folder + path[len(old_folder):]
            for path in revision.paths_under(old)
        }

        for old_path, new_path in moves.items():
            if new_path not in moves and _path_taken(revision, new_path):
                msg = f"Cannot move {old_path}: {new_path} already exists"
                raise RelocationConflict(msg, (old_path, new_path))

        deletes.update(path for path in moves if path in revision.persisted)
        logger.debug("Relocating {} file(s): {} -> {}", len(moves), old_folder, new_folder)
        return revision.relocate(moves)

    def _ensure_initializer(
        self, revision: Revision, identifier: str, existed: bool
    ) -> Revision:
        init_path = f"{revision.folder_for(identifier)}/__init__.py"
        if existed or init_path in revision:
            return revision
        logger.debug("Generating placeholder {}", init_path)
        return revision.with_document(Document(init_path, _placeholder_init(identifier)))

    def _extract_class(self, revision: Revision, transformation: ExtractClass) -> Revision:
        declarations = self._provider.find_declarations(revision, transformation.class_name)
        if not declarations:
            logger.warning("Class {} not found; nothing to extract", transformation.class_name)
            return revision

        declaration = declarations[0]
        extracted = self._provider.synthesize_document(
            revision, declaration, transformation.target_namespace
        )
        if _path_taken(revision, extracted.path):
            msg = f"Cannot extract {declaration.qualified_name}: {extracted.path} already exists"
            raise RelocationConflict(msg, (declaration.path, extracted.path))

        remaining = self._provider.remove_declaration(revision, declaration)
        logger.debug("Extracting {} into {}", declaration.qualified_name, extracted.path)
        return revision.with_document(remaining).with_document(extracted)

    def _generate_layer(self, revision: Revision, transformation: GenerateLayer) -> Revision:
        name = transformation.name
        references = frozenset(layer_references(name, self._layer_references))
        revision = revision.with_unit(Unit(name, references))

        files = {f"{revision.folder_for(name)}/__init__.py": f'"""{name} layer."""\n'}
        for subfolder in transformation.subfolders:
            namespace = f"{name}.{subfolder}"
            folder = revision.folder_for(namespace)
            files[f"{folder}/__init__.py"] = _placeholder_init(namespace)
            files[f"{folder}/{snake_case(subfolder)}_service.py"] = _service_stub(
                name, namespace, subfolder
            )

        for path, text in files.items():
            if _path_taken(revision, path):
                logger.debug("Keeping existing {}", path)
                continue
            revision = revision.with_document(Document(path, text))
        return revision


def build_engine(root: Path, config: CodeTowerConfig | None = None) -> RestructuringEngine:
    """Engine wired with the Python code model and ``root``'s configuration."""
    config = config or load_config(root)
    provider = PythonCodeModel(config)
    analyzer = DependencyAnalyzer(
        provider,
        layer_order=config.layers.order,
        cycle_mode=config.cycle_mode,
    )
    backup = BackupService(backup_folder_name(Path(root), config))
    return RestructuringEngine(provider, analyzer, backup, layers=config.layers)


__all__ = [
    "TEMP_MARKER",
    "CommitResult",
    "EngineState",
    "RestructuringEngine",
    "build_engine",
]
