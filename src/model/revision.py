"""Immutable snapshots of the in-memory code model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import TYPE_CHECKING

from utils import identifier_to_path, path_to_module

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from pathlib import Path


@dataclass(frozen=True)
class Document:
    """A source file: root-relative posix path and full text."""

    path: str
    text: str

    @property
    def is_python(self) -> bool:
        return self.path.endswith(".py")

    @property
    def is_package_init(self) -> bool:
        return self.path.rsplit("/", 1)[-1] == "__init__.py"


@dataclass(frozen=True)
class Unit:
    """A top-level project of the codebase and the units it references."""

    name: str
    references: frozenset[str] = frozenset()


def _frozen(mapping: Mapping[str, object] | None = None) -> MappingProxyType:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, eq=False)
class Revision:
    """The whole code model after zero or more staged edits.

    Revisions are never mutated: every edit returns a new Revision with a
    higher ``number``. ``persisted`` holds the paths that existed on disk
    when the model was opened; ``changed`` the paths that must be written
    when the revision is applied.
    """

    root: Path
    documents: Mapping[str, Document] = field(default_factory=_frozen)
    units: Mapping[str, Unit] = field(default_factory=_frozen)
    source_root: str = ""
    persisted: frozenset[str] = frozenset()
    changed: frozenset[str] = frozenset()
    units_changed: bool = False
    number: int = 0

    @classmethod
    def open(
        cls,
        root: Path,
        documents: Iterable[Document],
        units: Iterable[Unit] = (),
        *,
        source_root: str = "",
    ) -> Revision:
        by_path = {document.path: document for document in documents}
        return cls(
            root=root,
            documents=_frozen(by_path),
            units=_frozen({unit.name: unit for unit in units}),
            source_root=source_root,
            persisted=frozenset(by_path),
        )

    def _next(self, **changes: object) -> Revision:
        return replace(self, number=self.number + 1, **changes)  # type: ignore[arg-type]

    # Queries

    def __contains__(self, path: object) -> bool:
        return path in self.documents

    def document(self, path: str) -> Document | None:
        return self.documents.get(path)

    def paths(self) -> tuple[str, ...]:
        return tuple(sorted(self.documents))

    def python_documents(self) -> Iterator[Document]:
        for path in self.paths():
            document = self.documents[path]
            if document.is_python:
                yield document

    def folder_for(self, identifier: str) -> str:
        return identifier_to_path(identifier, self.source_root)

    def module_name(self, path: str) -> str | None:
        """Dotted module name of ``path``, or None outside the source root."""
        try:
            return path_to_module(path, self.source_root)
        except ValueError:
            return None

    @cached_property
    def namespaces(self) -> frozenset[str]:
        """Every package identifier that holds at least one Python file."""
        found: set[str] = set()
        for document in self.python_documents():
            module = self.module_name(document.path)
            if module is None:
                continue
            parts = module.split(".")
            depth = len(parts) if document.is_package_init else len(parts) - 1
            for end in range(1, depth + 1):
                found.add(".".join(parts[:end]))
        return frozenset(found)

    def has_namespace(self, identifier: str) -> bool:
        return identifier in self.namespaces

    def is_module(self, identifier: str) -> bool:
        return f"{self.folder_for(identifier)}.py" in self.documents

    def paths_under(self, identifier: str) -> tuple[str, ...]:
        prefix = self.folder_for(identifier) + "/"
        return tuple(path for path in self.paths() if path.startswith(prefix))

    # Edits

    def with_document(self, document: Document) -> Revision:
        documents = dict(self.documents)
        documents[document.path] = document
        return self._next(
            documents=_frozen(documents),
            changed=self.changed | {document.path},
        )

    def relocate(self, moves: Mapping[str, str]) -> Revision:
        """Move documents ``old path -> new path`` in one step."""
        if not moves:
            return self
        documents = {
            path: document
            for path, document in self.documents.items()
            if path not in moves
        }
        for old_path, new_path in moves.items():
            documents[new_path] = Document(new_path, self.documents[old_path].text)
        changed = (self.changed - set(moves)) | set(moves.values())
        return self._next(documents=_frozen(documents), changed=changed)

    def with_unit(self, unit: Unit) -> Revision:
        units = dict(self.units)
        existing = units.get(unit.name)
        if existing is not None:
            unit = Unit(unit.name, existing.references | unit.references)
        units[unit.name] = unit
        return self._next(units=_frozen(units), units_changed=True)

    def rename_unit(self, old: str, new: str) -> Revision:
        if old not in self.units:
            return self
        units: dict[str, Unit] = {}
        for name, unit in self.units.items():
            references = frozenset(new if ref == old else ref for ref in unit.references)
            renamed = new if name == old else name
            if renamed in units:
                references |= units[renamed].references
            units[renamed] = Unit(renamed, references)
        return self._next(units=_frozen(units), units_changed=True)


__all__ = ["Document", "Revision", "Unit"]
