"""Code model provider for trees of Python packages."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

import orjson
from loguru import logger

from model.provider import Declaration
from model.revision import Document, Revision, Unit
from parse.ast_imports import extract_imports, resolve_relative_import
from parse.declarations import (
    ClassSpan,
    absolute_imports,
    class_source,
    find_top_level_classes,
    remove_class,
)
from parse.rewrite import rename_module_references
from rules.config import (
    CodeTowerConfig,
    ConfigError,
    backup_folder_name,
    normalized_source_root,
)
from scan.files import find_python_files
from utils import parent_identifier, snake_case

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

UNITS_MANIFEST = "codetower.units.json"


def _has_wildcard(name: str) -> bool:
    return "*" in name or "?" in name


def _name_matches(candidate: str, name: str) -> bool:
    if _has_wildcard(name):
        return fnmatchcase(candidate, name)
    return candidate == name


def _containing_namespace(revision: Revision, dotted: str) -> str | None:
    """Namespace holding whatever ``dotted`` points at, if it is in the tree."""
    parts = dotted.split(".")
    for end in range(len(parts), 0, -1):
        prefix = ".".join(parts[:end])
        if revision.has_namespace(prefix):
            return prefix
        if revision.is_module(prefix):
            return parent_identifier(prefix) or None
    return None


class PythonCodeModel:
    """Treats a codebase root as a tree of Python packages.

    Namespaces are package folders below the configured source root, units
    are the top-level packages, declarations are top-level classes, and
    references are import statements only. Renames additionally rewrite
    dotted attribute chains, but those never feed the dependency graph.
    """

    def __init__(self, config: CodeTowerConfig | None = None) -> None:
        self._config = config or CodeTowerConfig()

    def open(self, root: Path) -> Revision:
        root = root.resolve()
        source_root = normalized_source_root(root, self._config)
        backup_dir = backup_folder_name(root, self._config)

        documents = [
            Document(
                path.relative_to(root).as_posix(),
                path.read_bytes().decode("utf-8"),
            )
            for path in find_python_files(
                root,
                excluded_dirs=(backup_dir,),
                include_patterns=self._config.include or None,
                exclude_patterns=self._config.exclude or None,
                nested_gitignore=self._config.nested_gitignore,
            )
        ]

        discovered = Revision.open(root, documents, source_root=source_root)
        units = self._load_units(root, discovered)
        revision = Revision.open(root, documents, units, source_root=source_root)
        logger.debug(
            "Opened {} with {} module(s) in {} unit(s)",
            root,
            len(documents),
            len(revision.units),
        )
        return revision

    def _load_units(self, root: Path, revision: Revision) -> list[Unit]:
        names = {ns for ns in revision.namespaces if "." not in ns}
        references: dict[str, frozenset[str]] = {}

        manifest = root / UNITS_MANIFEST
        if manifest.is_file():
            try:
                data = orjson.loads(manifest.read_bytes())
            except orjson.JSONDecodeError as exc:
                msg = f"Invalid JSON in {manifest}: {exc}"
                raise ConfigError(msg) from exc
            entries = data.get("units") if isinstance(data, dict) else None
            if not isinstance(entries, dict):
                msg = f"{manifest} must hold a 'units' mapping"
                raise ConfigError(msg)
            for name, refs in entries.items():
                if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
                    msg = f"{manifest}: references of {name!r} must be a list of names"
                    raise ConfigError(msg)
                references[name] = frozenset(refs)
                names.add(name)

        return [Unit(name, references.get(name, frozenset())) for name in sorted(names)]

    # Lookup

    def find_namespaces(self, revision: Revision, name: str) -> list[Declaration]:
        if not revision.has_namespace(name):
            return []
        return [Declaration("namespace", name, name, revision.folder_for(name))]

    def find_namespaces_by_pattern(
        self, revision: Revision, pattern: str
    ) -> list[Declaration]:
        return [
            Declaration("namespace", ns, ns, revision.folder_for(ns))
            for ns in sorted(revision.namespaces)
            if fnmatchcase(ns, pattern)
        ]

    def find_declarations(self, revision: Revision, name: str) -> list[Declaration]:
        """Top-level classes named ``name`` (or matching it), in path order."""
        found: list[Declaration] = []
        for document in revision.python_documents():
            module = revision.module_name(document.path)
            if module is None:
                continue
            for span in find_top_level_classes(document.text):
                if _name_matches(span.name, name):
                    found.append(
                        Declaration(
                            kind="class",
                            name=span.name,
                            qualified_name=f"{module}.{span.name}",
                            path=document.path,
                            lineno=span.lineno,
                            start_lineno=span.start_lineno,
                            end_lineno=span.end_lineno,
                        )
                    )
        return found

    # Edits

    def rename_namespace(self, revision: Revision, old: str, new: str) -> Revision:
        rewritten = 0
        for document in list(revision.python_documents()):
            text = rename_module_references(
                document.text,
                old,
                new,
                module_name=revision.module_name(document.path),
                is_package=document.is_package_init,
            )
            if text != document.text:
                revision = revision.with_document(Document(document.path, text))
                rewritten += 1
        logger.debug("Rewrote references in {} module(s): {} -> {}", rewritten, old, new)
        return revision

    def _class_span(self, revision: Revision, declaration: Declaration) -> tuple[Document, ClassSpan]:
        document = revision.document(declaration.path)
        if document is None:
            msg = f"{declaration.path} is not part of revision {revision.number}"
            raise LookupError(msg)
        for span in find_top_level_classes(document.text):
            if span.name == declaration.name and span.lineno == declaration.lineno:
                return document, span
        msg = f"class {declaration.name} no longer at {declaration.path}:{declaration.lineno}"
        raise LookupError(msg)

    def remove_declaration(self, revision: Revision, declaration: Declaration) -> Document:
        document, span = self._class_span(revision, declaration)
        return Document(document.path, remove_class(document.text, span))

    def synthesize_document(
        self, revision: Revision, declaration: Declaration, target: str
    ) -> Document:
        document, span = self._class_span(revision, declaration)
        module = revision.module_name(document.path) or ""
        imports = absolute_imports(
            document.text, module, is_package=document.is_package_init
        )

        header = f'"""{declaration.name}, extracted from {module}."""\n'
        if imports:
            header += "\n" + "\n".join(imports) + "\n"
        text = f"{header}\n\n{class_source(document.text, span)}"

        path = f"{revision.folder_for(target)}/{snake_case(declaration.name)}.py"
        return Document(path, text)

    # Analysis

    def iter_references(
        self, revision: Revision, document: Document
    ) -> Iterator[tuple[str, str]]:
        """Yield ``(enclosing namespace, referenced namespace)`` once per pair.

        Only references that resolve inside the revision are reported;
        standard library and third-party imports are not part of the model.
        """
        module = revision.module_name(document.path)
        if module is None:
            return
        enclosing = module if document.is_package_init else parent_identifier(module)
        if not enclosing:
            return

        seen: set[str] = set()
        for ref in extract_imports(document.text, document.path):
            absolute = ref.module
            if ref.level:
                absolute = resolve_relative_import(
                    module, ref.module, ref.level, is_package=document.is_package_init
                )
            dotted = f"{absolute}.{ref.name}" if ref.name and ref.name != "*" else absolute
            target = _containing_namespace(revision, dotted)
            if target is None or target == enclosing or target in seen:
                continue
            seen.add(target)
            yield enclosing, target

    # Persistence

    def apply(self, revision: Revision) -> bool:
        """Write every changed document (and the units manifest) to disk."""
        root = revision.root
        try:
            for path in sorted(revision.changed):
                document = revision.document(path)
                if document is None:
                    continue
                destination = root / path
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(document.text.encode("utf-8"))
                logger.debug("Wrote {}", path)
            if revision.units_changed:
                self._write_units(root, revision)
        except OSError as exc:
            logger.error("Failed to apply revision {}: {}", revision.number, exc)
            return False
        return True

    def _write_units(self, root: Path, revision: Revision) -> None:
        manifest = root / UNITS_MANIFEST
        wired = {
            name: sorted(unit.references)
            for name, unit in revision.units.items()
            if unit.references
        }
        if not wired and not manifest.exists():
            return
        opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
        manifest.write_bytes(orjson.dumps({"units": wired}, option=opts) + b"\n")
        logger.debug("Wrote {} with {} unit(s)", UNITS_MANIFEST, len(wired))


__all__ = ["UNITS_MANIFEST", "PythonCodeModel"]
