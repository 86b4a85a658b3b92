"""Contract between the restructuring core and a code model provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from model.revision import Document, Revision

DeclarationKind = Literal["namespace", "class"]


@dataclass(frozen=True)
class Declaration:
    """A named declaration found in a revision.

    For namespaces ``path`` is the folder and the line numbers are 0.
    """

    kind: DeclarationKind
    name: str
    qualified_name: str
    path: str
    lineno: int = 0
    start_lineno: int = 0
    end_lineno: int = 0


class CodeModelProvider(Protocol):
    """Everything the engine needs from a language-aware code model."""

    def open(self, root: Path) -> Revision: ...

    def find_namespaces(self, revision: Revision, name: str) -> list[Declaration]: ...

    def find_namespaces_by_pattern(
        self, revision: Revision, pattern: str
    ) -> list[Declaration]: ...

    def find_declarations(self, revision: Revision, name: str) -> list[Declaration]: ...

    def rename_namespace(self, revision: Revision, old: str, new: str) -> Revision: ...

    def remove_declaration(
        self, revision: Revision, declaration: Declaration
    ) -> Document: ...

    def synthesize_document(
        self, revision: Revision, declaration: Declaration, target: str
    ) -> Document: ...

    def iter_references(
        self, revision: Revision, document: Document
    ) -> Iterator[tuple[str, str]]: ...

    def apply(self, revision: Revision) -> bool: ...


__all__ = ["CodeModelProvider", "Declaration", "DeclarationKind"]
