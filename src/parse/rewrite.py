"""Rewrite module references in Python source after a namespace rename.

Only import statements and dotted attribute chains rooted at a plainly
imported package are touched; every other byte of the source is preserved.
Relative imports stay relative as long as both ends move together.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from parse.ast_imports import resolve_relative_import
from utils import is_within, rebase_identifier


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: str


class _Offsets:
    """Translate ast (lineno, utf-8 column) positions into byte offsets."""

    def __init__(self, data: bytes) -> None:
        self._line_starts = [0]
        for line in data.splitlines(keepends=True):
            self._line_starts.append(self._line_starts[-1] + len(line))

    def at(self, lineno: int, col: int) -> int:
        return self._line_starts[lineno - 1] + col

    def span(self, node: ast.expr | ast.stmt) -> tuple[int, int]:
        assert node.end_lineno is not None
        assert node.end_col_offset is not None
        return (
            self.at(node.lineno, node.col_offset),
            self.at(node.end_lineno, node.end_col_offset),
        )


def _alias(name: str, asname: str | None) -> ast.alias:
    return ast.alias(name=name, asname=asname)


def _copy_aliases(names: list[ast.alias]) -> list[ast.alias]:
    return [_alias(alias.name, alias.asname) for alias in names]


def _dotted(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = _dotted(node.value)
        return f"{base}.{node.attr}" if base is not None else None
    return None


def _rename_import(node: ast.Import, old: str, new: str) -> list[ast.stmt] | None:
    renamed_any = False
    aliases: list[ast.alias] = []
    for alias in node.names:
        renamed = rebase_identifier(alias.name, old, new)
        if renamed is None:
            aliases.append(_alias(alias.name, alias.asname))
        else:
            renamed_any = True
            aliases.append(_alias(renamed, alias.asname))
    return [ast.Import(names=aliases)] if renamed_any else None


def _retarget_from(
    node: ast.ImportFrom,
    absolute: str,
    old: str,
    new: str,
) -> list[ast.stmt] | None:
    renamed_module = rebase_identifier(absolute, old, new)
    if renamed_module is not None:
        return [ast.ImportFrom(module=renamed_module, names=_copy_aliases(node.names), level=0)]

    kept: list[ast.alias] = []
    moved: list[ast.alias] = []
    for alias in node.names:
        if alias.name != "*" and f"{absolute}.{alias.name}" == old:
            moved.append(alias)
        else:
            kept.append(alias)
    if not moved:
        return None

    statements: list[ast.stmt] = []
    if kept:
        statements.append(
            ast.ImportFrom(module=node.module, names=_copy_aliases(kept), level=node.level)
        )

    new_parent, _, new_leaf = new.rpartition(".")
    for alias in moved:
        local = alias.asname or alias.name
        asname = None if local == new_leaf else local
        if new_parent:
            statements.append(
                ast.ImportFrom(module=new_parent, names=[_alias(new_leaf, asname)], level=0)
            )
        else:
            statements.append(ast.Import(names=[_alias(new_leaf, asname)]))
    return statements


def _rename_import_from(
    node: ast.ImportFrom,
    old: str,
    new: str,
    module_name: str | None,
    is_package: bool,
) -> list[ast.stmt] | None:
    if node.level == 0:
        return _retarget_from(node, node.module or "", old, new)

    if module_name is None:
        return None

    absolute = resolve_relative_import(
        module_name, node.module or "", node.level, is_package=is_package
    )
    importer_moves = is_within(module_name, old)
    if importer_moves and is_within(absolute, old):
        return None

    statements = _retarget_from(node, absolute, old, new)
    if statements is None and importer_moves:
        # The importer leaves, the imported module stays: pin it absolutely.
        return [ast.ImportFrom(module=absolute, names=_copy_aliases(node.names), level=0)]
    return statements


def _binds_root_package(tree: ast.Module, old: str) -> bool:
    """True when a plain ``import`` binds the first segment of ``old``."""
    root = old.split(".", 1)[0]
    return any(
        isinstance(node, ast.Import)
        and any(
            alias.asname is None and alias.name.split(".", 1)[0] == root
            for alias in node.names
        )
        for node in ast.walk(tree)
    )


def _statement_edit(
    node: ast.stmt,
    statements: list[ast.stmt],
    data: bytes,
    offsets: _Offsets,
) -> _Edit:
    start, end = offsets.span(node)
    prefix = data[offsets.at(node.lineno, 0) : start].decode("utf-8")
    separator = f"\n{prefix}" if not prefix.strip() else "; "
    return _Edit(start, end, separator.join(ast.unparse(stmt) for stmt in statements))


def _chain_edits(tree: ast.Module, old: str, new: str, offsets: _Offsets) -> list[_Edit]:
    edits: list[_Edit] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Name, ast.Attribute)):
            continue
        if not isinstance(node.ctx, ast.Load) or _dotted(node) != old:
            continue
        start, end = offsets.span(node)
        edits.append(_Edit(start, end, new))
    return edits


def rename_module_references(
    source: str,
    old: str,
    new: str,
    *,
    module_name: str | None = None,
    is_package: bool = False,
) -> str:
    """Return ``source`` with every reference to package ``old`` renamed to ``new``.

    Args:
        source: Python source text
        old: Dotted name being renamed (e.g. "shop.orders")
        new: Replacement dotted name
        module_name: Dotted name of the module holding ``source``; needed to
            resolve relative imports
        is_package: True when ``source`` is a package ``__init__``

    Unparsable source is returned unchanged.
    """
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        return source

    data = source.encode("utf-8")
    offsets = _Offsets(data)
    edits: list[_Edit] = []

    for node in ast.walk(tree):
        statements: list[ast.stmt] | None
        if isinstance(node, ast.Import):
            statements = _rename_import(node, old, new)
        elif isinstance(node, ast.ImportFrom):
            statements = _rename_import_from(node, old, new, module_name, is_package)
        else:
            continue
        if statements is not None:
            edits.append(_statement_edit(node, statements, data, offsets))

    if _binds_root_package(tree, old):
        edits.extend(_chain_edits(tree, old, new, offsets))

    if not edits:
        return source

    for edit in sorted(edits, key=lambda e: e.start, reverse=True):
        data = data[: edit.start] + edit.text.encode("utf-8") + data[edit.end :]
    return data.decode("utf-8")


__all__ = ["rename_module_references"]
