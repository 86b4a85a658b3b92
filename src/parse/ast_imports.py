"""AST-based import analysis for codetower."""

from __future__ import annotations

import ast
from dataclasses import dataclass


@dataclass(frozen=True)
class ImportRef:
    """One imported name.

    ``module`` is the module as written (relative imports keep their dots in
    ``level``); ``name`` is the imported attribute for from-imports and ""
    for plain imports.
    """

    lineno: int
    module: str
    name: str
    level: int = 0


def extract_imports(source: str, filename: str = "<unknown>") -> list[ImportRef]:
    """Extract import statements from Python source text.

    Every import statement anywhere in the module is reported, in source
    order. Unparsable source yields no imports.
    """
    try:
        tree = ast.parse(source, filename)
    except (SyntaxError, ValueError):
        return []

    imports: list[ImportRef] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(node.lineno, alias.name, "") for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            module = node.module or ""
            imports.extend(
                ImportRef(node.lineno, module, alias.name, node.level)
                for alias in node.names
            )

    imports.sort(key=lambda ref: ref.lineno)
    return imports


def resolve_relative_import(
    importing_module: str,
    relative_module: str,
    level: int,
    *,
    is_package: bool = False,
) -> str:
    """Resolve a relative import to an absolute module name.

    Args:
        importing_module: The module doing the import (e.g., "pkg.sub.mod")
        relative_module: The relative module name (e.g., "foo" from ".foo")
        level: Number of dots (1 for ".", 2 for "..", etc.)
        is_package: True when the importing module is a package
            ``__init__``, whose "." is the package itself

    Returns:
        Absolute module name (e.g., "pkg.sub.foo")

    Examples:
        >>> resolve_relative_import("pkg.sub.mod", "foo", 1)
        'pkg.sub.foo'
        >>> resolve_relative_import("pkg.sub.mod", "", 1)
        'pkg.sub'
        >>> resolve_relative_import("pkg.sub.mod", "bar", 2)
        'pkg.bar'
        >>> resolve_relative_import("pkg.sub", "mod", 1, is_package=True)
        'pkg.sub.mod'
    """
    if level <= 0:
        return relative_module

    parts = importing_module.split(".")
    if is_package:
        parts.append("__init__")

    if level > len(parts):
        return relative_module or importing_module

    base_parts = parts[: len(parts) - level]

    if relative_module:
        return ".".join([*base_parts, relative_module])
    if base_parts:
        return ".".join(base_parts)
    return importing_module
