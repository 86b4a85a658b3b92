"""Locate, copy and remove top-level class declarations."""

from __future__ import annotations

import ast
import io
import re
from dataclasses import dataclass

from parse.ast_imports import resolve_relative_import

_EXCESS_BLANK_LINES = re.compile(r"\n{4,}")


@dataclass(frozen=True)
class ClassSpan:
    """Line range of a top-level class, decorators included."""

    name: str
    lineno: int
    start_lineno: int
    end_lineno: int


def _lines(source: str) -> list[str]:
    return io.StringIO(source, newline="").readlines()


def _parse(source: str) -> ast.Module | None:
    try:
        return ast.parse(source)
    except (SyntaxError, ValueError):
        return None


def find_top_level_classes(source: str) -> list[ClassSpan]:
    tree = _parse(source)
    if tree is None:
        return []

    spans: list[ClassSpan] = []
    for node in tree.body:
        if not isinstance(node, ast.ClassDef):
            continue
        start = min([node.lineno, *(d.lineno for d in node.decorator_list)])
        spans.append(
            ClassSpan(
                name=node.name,
                lineno=node.lineno,
                start_lineno=start,
                end_lineno=node.end_lineno or node.lineno,
            )
        )
    return spans


def class_source(source: str, span: ClassSpan) -> str:
    return "".join(_lines(source)[span.start_lineno - 1 : span.end_lineno]).rstrip() + "\n"


def remove_class(source: str, span: ClassSpan) -> str:
    """Drop the class lines and tidy the blank lines left behind."""
    lines = _lines(source)
    remaining = "".join(lines[: span.start_lineno - 1] + lines[span.end_lineno :])
    remaining = _EXCESS_BLANK_LINES.sub("\n\n\n", remaining)
    if not remaining.strip():
        return ""
    return remaining.rstrip("\n") + "\n"


def absolute_imports(source: str, module_name: str, *, is_package: bool = False) -> list[str]:
    """Top-level import statements of ``source``, relative ones made absolute.

    ``from __future__`` imports come first so the block stays valid when it
    is pasted into a new module.
    """
    tree = _parse(source)
    if tree is None:
        return []

    future: list[str] = []
    statements: list[str] = []
    for node in tree.body:
        if isinstance(node, ast.Import):
            statements.append(ast.unparse(node))
        elif isinstance(node, ast.ImportFrom):
            if node.module == "__future__":
                future.append(ast.unparse(node))
                continue
            module = node.module or ""
            if node.level:
                module = resolve_relative_import(
                    module_name, module, node.level, is_package=is_package
                )
            absolute = ast.ImportFrom(
                module=module,
                names=[ast.alias(name=a.name, asname=a.asname) for a in node.names],
                level=0,
            )
            statements.append(ast.unparse(absolute))
    return future + statements


__all__ = [
    "ClassSpan",
    "absolute_imports",
    "class_source",
    "find_top_level_classes",
    "remove_class",
]
