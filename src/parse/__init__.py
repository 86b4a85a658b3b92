"""Parsing utilities for codetower."""

from parse.ast_imports import ImportRef, extract_imports, resolve_relative_import
from parse.declarations import (
    ClassSpan,
    absolute_imports,
    class_source,
    find_top_level_classes,
    remove_class,
)
from parse.rewrite import rename_module_references

__all__ = [
    "ClassSpan",
    "ImportRef",
    "absolute_imports",
    "class_source",
    "extract_imports",
    "find_top_level_classes",
    "remove_class",
    "rename_module_references",
    "resolve_relative_import",
]
