"""Dependency analysis for codetower."""

from analysis.analyzer import (
    ConflictKind,
    DependencyAnalyzer,
    DependencyConflict,
    ValidationResult,
)

__all__ = [
    "ConflictKind",
    "DependencyAnalyzer",
    "DependencyConflict",
    "ValidationResult",
]
