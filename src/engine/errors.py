"""Failure taxonomy of a restructuring run."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from analysis.analyzer import DependencyConflict


class RestructuringError(Exception):
    """Base class for every failure that aborts a run."""

    def __init__(self, message: str, details: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.details: tuple[str, ...] = tuple(details)


class InitializationError(RestructuringError):
    """Backup or opening the code model failed."""


class ValidationConflict(RestructuringError):
    """Dependency conflicts were found before anything was mutated."""

    def __init__(self, message: str, conflicts: Iterable[DependencyConflict]) -> None:
        self.conflicts: tuple[DependencyConflict, ...] = tuple(conflicts)
        super().__init__(
            message,
            (line for conflict in self.conflicts for line in conflict.diagnostics()),
        )


class UnsupportedTransformation(RestructuringError):
    """The transformation kind is not one the engine knows."""


class RelocationConflict(RestructuringError):
    """A staged file would land on a path already taken in the revision."""


class CommitFailure(RestructuringError):
    """Flushing the revision to disk failed; restore from the backup."""


class EngineStateError(RestructuringError):
    """The operation is not allowed in the engine's current state."""


__all__ = [
    "CommitFailure",
    "EngineStateError",
    "InitializationError",
    "RelocationConflict",
    "RestructuringError",
    "UnsupportedTransformation",
    "ValidationConflict",
]
