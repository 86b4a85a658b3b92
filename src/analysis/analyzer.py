"""Dependency conflict detection for proposed namespace moves."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from graph.dependency_graph import DependencyGraph
from rules.layers import DEFAULT_LAYER_ORDER, is_layer_violation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine.transformations import Transformation
    from model.provider import CodeModelProvider
    from model.revision import Revision
    from rules.config import CycleMode


class ConflictKind(str, Enum):
    LAYER_VIOLATION = "LayerViolation"
    CYCLIC_DEPENDENCY = "CyclicDependency"


@dataclass(frozen=True)
class DependencyConflict:
    """A dependency of ``source`` that makes moving it unsafe."""

    source: str
    dependency: str
    kind: ConflictKind
    cycle: tuple[str, ...] = ()

    def describe(self) -> str:
        if self.kind is ConflictKind.LAYER_VIOLATION:
            return f"Dependency violates architecture layers: {self.dependency}"
        return f"Cyclic dependency detected: {self.source} <-> {self.dependency}"

    def diagnostics(self) -> list[str]:
        """``describe()`` plus the cyclic component behind a cycle conflict."""
        lines = [self.describe()]
        if self.cycle:
            lines.append(f"Cycle members: {', '.join(self.cycle)}")
        return lines


def _component_for(
    dependency: str, graph: DependencyGraph, components: list[list[str]]
) -> tuple[str, ...]:
    """The cyclic component ``dependency`` belongs to or, failing that, reaches."""
    for component in components:
        if dependency in component:
            return tuple(component)
    reachable = graph.reachable(dependency)
    for component in components:
        if reachable.intersection(component):
            return tuple(component)
    return ()


@dataclass(frozen=True)
class ValidationResult:
    transformation: Transformation
    conflicts: tuple[DependencyConflict, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.conflicts


class DependencyAnalyzer:
    """Builds namespace dependency graphs and checks moves against them."""

    def __init__(
        self,
        provider: CodeModelProvider,
        *,
        layer_order: Sequence[str] = DEFAULT_LAYER_ORDER,
        cycle_mode: CycleMode = "reachable",
    ) -> None:
        self._provider = provider
        self._layer_order = tuple(layer_order)
        self._cycle_mode = cycle_mode

    def build_dependency_graph(self, revision: Revision) -> DependencyGraph:
        """Namespace graph of every Python document in ``revision``.

        Each document contributes its own graph; the results are merged, so
        references repeated across documents collapse into one edge.
        """
        graph = DependencyGraph()
        for document in revision.python_documents():
            local = DependencyGraph()
            for enclosing, target in self._provider.iter_references(revision, document):
                if not enclosing or enclosing == target:
                    continue
                local.add_dependency(enclosing, target)
            graph.merge(local)

        logger.debug(
            "Dependency graph for revision {}: {} node(s), {} edge(s)",
            revision.number,
            len(graph.nodes()),
            len(graph),
        )
        return graph

    def _creates_cycle(self, source: str, dependency: str, graph: DependencyGraph) -> bool:
        if self._cycle_mode == "through_source":
            return graph.has_cycle_through(source, dependency, set())
        return graph.has_cycle(source, dependency, set())

    def find_dependency_conflicts(
        self, source: str, target: str, graph: DependencyGraph
    ) -> list[DependencyConflict]:
        """Every conflict raised by moving ``source`` to ``target``.

        A direct dependency of ``source`` conflicts when it sits in a layer
        outward of ``target`` or when a cycle is reachable through it. Both
        kinds may be reported for the same dependency. Cycle conflicts carry
        the strongly connected component that closes the cycle.
        """
        conflicts: list[DependencyConflict] = []
        components: list[list[str]] | None = None
        for dependency in graph.get_dependencies(source):
            if is_layer_violation(dependency, target, self._layer_order):
                conflicts.append(
                    DependencyConflict(source, dependency, ConflictKind.LAYER_VIOLATION)
                )
            if self._creates_cycle(source, dependency, graph):
                if components is None:
                    components = graph.cycles()
                conflicts.append(
                    DependencyConflict(
                        source,
                        dependency,
                        ConflictKind.CYCLIC_DEPENDENCY,
                        _component_for(dependency, graph, components),
                    )
                )
        return conflicts

    def validate(self, revision: Revision, transformation: Transformation) -> ValidationResult:
        graph = self.build_dependency_graph(revision)
        conflicts = self.find_dependency_conflicts(
            transformation.source, transformation.target, graph
        )
        for conflict in conflicts:
            logger.warning("{}", "; ".join(conflict.diagnostics()))
        return ValidationResult(transformation, tuple(conflicts))


__all__ = [
    "ConflictKind",
    "DependencyAnalyzer",
    "DependencyConflict",
    "ValidationResult",
]
