"""Directed dependency graph over dotted identifiers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graph.algos import find_cycles

if TYPE_CHECKING:
    from collections.abc import Iterator


class DependencyGraph:
    """Mapping of identifier -> identifiers it references.

    Dependencies of a node keep insertion order and never contain duplicates.
    A node that was never added simply has no known dependencies.
    """

    def __init__(self) -> None:
        self._dependencies: dict[str, dict[str, None]] = {}

    def add_dependency(self, source: str, target: str) -> None:
        """Record ``source -> target``; adding an existing edge is a no-op."""
        self._dependencies.setdefault(source, {})[target] = None

    def get_dependencies(self, node: str) -> tuple[str, ...]:
        """Direct dependencies of ``node`` (empty for unknown nodes)."""
        return tuple(self._dependencies.get(node, ()))

    def has_cycle(self, start: str, current: str, visited: set[str]) -> bool:
        """Depth-first search from ``current`` for any reachable cycle.

        Returns True as soon as the walk revisits a node that is still on the
        current path. ``start`` is accepted for call-site symmetry with
        :meth:`has_cycle_through` but is never compared against, so a cycle
        that does not pass through ``start`` is reported as well.

        ``visited`` holds the nodes of the current walk path and is mutated
        during the search; callers pass a fresh set for each query.
        """
        return self._walk_for_cycle(current, visited, set())

    def _walk_for_cycle(self, node: str, path: set[str], cleared: set[str]) -> bool:
        if node in path:
            return True
        if node in cleared:
            return False
        path.add(node)
        for dependency in self.get_dependencies(node):
            if self._walk_for_cycle(dependency, path, cleared):
                return True
        path.discard(node)
        cleared.add(node)
        return False

    def has_cycle_through(self, start: str, current: str, visited: set[str]) -> bool:
        """True only when some path from ``current`` leads back to ``start``."""
        if current == start:
            return True
        if current in visited:
            return False
        visited.add(current)
        return any(
            self.has_cycle_through(start, dependency, visited)
            for dependency in self.get_dependencies(current)
        )

    def merge(self, other: DependencyGraph) -> None:
        """Union every edge of ``other`` into this graph."""
        for source, targets in other._dependencies.items():
            for target in targets:
                self.add_dependency(source, target)

    def edges(self) -> set[tuple[str, str]]:
        return {
            (source, target)
            for source, targets in self._dependencies.items()
            for target in targets
        }

    def nodes(self) -> set[str]:
        found = set(self._dependencies)
        for targets in self._dependencies.values():
            found.update(targets)
        return found

    def cycles(self) -> list[list[str]]:
        """Cyclic strongly connected components, sorted."""
        return find_cycles(self._dependencies)

    def reachable(self, node: str) -> set[str]:
        """Every node reachable from ``node`` through one or more edges."""
        found: set[str] = set()
        pending = list(self.get_dependencies(node))
        while pending:
            current = pending.pop()
            if current in found:
                continue
            found.add(current)
            pending.extend(self.get_dependencies(current))
        return found

    def __contains__(self, node: object) -> bool:
        return node in self._dependencies

    def __iter__(self) -> Iterator[str]:
        return iter(self._dependencies)

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._dependencies.values())

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={len(self.nodes())}, edges={len(self)})"


__all__ = ["DependencyGraph"]
