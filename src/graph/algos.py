"""Strongly connected components for identifier graphs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class _TarjanState:
    """Mutable bookkeeping for one run of Tarjan's algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.components: list[list[str]] = []


def _pop_component(state: _TarjanState, root: str) -> list[str]:
    component: list[str] = []
    while state.stack:
        node = state.stack.pop()
        state.on_stack.discard(node)
        component.append(node)
        if node == root:
            return component
    msg = f"Tarjan invariant violated: {root!r} missing from the stack"
    raise RuntimeError(msg)


def _visit(
    node: str,
    graph: Mapping[str, Iterable[str]],
    state: _TarjanState,
) -> None:
    state.indices[node] = state.index
    state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack.add(node)

    for neighbor in sorted(graph.get(node, ())):
        if neighbor not in state.indices:
            _visit(neighbor, graph, state)
            state.low_link[node] = min(state.low_link[node], state.low_link[neighbor])
        elif neighbor in state.on_stack:
            state.low_link[node] = min(state.low_link[node], state.indices[neighbor])

    if state.low_link[node] == state.indices[node]:
        component = _pop_component(state, node)
        if len(component) > 1 or node in graph.get(node, ()):
            state.components.append(sorted(component))


def find_cycles(graph: Mapping[str, Iterable[str]]) -> list[list[str]]:
    """Return every cyclic strongly connected component of ``graph``.

    Each component is sorted, and the list of components is sorted, so the
    result is stable across runs regardless of edge insertion order.
    """
    state = _TarjanState()
    for node in sorted(graph):
        if node not in state.indices:
            _visit(node, graph, state)
    return sorted(state.components)


__all__ = ["find_cycles"]
