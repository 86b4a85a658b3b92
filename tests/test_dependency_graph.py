from __future__ import annotations

from graph.dependency_graph import DependencyGraph


def _graph(*edges: tuple[str, str]) -> DependencyGraph:
    graph = DependencyGraph()
    for source, target in edges:
        graph.add_dependency(source, target)
    return graph


def _merged(*graphs: DependencyGraph) -> DependencyGraph:
    result = DependencyGraph()
    for graph in graphs:
        result.merge(graph)
    return result


def test_add_dependency_twice_equals_once() -> None:
    once = _graph(("shop.orders", "shop.billing"))
    twice = _graph(("shop.orders", "shop.billing"), ("shop.orders", "shop.billing"))

    assert once.edges() == twice.edges() == {("shop.orders", "shop.billing")}
    assert twice.get_dependencies("shop.orders") == ("shop.billing",)
    assert len(twice) == 1


def test_get_dependencies_keeps_insertion_order() -> None:
    graph = _graph(("a", "c"), ("a", "b"), ("a", "c"))

    assert graph.get_dependencies("a") == ("c", "b")


def test_merge_is_an_associative_union() -> None:
    g1 = _graph(("a", "b"), ("b", "c"))
    g2 = _graph(("b", "c"), ("c", "d"))
    g3 = _graph(("d", "a"), ("a", "e"))

    left = _merged(_merged(g1, g2), g3)
    right = _merged(g1, _merged(g2, g3))

    assert left.edges() == right.edges()
    assert left.edges() == g1.edges() | g2.edges() | g3.edges()


def test_merge_leaves_other_graph_untouched() -> None:
    target = _graph(("a", "b"))
    other = _graph(("c", "d"))

    target.merge(other)

    assert other.edges() == {("c", "d")}
    assert target.edges() == {("a", "b"), ("c", "d")}


def test_unknown_node_has_no_dependencies() -> None:
    graph = _graph(("a", "b"))

    assert graph.get_dependencies("missing") == ()
    assert "missing" not in graph
    assert graph.nodes() == {"a", "b"}


def test_has_cycle_is_false_everywhere_on_a_dag() -> None:
    graph = _graph(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"), ("d", "e"))

    for node in ("b", "c", "d", "e"):
        assert graph.has_cycle("a", node, set()) is False
        assert graph.has_cycle_through("a", node, set()) is False


def test_has_cycle_reports_cycles_that_do_not_reach_start() -> None:
    graph = _graph(("a", "b"), ("b", "c"), ("c", "b"))

    assert graph.has_cycle("a", "b", set()) is True
    assert graph.has_cycle_through("a", "b", set()) is False


def test_has_cycle_through_detects_return_to_start() -> None:
    graph = _graph(("a", "b"), ("b", "c"), ("c", "a"))

    assert graph.has_cycle("a", "b", set()) is True
    assert graph.has_cycle_through("a", "b", set()) is True


def test_cycles_lists_sorted_components() -> None:
    graph = _graph(("b", "a"), ("a", "b"), ("c", "c"), ("c", "d"))

    assert graph.cycles() == [["a", "b"], ["c"]]


def test_reachable_follows_edges_transitively() -> None:
    graph = _graph(("a", "b"), ("b", "c"), ("c", "b"), ("d", "a"))

    assert graph.reachable("a") == {"b", "c"}
    assert graph.reachable("c") == {"b", "c"}
    assert graph.reachable("unknown") == set()
