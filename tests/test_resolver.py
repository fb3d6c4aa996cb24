"""
Tests for ancestor resolution
"""
import random

import pytest
from flowforge.errors import NotFoundError, ValidationError
from flowforge.graph_store import GraphStore
from flowforge.ontology import NodeVariant
from flowforge.resolver import ancestor_depths, resolve_ancestor_nodes, resolve_ancestors


def _graph(names, edges):
    """Build a store of feature nodes; returns store and name -> id map"""
    store = GraphStore()
    ids = {name: store.add_node(NodeVariant.FEATURE, {"name": name}) for name in names}
    for source, target in edges:
        store.add_edge(ids[source], ids[target])
    return store, ids


def test_resolve_example_chain(planning_graph):
    """Test Project -> Design -> Page resolves nearest first"""
    store, ids = planning_graph
    assert resolve_ancestors(store, ids["page"]) == [ids["design"], ids["project"]]


def test_resolve_node_without_incoming_edges(planning_graph):
    store, ids = planning_graph
    assert resolve_ancestors(store, ids["project"]) == []


def test_resolve_missing_target():
    with pytest.raises(NotFoundError):
        resolve_ancestors(GraphStore(), "missing")


def test_resolve_terminates_on_cycle():
    """Test A <-> B cycle feeding C"""
    store, ids = _graph("ABC", [("A", "B"), ("B", "A"), ("B", "C")])

    assert resolve_ancestors(store, ids["C"]) == [ids["B"], ids["A"]]
    # the target is never reported even when it is its own ancestor
    assert resolve_ancestors(store, ids["A"]) == [ids["B"]]


def test_resolve_diamond_reports_shared_ancestor_once():
    store, ids = _graph(["P", "X", "Y", "T"], [("P", "X"), ("P", "Y"), ("X", "T"), ("Y", "T")])
    assert resolve_ancestors(store, ids["T"]) == [ids["X"], ids["Y"], ids["P"]]


def test_resolve_is_breadth_first():
    # T <- A <- C, T <- B: B is one hop away and must precede C
    store, ids = _graph("ABCT", [("C", "A"), ("A", "T"), ("B", "T")])
    assert resolve_ancestors(store, ids["T"]) == [ids["A"], ids["B"], ids["C"]]


def test_resolve_is_repeatable(planning_graph):
    store, ids = planning_graph
    assert resolve_ancestors(store, ids["page"]) == resolve_ancestors(store, ids["page"])


def test_max_depth_truncates(planning_graph):
    store, ids = planning_graph
    assert resolve_ancestors(store, ids["page"], max_depth=1) == [ids["design"]]
    with pytest.raises(ValidationError):
        resolve_ancestors(store, ids["page"], max_depth=0)


def test_ancestor_depths(planning_graph):
    store, ids = planning_graph
    assert ancestor_depths(store, ids["page"]) == {ids["design"]: 1, ids["project"]: 2}


def test_resolve_ancestor_nodes(planning_graph):
    store, ids = planning_graph
    nodes = resolve_ancestor_nodes(store, ids["page"])
    assert [n.variant for n in nodes] == [NodeVariant.DESIGN, NodeVariant.PROJECT]


def test_removing_intermediate_node_cuts_context(planning_graph):
    """Test removing the only path drops every upstream ancestor"""
    store, ids = planning_graph
    store.remove_node(ids["design"])
    assert resolve_ancestors(store, ids["page"]) == []


def test_random_graphs_have_unique_ancestors():
    """Test uniqueness and target exclusion on random graphs with cycles"""
    rng = random.Random(7)
    for _ in range(25):
        names = [f"n{i}" for i in range(12)]
        pairs = set()
        for _ in range(30):
            source, target = rng.sample(names, 2)
            pairs.add((source, target))
        store, ids = _graph(names, sorted(pairs))

        for target_id in ids.values():
            result = resolve_ancestors(store, target_id)
            assert target_id not in result
            assert len(result) == len(set(result))
            assert result == resolve_ancestors(store, target_id)
