"""
Tests for the FlowForge graph store
"""
import pytest
from flowforge.errors import (
    DuplicateEdgeError, InvalidPayloadError, NotFoundError, SelfLoopError, ValidationError
)
from flowforge.graph_store import GraphStore
from flowforge.ontology import (
    CompetitorStatus, EdgeVariant, NodeVariant, Position, ProjectPayload, create_edge, create_node
)


def test_add_node_starts_in_initial_status():
    """Test status supplied at creation is ignored"""
    store = GraphStore()
    node_id = store.add_node(NodeVariant.COMPETITOR, {"url": "https://rival.com", "status": "complete"})

    assert node_id in store
    assert len(store) == 1
    assert store.get_node(node_id).status == CompetitorStatus.PENDING


def test_add_node_validates_required_fields():
    store = GraphStore()
    with pytest.raises(InvalidPayloadError):
        store.add_node(NodeVariant.PAGE, {"name": "Home", "route": ""})
    assert len(store) == 0


def test_add_node_rejects_payload_of_other_variant():
    store = GraphStore()
    with pytest.raises(InvalidPayloadError):
        store.add_node(NodeVariant.PAGE, ProjectPayload(name="Acme"))


def test_add_node_with_position():
    store = GraphStore()
    node_id = store.add_node(NodeVariant.FEATURE, {"name": "Auth"}, {"x": 120, "y": 40})
    assert store.get_node(node_id).position == Position(120.0, 40.0)


def test_update_node_payload_merges_fields(planning_graph):
    store, ids = planning_graph
    before = store.get_node(ids["page"])

    updated = store.update_node_payload(ids["page"], {"description": "Landing page"})

    assert updated.payload.description == "Landing page"
    assert updated.payload.name == "Home"
    assert updated.payload.route == "/"
    assert store.get_node(ids["page"]) is updated
    assert before.payload.description is None
    assert updated.updated_at >= before.updated_at


def test_update_node_payload_rejects_broken_invariant(planning_graph):
    store, ids = planning_graph
    with pytest.raises(InvalidPayloadError):
        store.update_node_payload(ids["page"], {"route": ""})
    assert store.get_node(ids["page"]).payload.route == "/"


def test_update_node_payload_rejects_unknown_and_managed_fields(planning_graph):
    store, ids = planning_graph
    with pytest.raises(InvalidPayloadError):
        store.update_node_payload(ids["page"], {"colour": "red"})
    with pytest.raises(InvalidPayloadError):
        store.update_node_payload(ids["page"], {"status": "complete"})
    with pytest.raises(InvalidPayloadError):
        store.update_node_payload(ids["page"], {"type": "section"})


def test_update_missing_node():
    store = GraphStore()
    with pytest.raises(NotFoundError):
        store.update_node_payload("missing", {"name": "x"})
    with pytest.raises(NotFoundError):
        store.update_node_position("missing", (1, 2))


def test_update_node_position(planning_graph):
    store, ids = planning_graph
    node = store.update_node_position(ids["project"], (10, 20))
    assert node.position == Position(10.0, 20.0)


def test_remove_node_cascades_edges(planning_graph):
    """Test deleting a node removes every edge touching it"""
    store, ids = planning_graph
    store.remove_node(ids["design"])

    assert ids["design"] not in store
    assert store.edges == {}
    assert store.sources_of(ids["page"]) == []
    assert store.targets_of(ids["project"]) == []

    # idempotent
    store.remove_node(ids["design"])
    assert len(store) == 2


def test_add_edge_invariants(planning_graph):
    """Test self-loop, duplicate and missing-endpoint rejection"""
    store, ids = planning_graph

    with pytest.raises(SelfLoopError):
        store.add_edge(ids["page"], ids["page"])
    with pytest.raises(DuplicateEdgeError):
        store.add_edge(ids["project"], ids["design"])
    with pytest.raises(NotFoundError):
        store.add_edge(ids["project"], "missing")
    with pytest.raises(NotFoundError):
        store.add_edge("missing", ids["project"])

    assert len(store.edges) == 2


def test_reverse_edge_is_a_distinct_pair(planning_graph):
    store, ids = planning_graph
    edge_id = store.add_edge(ids["design"], ids["project"], EdgeVariant.DATA_FLOW)
    assert store.get_edge(edge_id).variant == EdgeVariant.DATA_FLOW


def test_remove_edge_is_idempotent(planning_graph):
    store, ids = planning_graph
    edge_id = next(e.id for e in store.edges.values() if e.target_id == ids["page"])

    store.remove_edge(edge_id)
    store.remove_edge(edge_id)

    assert store.sources_of(ids["page"]) == []
    store.add_edge(ids["design"], ids["page"])
    assert store.sources_of(ids["page"]) == [ids["design"]]


def test_reverse_adjacency(planning_graph):
    store, ids = planning_graph
    assert store.get_reverse_adjacency() == {
        ids["project"]: set(),
        ids["design"]: {ids["project"]},
        ids["page"]: {ids["design"]},
    }


def test_sources_follow_edge_insertion_order():
    store = GraphStore()
    target = store.add_node(NodeVariant.FEATURE, {"name": "target"})
    names = ["c", "a", "b"]
    sources = [store.add_node(NodeVariant.FEATURE, {"name": n}) for n in names]
    for source in sources:
        store.add_edge(source, target)

    assert store.sources_of(target) == sources


def test_load_rejects_dangling_and_duplicate_edges():
    a = create_node(NodeVariant.FEATURE, {"name": "a"})
    b = create_node(NodeVariant.FEATURE, {"name": "b"})

    with pytest.raises(ValidationError) as exc:
        GraphStore([a, b], [create_edge(a.id, "ghost")])
    assert "ghost" in str(exc.value)

    with pytest.raises(ValidationError):
        GraphStore([a, b], [create_edge(a.id, b.id), create_edge(a.id, b.id)])

    with pytest.raises(ValidationError):
        GraphStore([a], [create_edge(a.id, a.id)])


def test_failed_load_keeps_previous_snapshot(planning_graph):
    store, ids = planning_graph
    orphan = create_node(NodeVariant.FEATURE, {"name": "orphan"})

    with pytest.raises(ValidationError):
        store.load([orphan], [create_edge(orphan.id, "missing")])

    assert len(store) == 3
    assert store.sources_of(ids["page"]) == [ids["design"]]


def test_put_node_keeps_variant_fixed(planning_graph):
    store, ids = planning_graph
    impostor = create_node(NodeVariant.PROJECT, {"name": "x"}, node_id=ids["page"])
    with pytest.raises(InvalidPayloadError):
        store.put_node(impostor)
    with pytest.raises(NotFoundError):
        store.put_node(create_node(NodeVariant.PROJECT, {"name": "new"}))


def test_search_nodes(planning_graph):
    store, ids = planning_graph
    pages = store.search_nodes(NodeVariant.PAGE)
    assert [n.id for n in pages] == [ids["page"]]
    assert len(store.search_nodes()) == 3
