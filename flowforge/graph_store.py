"""
Graph Store for FlowForge
=========================

In-memory node/edge collections for one project. Owns every mutation and
enforces the schema invariants at mutation time:

- payloads satisfy their variant's rules
- no edge references a missing node (node removal cascades)
- at most one edge per ordered (source, target) pair, no self-loops

Adjacency queries go through a NetworkX backing graph. Predecessor order is
edge insertion order, which keeps traversal deterministic.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import networkx as nx

from .errors import (
    DuplicateEdgeError, InvalidPayloadError, NotFoundError, SelfLoopError, ValidationError
)
from .ontology import (
    EdgeVariant, GraphEdge, GraphNode, NodePayload, NodeVariant, Position,
    create_edge, create_node, payload_from_dict
)

_LIFECYCLE_FIELDS = ("status",)


class GraphStore:
    """Caller-owned graph snapshot with validated mutations"""

    def __init__(self, nodes: Optional[Iterable[GraphNode]] = None,
                 edges: Optional[Iterable[GraphEdge]] = None):
        self.nodes: Dict[str, GraphNode] = {}
        self.edges: Dict[str, GraphEdge] = {}
        self._graph = nx.DiGraph()
        if nodes is not None or edges is not None:
            self.load(nodes or [], edges or [])

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    # ------------------------------------------------------------------
    # Snapshot loading
    # ------------------------------------------------------------------

    def load(self, nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]):
        """Replace the current snapshot; nothing changes if validation fails"""
        errors: List[str] = []
        new_nodes: Dict[str, GraphNode] = {}
        new_edges: Dict[str, GraphEdge] = {}
        graph = nx.DiGraph()

        for node in nodes:
            if node.id in new_nodes:
                errors.append(f"Duplicate node id: {node.id}")
                continue
            for issue in node.payload.validate():
                errors.append(f"Node {node.id}: {issue}")
            new_nodes[node.id] = node
            graph.add_node(node.id, variant=node.variant.value)

        for edge in edges:
            if edge.id in new_edges:
                errors.append(f"Duplicate edge id: {edge.id}")
                continue
            missing = [nid for nid in (edge.source_id, edge.target_id) if nid not in new_nodes]
            if missing:
                errors.append(f"Edge {edge.id} references unknown node(s): {', '.join(missing)}")
                continue
            if edge.source_id == edge.target_id:
                errors.append(f"Edge {edge.id} is a self-loop on {edge.source_id}")
                continue
            if graph.has_edge(edge.source_id, edge.target_id):
                errors.append(f"Duplicate edge pair: {edge.source_id} -> {edge.target_id}")
                continue
            new_edges[edge.id] = edge
            graph.add_edge(edge.source_id, edge.target_id, edge_id=edge.id)

        if errors:
            raise ValidationError(errors)

        self.nodes = new_nodes
        self.edges = new_edges
        self._graph = graph

    def snapshot(self) -> Tuple[List[GraphNode], List[GraphEdge]]:
        """Current nodes and edges, in insertion order"""
        return list(self.nodes.values()), list(self.edges.values())

    # ------------------------------------------------------------------
    # Node operations
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get node by ID"""
        return self.nodes.get(node_id)

    def require_node(self, node_id: str) -> GraphNode:
        """Get node by ID or raise NotFoundError"""
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError("node", node_id)
        return node

    def add_node(self, variant: NodeVariant, payload: Union[NodePayload, Mapping[str, Any], None] = None,
                 position: Any = None) -> str:
        """Insert a node in its variant's initial status and return its id"""
        if isinstance(payload, NodePayload):
            if payload.variant != variant:
                raise InvalidPayloadError([
                    f"payload is {payload.variant.value}, expected {variant.value}"
                ])
            payload = payload.to_dict()
        data = {k: v for k, v in dict(payload or {}).items() if k not in _LIFECYCLE_FIELDS}
        node = create_node(variant, data, position)
        errors = node.payload.validate()
        if errors:
            raise InvalidPayloadError(errors)

        self.nodes[node.id] = node
        self._graph.add_node(node.id, variant=variant.value)
        return node.id

    def update_node_payload(self, node_id: str, partial: Mapping[str, Any]) -> GraphNode:
        """Merge partial fields into a node's payload"""
        node = self.require_node(node_id)
        partial = dict(partial)
        if "type" in partial and partial.pop("type") != node.variant.value:
            raise InvalidPayloadError([f"Node {node_id}: variant is fixed at creation"])
        managed = [k for k in _LIFECYCLE_FIELDS if k in partial]
        if managed:
            raise InvalidPayloadError([
                f"Node {node_id}: {', '.join(managed)} is managed by the generation lifecycle"
            ])

        current = node.payload.to_dict()
        unknown = [k for k in partial if k not in current]
        if unknown:
            raise InvalidPayloadError([
                f"Node {node_id}: unknown {node.variant.value} field(s): {', '.join(sorted(unknown))}"
            ])
        current.update(partial)
        payload = payload_from_dict(node.variant, current)
        errors = payload.validate()
        if errors:
            raise InvalidPayloadError(errors)

        updated = replace(node, payload=payload)
        updated.touch()
        self.nodes[node_id] = updated
        return updated

    def update_node_position(self, node_id: str, position: Any) -> GraphNode:
        """Move a node on the canvas"""
        node = self.require_node(node_id)
        updated = replace(node, position=Position.coerce(position))
        updated.touch()
        self.nodes[node_id] = updated
        return updated

    def put_node(self, node: GraphNode) -> GraphNode:
        """Write back a node returned by the generation lifecycle"""
        current = self.require_node(node.id)
        if current.variant != node.variant:
            raise InvalidPayloadError([f"Node {node.id}: variant is fixed at creation"])
        errors = node.payload.validate()
        if errors:
            raise InvalidPayloadError(errors)
        self.nodes[node.id] = node
        return node

    def remove_node(self, node_id: str):
        """Delete a node and every edge touching it (idempotent)"""
        if node_id not in self.nodes:
            return
        for edge_id in [e.id for e in self.edges.values()
                        if e.source_id == node_id or e.target_id == node_id]:
            del self.edges[edge_id]
        del self.nodes[node_id]
        self._graph.remove_node(node_id)

    def search_nodes(self, variant: Optional[NodeVariant] = None) -> List[GraphNode]:
        """Search nodes by variant"""
        return [n for n in self.nodes.values() if variant is None or n.variant == variant]

    # ------------------------------------------------------------------
    # Edge operations
    # ------------------------------------------------------------------

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        return self.edges.get(edge_id)

    def add_edge(self, source_id: str, target_id: str,
                 variant: EdgeVariant = EdgeVariant.DEFAULT,
                 payload: Optional[Mapping[str, Any]] = None) -> str:
        """Connect source to target and return the new edge id"""
        for node_id in (source_id, target_id):
            if node_id not in self.nodes:
                raise NotFoundError("node", node_id)
        if source_id == target_id:
            raise SelfLoopError(source_id)
        if self._graph.has_edge(source_id, target_id):
            raise DuplicateEdgeError(source_id, target_id)

        edge = create_edge(source_id, target_id, EdgeVariant(variant), payload=payload)
        self.edges[edge.id] = edge
        self._graph.add_edge(source_id, target_id, edge_id=edge.id)
        return edge.id

    def remove_edge(self, edge_id: str):
        """Delete an edge (idempotent)"""
        edge = self.edges.pop(edge_id, None)
        if edge is not None:
            self._graph.remove_edge(edge.source_id, edge.target_id)

    # ------------------------------------------------------------------
    # Traversal queries
    # ------------------------------------------------------------------

    def sources_of(self, node_id: str) -> List[str]:
        """Direct predecessors of a node, in edge insertion order"""
        if node_id not in self._graph:
            raise NotFoundError("node", node_id)
        return list(self._graph.predecessors(node_id))

    def targets_of(self, node_id: str) -> List[str]:
        """Direct successors of a node, in edge insertion order"""
        if node_id not in self._graph:
            raise NotFoundError("node", node_id)
        return list(self._graph.successors(node_id))

    def get_reverse_adjacency(self) -> Dict[str, Set[str]]:
        """For every node, the set of its direct sources"""
        return {node_id: set(self._graph.predecessors(node_id)) for node_id in self.nodes}
