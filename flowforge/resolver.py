"""
Ancestor Resolver for FlowForge
===============================

Walks edges backwards from a target node to collect every node that feeds it
context. Traversal is FIFO breadth-first: direct sources first (in edge
insertion order), then their sources, and so on. A node reachable along
several paths, or through a cycle, is reported once at its first visit.
"""

from collections import deque
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import NotFoundError, ValidationError
from .graph_store import GraphStore
from .ontology import GraphNode


def _walk(store: GraphStore, target_id: str, max_depth: Optional[int]) -> Iterator[Tuple[str, int]]:
    """Yield (node_id, hops from target) in breadth-first order"""
    if target_id not in store:
        raise NotFoundError("node", target_id)
    if max_depth is not None and max_depth < 1:
        raise ValidationError([f"max_depth must be at least 1, got {max_depth}"])

    visited = {target_id}
    queue = deque((source_id, 1) for source_id in store.sources_of(target_id))

    while queue:
        node_id, depth = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)
        yield node_id, depth

        if max_depth is not None and depth >= max_depth:
            continue
        for source_id in store.sources_of(node_id):
            if source_id not in visited:
                queue.append((source_id, depth + 1))


def resolve_ancestors(store: GraphStore, target_id: str, max_depth: Optional[int] = None) -> List[str]:
    """Ordered ancestor ids of ``target_id``, excluding the target itself.

    ``max_depth`` limits how many hops upstream the walk goes; ``None`` walks
    the whole graph.
    """
    return [node_id for node_id, _ in _walk(store, target_id, max_depth)]


def ancestor_depths(store: GraphStore, target_id: str, max_depth: Optional[int] = None) -> Dict[str, int]:
    """Shortest hop count from each ancestor to the target, in resolution order"""
    return dict(_walk(store, target_id, max_depth))


def resolve_ancestor_nodes(store: GraphStore, target_id: str, max_depth: Optional[int] = None) -> List[GraphNode]:
    """Same as resolve_ancestors but returns the nodes"""
    return [store.require_node(node_id) for node_id in resolve_ancestors(store, target_id, max_depth)]
