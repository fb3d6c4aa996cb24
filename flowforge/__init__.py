"""
FlowForge: Website Planning Graph Engine
========================================

Core of a visual website-planning canvas:
- Typed planning graph (project, competitor, design, page, section, ...)
- Ancestor context resolution for AI generation calls
- Versioned generation lifecycle (idle -> in-progress -> complete | error)
- Context-aware project chat

Usage:
    store = GraphStore()
    project_id = store.add_node(NodeVariant.PROJECT, {"name": "Acme"})
    page_id = store.add_node(NodeVariant.PAGE, {"name": "Home", "route": "/"})
    store.add_edge(project_id, page_id)
    context = build_context(store, page_id)
"""

from .errors import (
    FlowForgeError, NotFoundError, ValidationError, InvalidPayloadError, EdgeError,
    SelfLoopError, DuplicateEdgeError, InvalidTransitionError, ConfigError, GenerationFailedError
)
from .ontology import (
    NodeVariant, EdgeVariant, GenerationKind, GraphNode, GraphEdge, GenerationRecord,
    Position, create_node, create_edge
)
from .graph_store import GraphStore
from .resolver import resolve_ancestors, resolve_ancestor_nodes, ancestor_depths
from .context import ContextSummary, ContextProjector, ContextBudget, GenerationContext, build_context, render_context
from .lifecycle import GenerationLifecycle, LifecycleState, next_version, generation_kind_for, lifecycle_state
from .chat import ChatMessage, ChatRole, ChatSession, run_chat
from .config import Settings

__version__ = "0.1.0"
__author__ = "FlowForge Development Team"

__all__ = [
    "FlowForgeError",
    "NotFoundError",
    "ValidationError",
    "InvalidPayloadError",
    "EdgeError",
    "SelfLoopError",
    "DuplicateEdgeError",
    "InvalidTransitionError",
    "ConfigError",
    "GenerationFailedError",
    "NodeVariant",
    "EdgeVariant",
    "GenerationKind",
    "GraphNode",
    "GraphEdge",
    "GenerationRecord",
    "Position",
    "create_node",
    "create_edge",
    "GraphStore",
    "resolve_ancestors",
    "resolve_ancestor_nodes",
    "ancestor_depths",
    "ContextSummary",
    "ContextProjector",
    "ContextBudget",
    "GenerationContext",
    "build_context",
    "render_context",
    "GenerationLifecycle",
    "LifecycleState",
    "next_version",
    "generation_kind_for",
    "lifecycle_state",
    "Settings",
    "ChatMessage",
    "ChatRole",
    "ChatSession",
    "run_chat",
]
