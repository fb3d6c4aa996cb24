"""
Snapshot Codec for FlowForge
============================

Converts between storage-row dictionaries (as a persistence layer loads them)
and graph objects, and reads/writes whole snapshots as JSON files:

    {"nodes": [...], "edges": [...], "generations": [...]}

Node rows: id, type, position, data, meta, created_at, updated_at
Edge rows: id, source_id, target_id, type, data, created_at
Generation rows: id, node_id, type, content, metadata, version, created_at
Message rows: id, project_id, node_id, role, content, metadata, created_at

Timestamps may be epoch seconds or ISO-8601 strings.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import json
import time

from .chat import ChatMessage
from .errors import FlowForgeError, ValidationError
from .graph_store import GraphStore
from .ontology import (
    EdgeVariant, GenerationKind, GenerationRecord, GraphEdge, GraphNode, NodeVariant,
    Position, payload_from_dict
)


def _timestamp(value: Any, field_name: str) -> float:
    if value is None:
        return time.time()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            pass
    raise ValidationError([f"{field_name}: invalid timestamp {value!r}"])


def _require(row: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in row or row[key] in (None, ""):
        raise ValidationError([f"{what} row missing '{key}'"])
    return row[key]


def node_from_row(row: Mapping[str, Any]) -> GraphNode:
    """Build a GraphNode from a node row"""
    node_id = _require(row, "id", "node")
    try:
        variant = NodeVariant(_require(row, "type", "node"))
    except ValueError:
        raise ValidationError([f"node {node_id}: unknown type {row.get('type')!r}"]) from None
    try:
        payload = payload_from_dict(variant, row.get("data"))
        position = Position.coerce(row.get("position"))
    except ValidationError as e:
        raise ValidationError([f"node {node_id}: {err}" for err in e.errors]) from e
    return GraphNode(
        id=str(node_id),
        variant=variant,
        payload=payload,
        position=position,
        meta=dict(row.get("meta") or {}),
        created_at=_timestamp(row.get("created_at"), "created_at"),
        updated_at=_timestamp(row.get("updated_at"), "updated_at"),
    )


def node_to_row(node: GraphNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.variant.value,
        "position": node.position.to_dict(),
        "data": node.payload.to_dict(),
        "meta": dict(node.meta),
        "created_at": node.created_at,
        "updated_at": node.updated_at,
    }


def edge_from_row(row: Mapping[str, Any]) -> GraphEdge:
    edge_id = _require(row, "id", "edge")
    try:
        variant = EdgeVariant(row.get("type") or "default")
    except ValueError:
        raise ValidationError([f"edge {edge_id}: unknown type {row.get('type')!r}"]) from None
    return GraphEdge(
        id=str(edge_id),
        source_id=str(_require(row, "source_id", "edge")),
        target_id=str(_require(row, "target_id", "edge")),
        variant=variant,
        payload=dict(row.get("data") or {}),
        created_at=_timestamp(row.get("created_at"), "created_at"),
    )


def edge_to_row(edge: GraphEdge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source_id": edge.source_id,
        "target_id": edge.target_id,
        "type": edge.variant.value,
        "data": dict(edge.payload),
        "created_at": edge.created_at,
    }


def generation_from_row(row: Mapping[str, Any]) -> GenerationRecord:
    record_id = _require(row, "id", "generation")
    try:
        kind = GenerationKind(_require(row, "type", "generation"))
    except ValueError:
        raise ValidationError([f"generation {record_id}: unknown type {row.get('type')!r}"]) from None
    return GenerationRecord(
        id=str(record_id),
        node_id=str(_require(row, "node_id", "generation")),
        kind=kind,
        content=str(row.get("content") or ""),
        version=row.get("version", 1),
        metadata=dict(row.get("metadata") or {}),
        created_at=_timestamp(row.get("created_at"), "created_at"),
    )


def generation_to_row(record: GenerationRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "node_id": record.node_id,
        "type": record.kind.value,
        "content": record.content,
        "metadata": dict(record.metadata),
        "version": record.version,
        "created_at": record.created_at,
    }


def message_from_row(row: Mapping[str, Any]) -> ChatMessage:
    """Build a ChatMessage from a message row"""
    message_id = _require(row, "id", "message")
    content = row.get("content")
    if not isinstance(content, str):
        raise ValidationError([f"message {message_id}: content must be a string"])
    return ChatMessage(
        id=str(message_id),
        role=_require(row, "role", "message"),
        content=content,
        node_id=row.get("node_id"),
        project_id=row.get("project_id"),
        metadata=dict(row.get("metadata") or {}),
        created_at=_timestamp(row.get("created_at"), "created_at"),
    )


def message_to_row(message: ChatMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "project_id": message.project_id,
        "node_id": message.node_id,
        "role": message.role.value,
        "content": message.content,
        "metadata": dict(message.metadata),
        "created_at": message.created_at,
    }


def store_from_dict(data: Mapping[str, Any]) -> GraphStore:
    """Build a GraphStore from a snapshot mapping; all row errors are reported together"""
    errors: List[str] = []
    nodes, edges = [], []
    for row in data.get("nodes") or []:
        try:
            nodes.append(node_from_row(row))
        except ValidationError as e:
            errors.extend(e.errors)
    for row in data.get("edges") or []:
        try:
            edges.append(edge_from_row(row))
        except ValidationError as e:
            errors.extend(e.errors)
    if errors:
        raise ValidationError(errors)
    return GraphStore(nodes, edges)


def history_from_dict(data: Mapping[str, Any]) -> List[GenerationRecord]:
    return [generation_from_row(row) for row in data.get("generations") or []]


def messages_from_dict(data: Mapping[str, Any]) -> List[ChatMessage]:
    """Chat transcript of a snapshot, oldest first"""
    messages = [message_from_row(row) for row in data.get("messages") or []]
    return sorted(messages, key=lambda m: m.created_at)


def store_to_dict(store: GraphStore, history: Optional[List[GenerationRecord]] = None,
                  messages: Optional[List[ChatMessage]] = None) -> Dict[str, Any]:
    nodes, edges = store.snapshot()
    data = {
        "nodes": [node_to_row(n) for n in nodes],
        "edges": [edge_to_row(e) for e in edges],
    }
    if history is not None:
        data["generations"] = [generation_to_row(r) for r in history]
    if messages is not None:
        data["messages"] = [message_to_row(m) for m in messages]
    return data


def read_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a snapshot JSON file"""
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise FlowForgeError(f"Cannot read snapshot {path}: {e}") from e
    except ValueError as e:
        raise ValidationError([f"Snapshot {path} is not valid JSON: {e}"]) from e
    if not isinstance(data, dict):
        raise ValidationError([f"Snapshot {path} must contain a JSON object"])
    return data


def load_snapshot(path: Union[str, Path]) -> GraphStore:
    return store_from_dict(read_snapshot(path))


def save_snapshot(store: GraphStore, path: Union[str, Path],
                  history: Optional[List[GenerationRecord]] = None,
                  messages: Optional[List[ChatMessage]] = None) -> Path:
    """Write a snapshot JSON file"""
    path = Path(path)
    with open(path, 'w') as f:
        json.dump(store_to_dict(store, history, messages), f, indent=2)
    return path
