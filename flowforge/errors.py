"""
Error Taxonomy for FlowForge
============================

Every failure raised by the graph core is a typed, recoverable exception.
Each class carries a stable ``code`` so an outer layer can map it to a
distinct user-facing message without inspecting message text.
"""

from typing import Any, Iterable, List, Optional


class FlowForgeError(Exception):
    """Base class for all FlowForge errors"""
    code = "flowforge_error"


class NotFoundError(FlowForgeError):
    """Referenced node or edge id is absent"""
    code = "not_found"

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(FlowForgeError):
    """Malformed snapshot or schema violation"""
    code = "validation_error"

    def __init__(self, errors: Iterable[str]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")


class InvalidPayloadError(ValidationError):
    """Payload does not satisfy its variant's shape"""
    code = "invalid_payload"


class EdgeError(ValidationError):
    """Edge-creation invariant violated"""
    code = "edge_error"

    def __init__(self, source_id: str, target_id: str, message: str):
        self.source_id = source_id
        self.target_id = target_id
        super().__init__([message])


class SelfLoopError(EdgeError):
    code = "self_loop"

    def __init__(self, node_id: str):
        super().__init__(node_id, node_id, f"Edge cannot connect node {node_id} to itself")


class DuplicateEdgeError(EdgeError):
    code = "duplicate_edge"

    def __init__(self, source_id: str, target_id: str):
        super().__init__(source_id, target_id, f"Edge already exists: {source_id} -> {target_id}")


class InvalidTransitionError(FlowForgeError):
    """Lifecycle transition not permitted from the current state"""
    code = "invalid_transition"

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id}: {message}")


class ConfigError(FlowForgeError):
    """Missing or malformed configuration"""
    code = "config_error"


class GenerationFailedError(FlowForgeError):
    """An AI generation run failed; ``node`` is the node as moved to error"""
    code = "generation_failed"

    def __init__(self, node: Any, reason: str, cause: Optional[BaseException] = None):
        self.node = node
        self.reason = reason
        self.cause = cause
        super().__init__(f"Generation failed for node {getattr(node, 'id', node)}: {reason}")
