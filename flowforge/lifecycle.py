"""
Generation Lifecycle for FlowForge
==================================

One state machine governs every AI generation run, whatever the variant:

    idle -> in-progress -> complete
                        -> error
    (in-progress is re-enterable from any state: retry and regenerate)

Each generating variant maps the abstract states onto its own status enum
(competitor: pending/analyzing/complete/error, page: planning/building/...)
and supports exactly one GenerationKind. Version numbers for a
(node, kind) pair are ``1 + max(existing versions)``.

Nothing here performs I/O: callers persist the returned node and record.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple
import copy
import json
import re
import time
import uuid

from .errors import InvalidPayloadError, InvalidTransitionError
from .ontology import (
    CompetitorAnalysis, CompetitorStatus, DesignExtraction, DesignStatus, FeatureStatus,
    GeneratedContent, GenerationKind, GenerationRecord, GraphNode, NodePayload, NodeVariant,
    PageStatus, PrdRecord, SectionStatus
)


class LifecycleState(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    ERROR = "error"


# (payload, content, result, version, now) -> payload fields to set on completion
ResultApplier = Callable[[NodePayload, str, Optional[Mapping[str, Any]], int, float], Dict[str, Any]]


_FENCE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)

def parse_json_block(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating Markdown code fences"""
    cleaned = _FENCE.sub("", text).strip()
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise InvalidPayloadError([f"generated content is not valid JSON: {e}"]) from e
    if not isinstance(data, dict):
        raise InvalidPayloadError(["generated content must be a JSON object"])
    return data


def _apply_analysis(payload, content, result, version, now):
    return {"analysis": CompetitorAnalysis.from_dict(result if result is not None else parse_json_block(content))}

def _apply_extraction(payload, content, result, version, now):
    return {"extraction": DesignExtraction.from_dict(result if result is not None else parse_json_block(content))}

def _apply_prd(payload, content, result, version, now):
    return {"prd": PrdRecord(content=content, generated_at=now, version=version)}

def _apply_code(payload, content, result, version, now):
    return {"content": GeneratedContent(generated=content, version=version, generated_at=now)}

def _apply_nothing(payload, content, result, version, now):
    return {}


@dataclass(frozen=True)
class StatusMachine:
    """Maps abstract lifecycle states onto one variant's status enum"""
    kind: GenerationKind
    idle: Enum
    in_progress: Enum
    complete: Enum
    error: Enum
    apply_result: ResultApplier

    def status_for(self, state: LifecycleState) -> Enum:
        return {
            LifecycleState.IDLE: self.idle,
            LifecycleState.IN_PROGRESS: self.in_progress,
            LifecycleState.COMPLETE: self.complete,
            LifecycleState.ERROR: self.error,
        }[state]

    def state_of(self, status: Enum) -> LifecycleState:
        for state in LifecycleState:
            if self.status_for(state) == status:
                return state
        raise ValueError(f"status {status!r} is not part of the {self.kind.value} lifecycle")


STATUS_MACHINES: Dict[NodeVariant, Optional[StatusMachine]] = {
    NodeVariant.PROJECT: None,
    NodeVariant.COMPETITOR: StatusMachine(
        GenerationKind.ANALYSIS, CompetitorStatus.PENDING, CompetitorStatus.ANALYZING,
        CompetitorStatus.COMPLETE, CompetitorStatus.ERROR, _apply_analysis),
    NodeVariant.DESIGN: StatusMachine(
        GenerationKind.ANALYSIS, DesignStatus.PENDING, DesignStatus.EXTRACTING,
        DesignStatus.COMPLETE, DesignStatus.ERROR, _apply_extraction),
    NodeVariant.GOALS: None,
    NodeVariant.PAGE: StatusMachine(
        GenerationKind.PRD, PageStatus.PLANNING, PageStatus.BUILDING,
        PageStatus.COMPLETE, PageStatus.ERROR, _apply_prd),
    NodeVariant.SECTION: StatusMachine(
        GenerationKind.CODE, SectionStatus.DRAFT, SectionStatus.BUILDING,
        SectionStatus.COMPLETE, SectionStatus.ERROR, _apply_code),
    NodeVariant.FEATURE: StatusMachine(
        GenerationKind.CODE, FeatureStatus.DRAFT, FeatureStatus.BUILDING,
        FeatureStatus.COMPLETE, FeatureStatus.ERROR, _apply_nothing),
    NodeVariant.PRD: None,
}

_unmapped = set(NodeVariant) - set(STATUS_MACHINES)
if _unmapped:
    raise TypeError(f"NodeVariant without lifecycle entry: {sorted(v.value for v in _unmapped)}")


def generation_kind_for(variant: NodeVariant) -> Optional[GenerationKind]:
    """The one generation kind a variant supports, or None"""
    machine = STATUS_MACHINES[variant]
    return machine.kind if machine else None


def lifecycle_state(node: GraphNode) -> Optional[LifecycleState]:
    """Abstract lifecycle state of a node, or None if it never generates"""
    machine = STATUS_MACHINES[node.variant]
    if machine is None:
        return None
    return machine.state_of(node.status)


def next_version(history: Iterable[GenerationRecord], node_id: str, kind: GenerationKind) -> int:
    """``1 + max`` of prior versions for (node_id, kind); 1 when there are none"""
    versions = [r.version for r in history if r.node_id == node_id and r.kind == kind]
    return max(versions) + 1 if versions else 1


class GenerationLifecycle:
    """Applies lifecycle transitions to nodes without mutating the inputs"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def _machine(self, node: GraphNode) -> StatusMachine:
        machine = STATUS_MACHINES[node.variant]
        if machine is None:
            raise InvalidTransitionError(node.id, f"{node.variant.value} nodes do not support generation")
        return machine

    def _transition(self, node: GraphNode, status: Enum, meta: Dict[str, Any],
                    now: Optional[float] = None, **fields) -> GraphNode:
        payload = replace(copy.deepcopy(node.payload), status=status, **fields)
        return replace(node, payload=payload, meta=meta, updated_at=self.clock() if now is None else now)

    def begin_generation(self, node: GraphNode) -> GraphNode:
        """Move a node to in-progress (from any state: start, retry, regenerate)"""
        machine = self._machine(node)
        meta = dict(node.meta)
        meta.pop("last_error", None)
        return self._transition(node, machine.in_progress, meta)

    def complete_generation(self, node: GraphNode, content: str,
                            metadata: Optional[Mapping[str, Any]] = None,
                            history: Iterable[GenerationRecord] = (),
                            result: Optional[Mapping[str, Any]] = None) -> Tuple[GraphNode, GenerationRecord]:
        """Finish an in-progress run and produce the next versioned record.

        ``history`` holds the existing records known to the caller; records for
        other nodes or kinds are ignored. Analysis variants parse ``content``
        as JSON unless an already-structured ``result`` is supplied.
        """
        machine = self._machine(node)
        state = machine.state_of(node.status)
        if state != LifecycleState.IN_PROGRESS:
            raise InvalidTransitionError(
                node.id, f"cannot complete generation from {state.value} ({node.status.value})"
            )

        now = self.clock()
        version = next_version(history, node.id, machine.kind)
        fields = machine.apply_result(node.payload, content, result, version, now)

        updated = self._transition(node, machine.complete, dict(node.meta), now, **fields)
        record = GenerationRecord(
            id=str(uuid.uuid4()),
            node_id=node.id,
            kind=machine.kind,
            content=content,
            version=version,
            metadata=dict(metadata or {}),
            created_at=now,
        )
        return updated, record

    def fail_generation(self, node: GraphNode, reason: Optional[str] = None) -> GraphNode:
        """Move a node to error, keeping its last good result; never raises"""
        machine = STATUS_MACHINES[node.variant]
        if machine is None:
            return node
        meta = dict(node.meta)
        if reason:
            meta["last_error"] = reason
        return self._transition(node, machine.error, meta)
