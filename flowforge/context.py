"""
Context Projection for FlowForge
================================

Turns resolved ancestor nodes into compact, generation-relevant summaries:

- ContextSummary: normalized field subset for one ancestor
- ContextProjector: per-variant extraction (every NodeVariant must be handled)
- ContextBudget: optional trimming policy for prompt length
- build_context / render_context: compose resolver + projector and render
  Markdown for the AI-invocation layer

Competitor and design nodes whose analysis has not run yet are projected as
stubs, so a consumer can tell "not yet analyzed" apart from "not connected".
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import json

from .config import Settings
from .errors import ValidationError
from .graph_store import GraphStore
from .ontology import GraphNode, NodeVariant
from .resolver import resolve_ancestor_nodes

VARIANT_LABELS = {
    NodeVariant.PROJECT: "Project",
    NodeVariant.COMPETITOR: "Competitor",
    NodeVariant.DESIGN: "Design Inspiration",
    NodeVariant.GOALS: "Goals",
    NodeVariant.PAGE: "Page",
    NodeVariant.SECTION: "Section",
    NodeVariant.FEATURE: "Feature",
    NodeVariant.PRD: "PRD",
}


@dataclass(frozen=True)
class ContextSummary:
    """Generation-relevant view of one ancestor node"""
    node_id: str
    variant: NodeVariant
    fields: Dict[str, Any] = field(default_factory=dict, hash=False)
    stub: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"variant": self.variant.value, "id": self.node_id}
        data.update(self.fields)
        data["stub"] = self.stub
        return data

    def to_json(self) -> str:
        """Serialize to deterministic JSON"""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':'))


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty values so summaries only carry what was provided"""
    return {k: v for k, v in fields.items() if v not in (None, "", [], {})}


class ContextProjector:
    """Dispatches each node to the extractor for its variant"""

    def project(self, nodes: Iterable[GraphNode]) -> List[ContextSummary]:
        """Project nodes in input order"""
        return [self.project_node(node) for node in nodes]

    def project_node(self, node: GraphNode) -> ContextSummary:
        extractor = getattr(self, f"_project_{node.variant.value}")
        return extractor(node)

    def _project_project(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        return ContextSummary(node.id, node.variant, _compact({
            "name": p.name,
            "description": p.description,
            "industry": p.industry,
            "target_audience": p.target_audience,
            "brand_voice": p.brand_voice,
        }))

    def _project_competitor(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        ident = {"name": p.name or p.url, "url": p.url}
        if p.analysis is None:
            return ContextSummary(node.id, node.variant, ident, stub=True)
        ident.update({
            "strengths": list(p.analysis.strengths),
            "design_patterns": list(p.analysis.design_patterns),
            "ctas": list(p.analysis.ctas),
        })
        return ContextSummary(node.id, node.variant, ident)

    def _project_design(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        ident = {"source": p.source}
        if p.extraction is None:
            return ContextSummary(node.id, node.variant, ident, stub=True)
        ident.update({
            "style_mood": p.extraction.style_mood,
            "layout_patterns": list(p.extraction.layout_patterns),
            "components": list(p.extraction.components),
        })
        return ContextSummary(node.id, node.variant, ident)

    def _project_goals(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        objectives = []
        for objective in p.objectives:
            line = f"[{objective.priority.value.upper()}] {objective.text}"
            if objective.measurable:
                line += f" (Metric: {objective.measurable})"
            objectives.append(line)
        return ContextSummary(node.id, node.variant, _compact({
            "objectives": objectives,
            "constraints": list(p.constraints),
            "timeline": p.timeline,
        }))

    def _project_page(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        return ContextSummary(node.id, node.variant, _compact({
            "name": p.name,
            "route": p.route,
            "description": p.description,
            "prd": p.prd.content if p.prd else None,
        }))

    def _project_section(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        return ContextSummary(node.id, node.variant, _compact({
            "name": p.name,
            "section_type": p.section_type.value,
            "description": p.description,
        }))

    def _project_feature(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        return ContextSummary(node.id, node.variant, _compact({
            "name": p.name,
            "description": p.description,
            "requirements": list(p.requirements),
            "integrations": list(p.integrations),
        }))

    def _project_prd(self, node: GraphNode) -> ContextSummary:
        p = node.payload
        return ContextSummary(node.id, node.variant, _compact({
            "format": p.format.value,
            "version": p.version,
            "content": p.content,
        }))


_unhandled = [v.value for v in NodeVariant if not hasattr(ContextProjector, f"_project_{v.value}")]
if _unhandled:
    raise TypeError(f"ContextProjector has no extractor for: {_unhandled}")


@dataclass
class ContextBudget:
    """Trimming policy for context handed to a generation call"""
    max_items: Optional[int] = None
    max_depth: Optional[int] = None

    def __post_init__(self):
        errors = [f"{name} must be at least 1, got {value}"
                  for name, value in (("max_items", self.max_items), ("max_depth", self.max_depth))
                  if value is not None and value < 1]
        if errors:
            raise ValidationError(errors)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'ContextBudget':
        return cls(max_items=settings.context_max_items, max_depth=settings.context_max_depth)

    def apply(self, summaries: List[ContextSummary]) -> List[ContextSummary]:
        """Keep the nearest ``max_items`` summaries (resolution order is nearest first)"""
        if self.max_items is None:
            return list(summaries)
        return list(summaries[:self.max_items])


@dataclass
class GenerationContext:
    """Target node plus ordered ancestor summaries"""
    target: GraphNode
    summaries: List[ContextSummary]

    @property
    def node_ids(self) -> List[str]:
        return [s.node_id for s in self.summaries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.target.id,
            "variant": self.target.variant.value,
            "payload": self.target.payload.to_dict(),
            "context": [s.to_dict() for s in self.summaries],
        }

    def render(self) -> str:
        return render_context(self.summaries)


def build_context(store: GraphStore, target_id: str, budget: Optional[ContextBudget] = None) -> GenerationContext:
    """Resolve ancestors of ``target_id`` and project them"""
    budget = budget or ContextBudget()
    target = store.require_node(target_id)
    ancestors = resolve_ancestor_nodes(store, target_id, max_depth=budget.max_depth)
    summaries = budget.apply(ContextProjector().project(ancestors))
    return GenerationContext(target=target, summaries=summaries)


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def render_context(summaries: Iterable[ContextSummary]) -> str:
    """Render summaries as Markdown sections, one per node"""
    blocks = []
    for summary in summaries:
        fields = dict(summary.fields)
        title = fields.pop("name", None) or fields.get("url") or fields.get("source") or summary.node_id
        lines = [f"### {VARIANT_LABELS[summary.variant]}: {title}"]
        if summary.stub:
            lines.append("- _Not analyzed yet_")
        for key, value in fields.items():
            label = key.replace("_", " ").title()
            lines.append(f"- **{label}**: {_format_value(value)}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
