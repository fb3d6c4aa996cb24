"""
Generation Runner for FlowForge
===============================

I/O-layer orchestration around one AI generation call:

1. resolve and project the target's ancestor context
2. begin the lifecycle (node -> in-progress) and write it back
3. call the model
4. complete (new versioned record) or fail (node -> error, last good
   result kept) and write the node back

The runner keeps the store in sync; persisting nodes and records to a real
database remains the caller's job.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from .context import ContextBudget, GenerationContext, build_context
from .errors import GenerationFailedError, InvalidPayloadError, InvalidTransitionError
from .graph_store import GraphStore
from .lifecycle import GenerationLifecycle, generation_kind_for
from .ontology import GenerationKind, GenerationRecord, GraphNode

SYSTEM_PROMPTS = {
    GenerationKind.ANALYSIS: (
        "You analyze websites for a website planning tool. "
        "Return ONLY a JSON object, no additional text or Markdown."
    ),
    GenerationKind.PRD: (
        "You write product requirements documents for website pages. "
        "Use Markdown headings and keep requirements actionable."
    ),
    GenerationKind.CODE: (
        "You write production-ready React components styled with Tailwind CSS. "
        "Return only the component code."
    ),
}

# Live result fields that should not be echoed back into the prompt
_RESULT_FIELDS = ("status", "analysis", "extraction", "prd", "content")


def build_prompt(context: GenerationContext, instructions: Optional[str] = None) -> str:
    """Assemble the user prompt from the target payload and its ancestor context"""
    target = context.target
    details = {k: v for k, v in target.payload.to_dict().items()
               if k not in _RESULT_FIELDS and v not in (None, "", [], {})}
    parts = [
        f"## Target: {target.variant.value} '{target.label}'",
        json.dumps(details, indent=2, sort_keys=True),
    ]
    if context.summaries:
        parts.append("## Context from Connected Nodes")
        parts.append(context.render())
    if instructions:
        parts.append("## Instructions")
        parts.append(instructions)
    return "\n\n".join(parts)


@dataclass
class GenerationOutcome:
    """Result of a successful run"""
    node: GraphNode
    record: GenerationRecord
    context: GenerationContext
    prompt: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


class GenerationRunner:
    """Runs one generation for a node, applying lifecycle transitions to the store"""

    def __init__(self, store: GraphStore, llm, lifecycle: Optional[GenerationLifecycle] = None,
                 budget: Optional[ContextBudget] = None):
        self.store = store
        self.llm = llm
        self.lifecycle = lifecycle or GenerationLifecycle()
        self.budget = budget or ContextBudget()

    async def run(self, node_id: str, history: Iterable[GenerationRecord] = (),
                  instructions: Optional[str] = None) -> GenerationOutcome:
        node = self.store.require_node(node_id)
        kind = generation_kind_for(node.variant)
        if kind is None:
            raise InvalidTransitionError(node.id, f"{node.variant.value} nodes do not support generation")

        context = build_context(self.store, node_id, self.budget)
        started = self.store.put_node(self.lifecycle.begin_generation(node))
        print(f"🔄 Generating {kind.value} for {node.variant.value} '{node.label}' "
              f"with {len(context.summaries)} context node(s)")

        prompt = build_prompt(context, instructions)
        try:
            text = await self.llm.generate_response(prompt, SYSTEM_PROMPTS[kind])
        except Exception as e:
            raise self._fail(started, f"LLM call failed: {e}", e) from e
        except BaseException as e:
            # cancellation and interrupts still leave the node in error, never in-progress
            self._fail(started, f"Generation interrupted: {type(e).__name__}", e)
            raise

        metadata = {
            "context_node_ids": context.node_ids,
            "context_node_count": len(context.summaries),
        }
        try:
            completed, record = self.lifecycle.complete_generation(
                started, text, metadata=metadata, history=list(history)
            )
        except InvalidPayloadError as e:
            raise self._fail(started, str(e), e) from e

        self.store.put_node(completed)
        print(f"✅ {kind.value} v{record.version} ready for '{node.label}'")
        return GenerationOutcome(node=completed, record=record, context=context,
                                 prompt=prompt, metadata=metadata)

    def _fail(self, node: GraphNode, reason: str, cause: Optional[BaseException]) -> GenerationFailedError:
        """Move the node to error in the store and build the exception to raise"""
        failed = self.store.put_node(self.lifecycle.fail_generation(node, reason))
        print(f"❌ Generation failed for '{node.label}': {reason}")
        return GenerationFailedError(failed, reason, cause)


async def run_generation(store: GraphStore, node_id: str, llm,
                         history: Iterable[GenerationRecord] = (),
                         budget: Optional[ContextBudget] = None) -> GenerationOutcome:
    """Convenience wrapper: one-shot runner"""
    return await GenerationRunner(store, llm, budget=budget).run(node_id, history)
