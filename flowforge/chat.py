"""
Project Chat for FlowForge
==========================

Context-aware assistant over the planning graph. When a node is selected,
the node itself and every ancestor feeding it are projected and attached to
the user's message; the most recent conversation turns go along as history.

Each exchange yields two message records (user, assistant) in the storage
row shape: id, project_id, node_id, role, content, metadata, created_at.
The user record's metadata lists the variants that were sent as context.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import json
import time
import uuid

from .context import ContextBudget, ContextProjector, ContextSummary, build_context
from .errors import ValidationError
from .graph_store import GraphStore

CHAT_SYSTEM_PROMPT = (
    "You are FlowForge AI, an expert website strategist and developer assistant. "
    "You help users plan, design, and build websites on a visual strategy canvas: "
    "defining goals and audience, learning from competitors, choosing design direction, "
    "writing PRDs and generating React components styled with Tailwind CSS. "
    "Reference the project context you are given and keep answers specific and actionable."
)

HISTORY_LIMIT = 10


class ChatRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """One stored chat turn"""
    id: str
    role: ChatRole
    content: str
    node_id: Optional[str] = None
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not isinstance(self.role, ChatRole):
            try:
                object.__setattr__(self, "role", ChatRole(self.role))
            except ValueError:
                raise ValidationError([f"message {self.id}: unknown role {self.role!r}"]) from None

    def as_turn(self) -> Dict[str, str]:
        """Provider-neutral ``{"role", "content"}`` turn"""
        return {"role": self.role.value, "content": self.content}


def chat_context(store: GraphStore, node_id: str,
                 budget: Optional[ContextBudget] = None) -> List[ContextSummary]:
    """The selected node followed by its ancestors, nearest first"""
    context = build_context(store, node_id, budget)
    return [ContextProjector().project_node(context.target)] + context.summaries


def build_chat_prompt(message: str, summaries: List[ContextSummary]) -> str:
    if not summaries:
        return message
    context = json.dumps([s.to_dict() for s in summaries], indent=2)
    return f"{message}\n\nProject Context:\n{context}"


@dataclass
class ChatReply:
    user_message: ChatMessage
    assistant_message: ChatMessage
    context: List[ContextSummary]

    @property
    def text(self) -> str:
        return self.assistant_message.content


class ChatSession:
    """Conversation for one project; ``messages`` is the full transcript"""

    def __init__(self, store: GraphStore, llm, project_id: Optional[str] = None,
                 history: Iterable[ChatMessage] = (), budget: Optional[ContextBudget] = None,
                 history_limit: int = HISTORY_LIMIT):
        if history_limit < 0:
            raise ValidationError([f"history_limit must not be negative, got {history_limit}"])
        self.store = store
        self.llm = llm
        self.project_id = project_id
        self.messages: List[ChatMessage] = list(history)
        self.budget = budget or ContextBudget()
        self.history_limit = history_limit

    def recent_turns(self) -> List[Dict[str, str]]:
        """Last ``history_limit`` messages, oldest first"""
        if not self.history_limit:
            return []
        return [m.as_turn() for m in self.messages[-self.history_limit:]]

    async def send(self, message: str, node_id: Optional[str] = None) -> ChatReply:
        """Ask the assistant; the transcript only grows when the call succeeds"""
        if not message or not message.strip():
            raise ValidationError(["chat message must not be empty"])
        summaries = chat_context(self.store, node_id, self.budget) if node_id else []
        prompt = build_chat_prompt(message, summaries)

        print(f"💬 Chat with {len(summaries)} context node(s)")
        try:
            text = await self.llm.generate_response(prompt, CHAT_SYSTEM_PROMPT, history=self.recent_turns())
        except Exception as e:
            print(f"❌ Chat failed: {e}")
            raise

        now = time.time()
        user = ChatMessage(
            id=str(uuid.uuid4()),
            role=ChatRole.USER,
            content=message,
            node_id=node_id,
            project_id=self.project_id,
            metadata={
                "context_nodes": [s.variant.value for s in summaries],
                "context_node_ids": [s.node_id for s in summaries],
            },
            created_at=now,
        )
        assistant = ChatMessage(
            id=str(uuid.uuid4()),
            role=ChatRole.ASSISTANT,
            content=text,
            node_id=node_id,
            project_id=self.project_id,
            created_at=now,
        )
        self.messages.extend([user, assistant])
        return ChatReply(user_message=user, assistant_message=assistant, context=summaries)


async def run_chat(store: GraphStore, llm, message: str, node_id: Optional[str] = None,
                   history: Iterable[ChatMessage] = (), budget: Optional[ContextBudget] = None) -> ChatReply:
    """Convenience wrapper: one exchange on a fresh session"""
    return await ChatSession(store, llm, history=history, budget=budget).send(message, node_id)
