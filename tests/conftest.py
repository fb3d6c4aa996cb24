"""
Shared fixtures for FlowForge tests
"""
import pytest

from flowforge.graph_store import GraphStore
from flowforge.ontology import NodeVariant


class FakeLLM:
    """Records prompts and returns canned responses"""

    def __init__(self, response="# Home PRD", error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.histories = []

    async def generate_response(self, prompt, system_prompt=None, history=None):
        self.calls.append((prompt, system_prompt))
        self.histories.append(list(history or []))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def planning_graph():
    """Project -> Design (analyzed) -> Page"""
    store = GraphStore()
    ids = {
        "project": store.add_node(NodeVariant.PROJECT, {"name": "Acme", "industry": "SaaS"}),
        "design": store.add_node(NodeVariant.DESIGN, {
            "source": "https://dribbble.com/shots/1",
            "extraction": {
                "style_mood": "Modern",
                "layout_patterns": ["bento grid"],
                "components": ["navbar", "pricing table"],
            },
        }),
        "page": store.add_node(NodeVariant.PAGE, {"name": "Home", "route": "/"}),
    }
    store.add_edge(ids["project"], ids["design"])
    store.add_edge(ids["design"], ids["page"])
    return store, ids
