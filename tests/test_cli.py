"""
Tests for the command line
"""
import json

import pytest
from conftest import FakeLLM
from flowforge.cli import main

SNAPSHOT = {
    "nodes": [
        {"id": "p1", "type": "project", "data": {"name": "Acme"}},
        {"id": "c1", "type": "competitor", "data": {"url": "https://rival.com"}},
        {"id": "g1", "type": "page", "data": {"name": "Home", "route": "/"}},
    ],
    "edges": [
        {"id": "e1", "source_id": "p1", "target_id": "g1"},
        {"id": "e2", "source_id": "c1", "target_id": "g1"},
    ],
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("FLOWFORGE_CONTEXT_MAX_DEPTH", raising=False)
    monkeypatch.delenv("FLOWFORGE_CONTEXT_MAX_ITEMS", raising=False)
    monkeypatch.delenv("LLM_PROVIDER", raising=False)


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(SNAPSHOT))
    return str(path)


def test_validate(snapshot_file, capsys):
    assert main(["validate", snapshot_file]) == 0
    out = capsys.readouterr().out
    assert "Snapshot valid: 3 nodes, 2 edges" in out
    assert "competitor: 1" in out


def test_context_markdown(snapshot_file, capsys):
    assert main(["context", snapshot_file, "g1"]) == 0
    out = capsys.readouterr().out
    assert "page 'Home' [idle]" in out
    assert out.index("### Project: Acme") < out.index("### Competitor: https://rival.com")
    assert "_Not analyzed yet_" in out


def test_context_json(snapshot_file, capsys):
    assert main(["context", snapshot_file, "g1", "--json", "--max-items", "1"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [c["id"] for c in data["context"]] == ["p1"]


def test_context_without_ancestors(snapshot_file, capsys):
    assert main(["context", snapshot_file, "p1"]) == 0
    assert "(no connected context)" in capsys.readouterr().out


def test_unknown_node(snapshot_file, capsys):
    assert main(["context", snapshot_file, "nope"]) == 1
    assert "not_found" in capsys.readouterr().err


def test_invalid_snapshot(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nodes": [{"id": "x", "type": "widget"}]}))
    assert main(["validate", str(path)]) == 1
    assert "validation_error" in capsys.readouterr().err


def test_validate_reports_malformed_version(tmp_path, capsys):
    path = tmp_path / "bad_version.json"
    path.write_text(json.dumps({"nodes": [
        {"id": "s1", "type": "section",
         "data": {"name": "Hero", "content": {"generated": "<Hero />", "version": "abc"}}},
    ]}))
    assert main(["validate", str(path)]) == 1
    assert "content.version" in capsys.readouterr().err


@pytest.mark.parametrize("flag", ["--max-items", "--max-depth"])
@pytest.mark.parametrize("value", ["0", "-1"])
def test_context_rejects_non_positive_limits(snapshot_file, capsys, flag, value):
    assert main(["context", snapshot_file, "g1", "--json", flag, value]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "validation_error" in captured.err


def test_chat_saves_exchange(snapshot_file, capsys, monkeypatch):
    llm = FakeLLM("Lead with social proof")
    monkeypatch.setattr("flowforge.cli.create_llm_interface", lambda: llm)

    assert main(["chat", snapshot_file, "What goes on the home page?", "--node", "g1", "--save"]) == 0
    assert "Lead with social proof" in capsys.readouterr().out
    assert '"variant": "competitor"' in llm.calls[0][0]

    data = json.loads(open(snapshot_file).read())
    assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
    assert data["messages"][0]["metadata"]["context_nodes"] == ["page", "project", "competitor"]

    assert main(["chat", snapshot_file, "And the footer?"]) == 0
    assert len(llm.histories[1]) == 2


def test_chat_unknown_node(snapshot_file, capsys, monkeypatch):
    monkeypatch.setattr("flowforge.cli.create_llm_interface", lambda: FakeLLM())
    assert main(["chat", snapshot_file, "Hi", "--node", "nope"]) == 1
    assert "not_found" in capsys.readouterr().err
