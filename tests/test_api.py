"""
Tests for the HTTP surface
"""

import pytest
from fastapi.testclient import TestClient

from conftest import BrokenChatModel, ScriptedChatModel, tool_reply
from miniagent.agents.registry import AgentRegistry
from miniagent.app.deps import get_registry
from miniagent.app.main import app
from miniagent.tools.builtin import Calculator
from miniagent.tools.registry import ToolRegistry


@pytest.fixture
def make_client():
    def _make(model):
        registry = AgentRegistry(model, tools=ToolRegistry([Calculator()]))
        app.dependency_overrides[get_registry] = lambda: registry
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


class TestProbes:
    def test_health(self, make_client):
        client = make_client(ScriptedChatModel([]))
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready_lists_tools(self, make_client):
        body = make_client(ScriptedChatModel([])).get("/ready").json()
        assert body["status"] == "ready"
        assert "calculator" in body["tools"]


class TestAgents:
    def test_create_list_get_delete(self, make_client):
        client = make_client(ScriptedChatModel([]))
        created = client.post("/agents", json={"name": "helper"})
        assert created.status_code == 201
        agent_id = created.json()["id"]
        assert created.json()["kind"] == "fncall"

        assert [a["id"] for a in client.get("/agents").json()] == [agent_id]
        assert client.get(f"/agents/{agent_id}").json()["name"] == "helper"

        assert client.delete(f"/agents/{agent_id}").json() == {"agent_id": agent_id, "deleted": True}
        assert client.get(f"/agents/{agent_id}").status_code == 404

    def test_invalid_kind_is_rejected(self, make_client):
        client = make_client(ScriptedChatModel([]))
        assert client.post("/agents", json={"name": "x", "kind": "planner"}).status_code == 422

    def test_unknown_agent(self, make_client):
        response = make_client(ScriptedChatModel([])).post("/agents/nope/chat", json={"message": "hi"})
        assert response.status_code == 404
        assert "nope" in response.json()["error"]


class TestChat:
    def test_calculator_turn(self, make_client):
        model = ScriptedChatModel([
            tool_reply("calculator", {"a": 2, "b": 3, "op": "add"}),
            "The result is 5.",
        ])
        client = make_client(model)
        agent_id = client.post("/agents", json={"name": "math"}).json()["id"]
        body = client.post(f"/agents/{agent_id}/chat", json={"message": "What is 2 + 3?"}).json()
        assert body["response"] == "The result is 5."
        assert body["iterations"] == 2
        assert body["reasoning_trace"] is None
        assert client.get(f"/agents/{agent_id}").json()["history_size"] == 4

    def test_react_turn_returns_trace(self, make_client):
        model = ScriptedChatModel([
            'Thought: add\nAction: calculator\nAction Input: {"a": 2, "b": 3, "op": "add"}',
            "Action: Finish\nObservation: 5",
        ])
        client = make_client(model)
        agent_id = client.post("/agents", json={"name": "r", "kind": "react"}).json()["id"]
        body = client.post(f"/agents/{agent_id}/chat", json={"message": "2 + 3?"}).json()
        assert body["response"] == "5"
        assert [step["action"] for step in body["reasoning_trace"]] == ["calculator", "Finish"]

    def test_clear_history(self, make_client):
        client = make_client(ScriptedChatModel(["hello"]))
        agent_id = client.post("/agents", json={"name": "a"}).json()["id"]
        client.post(f"/agents/{agent_id}/chat", json={"message": "hi"})
        assert client.delete(f"/agents/{agent_id}/history").json()["cleared"] is True
        assert client.get(f"/agents/{agent_id}").json()["history_size"] == 0

    def test_model_failure_maps_to_bad_gateway(self, make_client):
        client = make_client(BrokenChatModel())
        agent_id = client.post("/agents", json={"name": "a"}).json()["id"]
        response = client.post(f"/agents/{agent_id}/chat", json={"message": "hi"})
        assert response.status_code == 502
        assert "error" in response.json()
