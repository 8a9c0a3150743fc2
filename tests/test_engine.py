"""
Tests for the state-graph engine
"""

import pytest
from pydantic import BaseModel

from miniagent.config import settings
from miniagent.errors import ConfigurationError, RoutingError, StateValidationError
from miniagent.graph.engine import END, START, StateGraph, merge_appending


def _const(**values):
    def node(state):
        return dict(values)
    return node


def _increment(state):
    return {"count": state.get("count", 0) + 1}


class TestCompile:
    def test_missing_entry_point(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1))
        with pytest.raises(ConfigurationError):
            g.compile()

    def test_entry_point_not_registered(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1))
        g.set_entry_point("missing")
        with pytest.raises(ConfigurationError):
            g.compile()

    def test_valid_entry_point_compiles(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1))
        g.add_edge(START, "a")
        compiled = g.compile()
        assert compiled.entry == "a"

    def test_dangling_edges_do_not_fail_compile(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1))
        g.add_edge("a", "nowhere")
        g.set_entry_point("a")
        g.compile()

    def test_reserved_node_name(self):
        g = StateGraph("g")
        with pytest.raises(ConfigurationError):
            g.add_node(END, _const())

    def test_compiled_graph_is_a_snapshot(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1))
        g.set_entry_point("a")
        compiled = g.compile()
        g.add_node("b", _const(y=2))
        g.add_edge("a", "b")
        assert compiled.invoke({}) == {"x": 1}
        assert "b" not in compiled.nodes


class TestExecution:
    def test_linear_flow_merges_with_overwrite(self):
        g = StateGraph("g")
        g.add_node("a", _const(x=1, y=1))
        g.add_node("b", _const(y=2))
        g.add_edge("a", "b")
        g.set_entry_point("a")
        g.set_finish_point("b")
        run = g.compile().run({"x": 0, "z": 9})
        assert run.state == {"x": 1, "y": 2, "z": 9}
        assert run.path == ["a", "b"]
        assert run.stop_reason == "terminal"

    def test_terminal_node_halts_even_with_outgoing_edge(self):
        g = StateGraph("g")
        g.add_node("a", _increment)
        g.add_node("b", _increment)
        g.add_edge("a", "b")
        g.set_entry_point("a")
        g.set_finish_point("a")
        run = g.compile().run({})
        assert run.path == ["a"]
        assert run.state["count"] == 1

    def test_no_outgoing_edge_halts(self):
        g = StateGraph("g")
        g.add_node("a", _increment)
        g.set_entry_point("a")
        run = g.compile().run({})
        assert run.stop_reason == "no_edge"
        assert run.iterations == 1

    def test_end_sentinel_halts(self):
        g = StateGraph("g")
        g.add_node("a", _increment)
        g.add_edge("a", END)
        g.set_entry_point("a")
        assert g.compile().run({}).stop_reason == "end"

    def test_node_returning_none_keeps_state(self):
        g = StateGraph("g")
        g.add_node("a", lambda state: None)
        g.set_entry_point("a")
        assert g.compile().invoke({"k": "v"}) == {"k": "v"}

    def test_node_receives_copy_of_state(self):
        def mutate(state):
            state["leaked"] = True
            return {"ok": True}

        g = StateGraph("g")
        g.add_node("a", mutate)
        g.set_entry_point("a")
        assert "leaked" not in g.compile().invoke({})

    def test_non_mapping_output_rejected(self):
        g = StateGraph("g")
        g.add_node("a", lambda state: ["not", "a", "dict"])
        g.set_entry_point("a")
        with pytest.raises(StateValidationError):
            g.compile().invoke({})

    def test_history_is_seeded(self):
        g = StateGraph("g")
        g.add_node("a", lambda state: {"seen": len(state["history"])})
        g.set_entry_point("a")
        assert g.compile().invoke({}, history=[1, 2, 3])["seen"] == 3


class TestConditionalEdges:
    def _graph(self, router):
        g = StateGraph("g")
        g.add_node("start", _increment)
        g.add_node("left", _const(side="left"))
        g.add_node("right", _const(side="right"))
        g.add_conditional_edges("start", router, {"l": "left", "r": "right"})
        g.set_entry_point("start")
        return g.compile()

    def test_router_sees_post_merge_state(self):
        compiled = self._graph(lambda s: "l" if s["count"] == 1 else "r")
        assert compiled.invoke({})["side"] == "left"

    def test_unknown_route_key_raises(self):
        compiled = self._graph(lambda s: "up")
        with pytest.raises(RoutingError):
            compiled.invoke({})

    def test_route_to_unregistered_node_raises(self):
        g = StateGraph("g")
        g.add_node("a", _increment)
        g.add_conditional_edges("a", lambda s: "go", {"go": "ghost"})
        g.set_entry_point("a")
        with pytest.raises(RoutingError):
            g.compile().invoke({})

    def test_first_edge_wins(self):
        g = StateGraph("g")
        g.add_node("a", _increment)
        g.add_node("b", _const(hit="b"))
        g.add_node("c", _const(hit="c"))
        g.add_edge("a", "b")
        g.add_edge("a", "c")
        g.set_entry_point("a")
        assert g.compile().invoke({})["hit"] == "b"


class TestIterationCap:
    def test_cycle_without_terminal_stops_at_cap(self):
        g = StateGraph("loop")
        g.add_node("a", _increment)
        g.add_node("b", _increment)
        g.add_edge("a", "b")
        g.add_edge("b", "a")
        g.set_entry_point("a")
        run = g.compile(max_iterations=7).run({})
        assert run.stop_reason == "iteration_cap"
        assert run.iterations == 7
        assert run.state["count"] == 7

    def test_default_cap_is_50(self):
        g = StateGraph("loop")
        g.add_node("a", _increment)
        g.add_edge("a", "a")
        g.set_entry_point("a")
        assert g.compile().invoke({})["count"] == 50

    def test_default_cap_follows_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "graph_max_iterations", 3)
        g = StateGraph("loop")
        g.add_node("a", _increment)
        g.add_edge("a", "a")
        g.set_entry_point("a")
        run = g.compile().run({})
        assert run.iterations == 3
        assert run.stop_reason == "iteration_cap"


class TestMergeFunctions:
    def test_merge_appending_extends_lists(self):
        g = StateGraph("g")
        g.add_node("a", _const(items=[1], label="a"), merge=merge_appending("items"))
        g.add_node("b", _const(items=[2, 3], label="b"), merge=merge_appending("items"))
        g.add_edge("a", "b")
        g.set_entry_point("a")
        state = g.compile().invoke({"items": [0]})
        assert state == {"items": [0, 1, 2, 3], "label": "b"}


class CounterState(BaseModel):
    count: int = 0
    label: str = ""


class TestTypedState:
    def test_writes_checked_against_schema(self):
        g = StateGraph("typed", state_schema=CounterState)
        g.add_node("a", _increment, writes=["count", "bogus"])
        g.set_entry_point("a")
        with pytest.raises(ConfigurationError):
            g.compile()

    def test_valid_typed_graph_runs(self):
        g = StateGraph("typed", state_schema=CounterState)
        g.add_node("a", _increment, writes=["count"])
        g.set_entry_point("a")
        assert g.compile().invoke({"count": 4})["count"] == 5

    def test_type_violation_raises(self):
        g = StateGraph("typed", state_schema=CounterState)
        g.add_node("a", _const(count="not a number"))
        g.set_entry_point("a")
        with pytest.raises(StateValidationError):
            g.compile().invoke({})
