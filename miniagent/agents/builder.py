"""
builder.py
----------
Declarative agent wiring on top of the graph engine.

Flow:
START -> think -> act -> observe (finish)

think:   one model consultation with the user message, the system prompt and
         the tool specs; records whether tool calls were requested
act:     hands requested tool calls to a ToolDispatcher
observe: marks the pass as completed

By default a built agent performs exactly one pass per invocation. With
`loop_until_done()` the act -> observe edge becomes conditional and routes back
to think while the model keeps requesting tools and the budget allows. If the
budget runs out first, the result carries the "Maximum iterations reached"
fallback, as the tool-calling loop does.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..graph.engine import CompiledGraph, StateGraph, merge_appending
from ..llm.base import ChatModel
from ..logging import get_logger
from ..models import MAX_ITERATIONS_REACHED, AgentResult, Message, ModelRequest, ToolCall
from ..tools.base import Capability, invoke_capability, parse_arguments
from ..tools.registry import ToolRegistry
from .driver import consult

log = get_logger(__name__)


class ToolDispatcher:
    """
    Executes tool calls for the act node and returns the tool messages to add.
    Unknown tools are answered with an "Unknown tool" message.
    """

    def __init__(self, tools: Mapping[str, Capability]) -> None:
        self.tools = tools

    def dispatch(self, calls: List[ToolCall]) -> List[Message]:
        out: List[Message] = []
        for call in calls:
            tool = self.tools.get(call.name)
            if tool is None:
                log.warning("tool_not_found", tool_name=call.name, tool_call_id=call.id)
                text = f"Unknown tool: {call.name}"
            else:
                text, _ = invoke_capability(tool, parse_arguments(call.arguments))
            out.append(Message(role="tool", content=text, tool_call_id=call.id))
        return out


class AgentBuilder:
    """Fluent builder: AgentBuilder(model).system_prompt(...).tool(...).build()"""

    def __init__(self, model: ChatModel) -> None:
        self._model = model
        self._system_prompt = "You are a helpful assistant."
        self._tools = ToolRegistry()
        self._max_iterations = 10
        self._loop = False
        self._dispatcher: Optional[ToolDispatcher] = None

    def system_prompt(self, prompt: str) -> "AgentBuilder":
        self._system_prompt = prompt
        return self

    def tool(self, tool: Capability) -> "AgentBuilder":
        self._tools.register(tool)
        return self

    def tools(self, registry: Mapping[str, Capability]) -> "AgentBuilder":
        for tool in registry.values():
            self._tools.register(tool)
        return self

    def dispatcher(self, dispatcher: ToolDispatcher) -> "AgentBuilder":
        self._dispatcher = dispatcher
        return self

    def max_iterations(self, n: int) -> "AgentBuilder":
        self._max_iterations = n
        return self

    def loop_until_done(self) -> "AgentBuilder":
        self._loop = True
        return self

    def build(self) -> "BuiltAgent":
        dispatcher = self._dispatcher or ToolDispatcher(self._tools)
        g = StateGraph("agent")
        g.add_node("think", self._think_node(), merge=merge_appending("messages"))
        g.add_node("act", self._act_node(dispatcher), merge=merge_appending("messages"))
        g.add_node("observe", _observe)

        g.add_edge("think", "act")
        if self._loop:
            g.add_conditional_edges("act", self._route_after_act, {"think": "think", "observe": "observe"})
        else:
            g.add_edge("act", "observe")
        g.set_entry_point("think")
        g.set_finish_point("observe")

        # think + act per round, plus the final observe
        return BuiltAgent(g.compile(max_iterations=self._max_iterations * 2 + 1), loop=self._loop)

    # ----------------------------------------------------------------------------------
    # Nodes
    # ----------------------------------------------------------------------------------
    def _think_node(self):
        model, system_prompt, tools = self._model, self._system_prompt, self._tools

        def think(state: Dict[str, Any]) -> Dict[str, Any]:
            messages = state.get("messages") or [Message(role="user", content=state.get("user_message", ""))]
            response = consult(model, ModelRequest(messages=messages, system_prompt=system_prompt, tools=tools.specs()))
            reply = Message(role="assistant", content=response.content, tool_calls=response.tool_calls)
            seed = [] if state.get("messages") else messages[:1]
            return {
                "ai_thought": response.content,
                "has_tool_calls": response.has_tool_calls,
                "tool_calls": list(state.get("tool_calls") or []) + response.tool_calls,
                "pending_tool_calls": response.tool_calls,
                "rounds": int(state.get("rounds", 0)) + 1,
                "messages": seed + [reply],
            }

        return think

    def _act_node(self, dispatcher: ToolDispatcher):
        def act(state: Dict[str, Any]) -> Dict[str, Any]:
            pending = state.get("pending_tool_calls") or []
            results = dispatcher.dispatch(pending) if state.get("has_tool_calls") else []
            return {"action_taken": True, "messages": results, "pending_tool_calls": []}

        return act

    def _route_after_act(self, state: Dict[str, Any]) -> str:
        if state.get("has_tool_calls") and state.get("rounds", 0) < self._max_iterations:
            return "think"
        return "observe"


def _observe(state: Dict[str, Any]) -> Dict[str, Any]:
    return {"observation": "completed"}


class BuiltAgent:
    def __init__(self, graph: CompiledGraph, loop: bool = False) -> None:
        self.graph = graph
        self.loop = loop

    def invoke(self, message: str) -> AgentResult:
        state = self.graph.invoke({"user_message": message})
        response = state.get("ai_thought") or ""
        if self.loop and state.get("has_tool_calls"):
            # rounds ran out while the model still wanted tools
            log.warning("agent_iteration_cap", rounds=state.get("rounds", 0))
            response = MAX_ITERATIONS_REACHED
        return BuiltAgentResult(
            response=response,
            iterations=state.get("rounds", 1),
            tool_calls=state.get("tool_calls") or [],
            messages=state.get("messages") or [],
        )


class BuiltAgentResult(AgentResult):
    tool_calls: List[ToolCall] = []
    messages: List[Message] = []
