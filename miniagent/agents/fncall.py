"""
fncall.py
---------
Tool-calling agent: the model requests tools through structured tool calls.

Every iteration sends the full history, the system prompt (extended with the
tool list) and the tool specs. A reply without tool calls is the final answer.
A reply with tool calls is recorded as an assistant message carrying those
calls, each call is executed and answered with a tool message tagged with the
call id, and the model is consulted again so it can see the results.
"""

from __future__ import annotations

import uuid
from typing import Mapping, Optional

from ..llm.base import ChatModel
from ..logging import get_logger
from ..memory import ConversationMemory
from ..models import AgentResult, ModelRequest, ModelResponse, ToolCall
from ..tools.base import Capability, invoke_capability, parse_arguments
from ..tools.registry import as_registry
from .driver import LoopStrategy, run_bounded
from .prompts import fncall_system_prompt

log = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 5


class StructuredToolStrategy(LoopStrategy):
    """Interprets replies through their structured tool calls."""

    name = "fncall"

    def __init__(self, agent: "ToolCallingAgent") -> None:
        self.agent = agent

    def build_request(self, iteration: int) -> ModelRequest:
        agent = self.agent
        return ModelRequest(
            messages=agent.memory.with_summary(),
            system_prompt=fncall_system_prompt(agent.system_prompt, agent.tools.describe_all()),
            tools=agent.tools.specs(),
            temperature=agent.temperature,
            max_tokens=agent.max_tokens,
        )

    def interpret(self, response: ModelResponse, iteration: int) -> Optional[str]:
        memory = self.agent.memory
        if not response.has_tool_calls:
            memory.append("assistant", response.content)
            return response.content

        memory.append("assistant", response.content, tool_calls=response.tool_calls)
        for call in response.tool_calls:
            self._dispatch(call, iteration)
        return None

    def _dispatch(self, call: ToolCall, iteration: int) -> None:
        agent = self.agent
        tool = agent.tools.get(call.name)
        if tool is None:
            log.warning("tool_not_found", tool_name=call.name, tool_call_id=call.id, iteration=iteration)
            if agent.report_unknown_tools:
                agent.memory.append("tool", f"Unknown tool: {call.name}", tool_call_id=call.id)
            return
        text, _ = invoke_capability(tool, parse_arguments(call.arguments))
        agent.memory.append("tool", text, tool_call_id=call.id)


class ToolCallingAgent:
    """
    Agent driving the structured tool-calling loop.

    One instance per conversation; it is not meant to be driven by two callers
    at once.
    """

    def __init__(
        self,
        model: ChatModel,
        tools: Optional[Mapping[str, Capability]] = None,
        system_prompt: str = "You are a helpful assistant.",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        memory: Optional[ConversationMemory] = None,
        report_unknown_tools: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        name: Optional[str] = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.name = name or "fncall-agent"
        self.model = model
        self.tools = as_registry(tools)
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.memory = memory if memory is not None else ConversationMemory()
        self.report_unknown_tools = report_unknown_tools
        self.temperature = temperature
        self.max_tokens = max_tokens

    def chat(self, user_message: str) -> AgentResult:
        """Run one user turn to a final answer or until the turn budget is spent."""
        self.memory.append("user", user_message)
        log.info("agent_chat", agent_id=self.id, loop="fncall", message_length=len(user_message))
        response, iterations = run_bounded(self.model, StructuredToolStrategy(self), self.max_iterations)
        return AgentResult(response=response, iterations=iterations)

    def clear_history(self) -> None:
        self.memory.clear()
