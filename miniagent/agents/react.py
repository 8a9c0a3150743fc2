"""
react.py
--------
ReAct agent: the model reasons in a labeled text protocol.

    Thought: I need to add the numbers
    Action: calculator
    Action Input: {"a": 2, "b": 3, "op": "add"}

The agent runs the named tool, fills in the Observation and appends the whole
step to an evolving prompt, so the next round shows the model its own previous
steps verbatim. A reply without an Action line is the final answer, as is the
Observation of an Action named `finish`.
"""

from __future__ import annotations

import uuid
from typing import List, Mapping, Optional

from ..llm.base import ChatModel
from ..logging import get_logger
from ..memory import ConversationMemory
from ..models import Message, ModelRequest, ModelResponse, ReActResult, ReasoningStep
from ..tools.base import Capability, invoke_capability, parse_arguments
from ..tools.registry import as_registry
from .driver import LoopStrategy, run_bounded
from .prompts import react_system_prompt

log = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 10
FINISH_ACTION = "finish"

# Checked in order; the first label a line starts with wins
_LABELS = (
    ("Thought:", "thought"),
    ("Action:", "action"),
    ("Action Input:", "action_input"),
    ("Observation:", "observation"),
)


def parse_react_step(content: Optional[str]) -> Optional[ReasoningStep]:
    """
    Parse labeled lines out of a model reply.

    Returns None when the reply has no non-empty Action, i.e. it is a final answer.
    """
    if content is None:
        return None
    fields = {}
    for raw_line in content.split("\n"):
        line = raw_line.strip()
        for label, key in _LABELS:
            if line.startswith(label):
                fields[key] = line[len(label):].strip()
                break
    step = ReasoningStep(**fields)
    return step if step.is_valid else None


def format_react_step(step: ReasoningStep) -> str:
    lines = []
    if step.thought is not None:
        lines.append(f"Thought: {step.thought}\n")
    if step.action is not None:
        lines.append(f"Action: {step.action}\n")
    if step.action_input is not None:
        lines.append(f"Action Input: {step.action_input}\n")
    if step.observation is not None:
        lines.append(f"Observation: {step.observation}\n")
    return "".join(lines)


class ReActStrategy(LoopStrategy):
    """Interprets replies through the Thought/Action/Observation protocol."""

    name = "react"

    def __init__(self, agent: "ReActAgent", question: str) -> None:
        self.agent = agent
        self.prompt = f"Question: {question}\n\n"
        self.trace: List[ReasoningStep] = []
        self.system_prompt = react_system_prompt(agent.system_prompt, agent.tools.names())

    def build_request(self, iteration: int) -> ModelRequest:
        return ModelRequest(
            messages=[
                Message(role="system", content=self.system_prompt),
                Message(role="user", content=self.prompt),
            ],
            system_prompt=self.system_prompt,
            temperature=self.agent.temperature,
            max_tokens=self.agent.max_tokens,
        )

    def interpret(self, response: ModelResponse, iteration: int) -> Optional[str]:
        step = parse_react_step(response.content)
        if step is None:
            return self._finish(response.content)

        self.trace.append(step)
        if step.action.lower() == FINISH_ACTION:
            return self._finish(step.observation or step.action_input or "")

        tool = self.agent.tools.get(step.action)
        if tool is None:
            log.warning("react_unknown_action", action=step.action, iteration=iteration)
            step.observation = f"Unknown action: {step.action}"
        else:
            text, ok = invoke_capability(tool, parse_arguments(step.action_input))
            step.observation = f"Result: {text}" if ok else text

        self.prompt += "\n\n" + format_react_step(step)
        return None

    def _finish(self, answer: str) -> str:
        self.agent.memory.append("assistant", answer)
        return answer


class ReActAgent:
    """Agent driving the ReAct loop. One instance per conversation."""

    def __init__(
        self,
        model: ChatModel,
        tools: Optional[Mapping[str, Capability]] = None,
        system_prompt: str = "You are a helpful assistant.",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        memory: Optional[ConversationMemory] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        name: Optional[str] = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.name = name or "react-agent"
        self.model = model
        self.tools = as_registry(tools)
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.memory = memory if memory is not None else ConversationMemory()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.reasoning_trace: List[ReasoningStep] = []

    def chat(self, user_message: str) -> ReActResult:
        self.memory.append("user", user_message)
        log.info("agent_chat", agent_id=self.id, loop="react", message_length=len(user_message))

        strategy = ReActStrategy(self, user_message)
        self.reasoning_trace = strategy.trace
        answer, iterations = run_bounded(self.model, strategy, self.max_iterations)
        return ReActResult(response=answer, iterations=iterations, reasoning_trace=list(strategy.trace))

    def clear_history(self) -> None:
        self.memory.clear()
        self.reasoning_trace = []
