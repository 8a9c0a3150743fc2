"""
registry.py
-----------
Explicitly owned agent registry: agent id -> live agent instance.

The map itself is guarded by a lock so many conversations can be created and
looked up concurrently. Each handle also carries its own lock, and `chat`
holds it for the whole turn, so a single agent is only ever driven by one
caller at a time.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from ..errors import AgentNotFoundError, ConfigurationError
from ..llm.base import ChatModel
from ..logging import get_logger
from ..memory import ConversationMemory, TrimPolicy
from ..models import AgentResult
from ..tools.base import Capability
from .fncall import ToolCallingAgent
from .react import ReActAgent

log = get_logger(__name__)

Agent = Union[ToolCallingAgent, ReActAgent]

AGENT_KINDS = ("fncall", "react")


@dataclass
class AgentHandle:
    id: str
    name: str
    kind: str
    agent: Agent
    created_at: float = field(default_factory=time.time)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def summary(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "system_prompt": self.agent.system_prompt,
            "max_iterations": self.agent.max_iterations,
            "history_size": self.agent.memory.size(),
            "created_at": self.created_at,
        }


class AgentRegistry:
    """Creates agents against one shared model and tool set, and tracks them by id."""

    def __init__(
        self,
        model: ChatModel,
        tools: Optional[Mapping[str, Capability]] = None,
        default_system_prompt: str = "You are a helpful assistant.",
        memory_max_messages: int = 100,
        memory_policy: Union[TrimPolicy, str] = TrimPolicy.FIFO,
        long_term_min_length: int = 20,
        fncall_max_iterations: int = 5,
        react_max_iterations: int = 10,
    ) -> None:
        self._model = model
        self._tools = tools or {}
        self._default_system_prompt = default_system_prompt
        self._memory_max_messages = memory_max_messages
        self._memory_policy = TrimPolicy(memory_policy)
        self._long_term_min_length = long_term_min_length
        self._max_iterations = {"fncall": fncall_max_iterations, "react": react_max_iterations}
        self._agents: Dict[str, AgentHandle] = {}
        self._lock = threading.Lock()

    def create(
        self,
        name: str,
        kind: str = "fncall",
        system_prompt: Optional[str] = None,
        max_iterations: Optional[int] = None,
    ) -> AgentHandle:
        if kind not in AGENT_KINDS:
            raise ConfigurationError(f"Unknown agent kind {kind!r}, expected one of {', '.join(AGENT_KINDS)}")
        memory = ConversationMemory(
            max_messages=self._memory_max_messages,
            policy=self._memory_policy,
            long_term_min_length=self._long_term_min_length,
        )
        cls = ToolCallingAgent if kind == "fncall" else ReActAgent
        agent = cls(
            self._model,
            tools=self._tools,
            system_prompt=system_prompt or self._default_system_prompt,
            max_iterations=max_iterations or self._max_iterations[kind],
            memory=memory,
            name=name,
        )
        handle = AgentHandle(id=agent.id, name=name, kind=kind, agent=agent)
        with self._lock:
            self._agents[handle.id] = handle
        log.info("agent_created", agent_id=handle.id, name=name, kind=kind)
        return handle

    def get(self, agent_id: str) -> AgentHandle:
        with self._lock:
            handle = self._agents.get(agent_id)
        if handle is None:
            raise AgentNotFoundError(f"Agent not found: {agent_id}")
        return handle

    def remove(self, agent_id: str) -> None:
        with self._lock:
            handle = self._agents.pop(agent_id, None)
        if handle is None:
            raise AgentNotFoundError(f"Agent not found: {agent_id}")
        log.info("agent_removed", agent_id=agent_id)

    def list(self) -> List[AgentHandle]:
        with self._lock:
            return list(self._agents.values())

    def chat(self, agent_id: str, message: str) -> AgentResult:
        handle = self.get(agent_id)
        with handle.lock:
            return handle.agent.chat(message)

    def clear_history(self, agent_id: str) -> None:
        handle = self.get(agent_id)
        with handle.lock:
            handle.agent.clear_history()

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)
