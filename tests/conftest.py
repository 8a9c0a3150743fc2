"""
Shared pytest fixtures and fakes for the agent runtime tests.
"""

from typing import Any, Dict, List, Union

import pytest

from miniagent.errors import ToolExecutionError
from miniagent.llm.base import ChatModel
from miniagent.models import ModelRequest, ModelResponse, ToolCall
from miniagent.tools.base import Capability
from miniagent.tools.builtin import Calculator
from miniagent.tools.registry import ToolRegistry


class ScriptedChatModel(ChatModel):
    """Replays canned replies in order and records every request it receives."""

    def __init__(self, replies: List[Union[ModelResponse, str]], repeat_last: bool = False):
        self.replies = [r if isinstance(r, ModelResponse) else ModelResponse(content=r) for r in replies]
        self.repeat_last = repeat_last
        self.requests: List[ModelRequest] = []

    def chat(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request.model_copy(deep=True))
        if not self.replies:
            raise AssertionError("ScriptedChatModel ran out of replies")
        if self.repeat_last and len(self.replies) == 1:
            return self.replies[0]
        return self.replies.pop(0)


class BrokenChatModel(ChatModel):
    """Simulates a transport failure."""

    def chat(self, request: ModelRequest) -> ModelResponse:
        raise ConnectionError("connection reset by peer")


class ExplodingTool(Capability):
    name = "explode"
    description = "Always fails"

    def execute(self, params: Dict[str, Any]) -> Any:
        raise ToolExecutionError("boom")


class RecordingTool(Capability):
    name = "record"
    description = "Remembers the params it was called with"

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    def execute(self, params: Dict[str, Any]) -> Any:
        self.calls.append(params)
        return {"ok": True}


def tool_reply(name: str, arguments: Any = None, call_id: str = "call_1", content: str = "") -> ModelResponse:
    return ModelResponse(content=content, tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments or {})])


@pytest.fixture
def calculator_tools():
    return ToolRegistry([Calculator()])


@pytest.fixture
def all_tools():
    return ToolRegistry([Calculator(), ExplodingTool(), RecordingTool()])
