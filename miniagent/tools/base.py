"""
tools/base.py
-------------
Capability contract every tool implements, plus the helpers the control loops
use to call one safely.

A capability validates its own input and offers no retry. Callers never let a
capability failure abort a loop: `invoke_capability` turns any exception into
error text that goes back to the model as a tool result.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..errors import ArgumentParseError
from ..logging import get_logger
from ..models import ToolParameter, ToolSpec

log = get_logger(__name__)


class Capability(ABC):
    """Abstract base for all tools the agents can call."""

    name: str
    description: str = ""

    @abstractmethod
    def execute(self, params: Dict[str, Any]) -> Any:
        """Run the tool. Raise ToolExecutionError (or anything else) on failure."""
        ...

    def describe(self) -> str:
        return self.description

    def parameters(self) -> Dict[str, ToolParameter]:
        return {}

    def spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.describe(), parameters=self.parameters())


class FunctionTool(Capability):
    """Wraps a plain `handler(params)` callable as a Capability."""

    def __init__(
        self,
        name: str,
        description: str,
        handler: Callable[[Dict[str, Any]], Any],
        parameters: Optional[Mapping[str, ToolParameter]] = None,
    ) -> None:
        self.name = name
        self.description = description
        self._handler = handler
        self._parameters = dict(parameters or {})

    def execute(self, params: Dict[str, Any]) -> Any:
        return self._handler(params)

    def parameters(self) -> Dict[str, ToolParameter]:
        return dict(self._parameters)


# --------------------------------------------------------------------------------------
# Argument decoding & result formatting
# --------------------------------------------------------------------------------------
def decode_arguments(raw: Any) -> Dict[str, Any]:
    """
    Strictly decode tool-call arguments into a dict.

    Raises ArgumentParseError when `raw` is not JSON text for an object.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    text = str(raw).strip()
    if not text:
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(f"Invalid JSON arguments: {e}") from e
    if not isinstance(value, dict):
        raise ArgumentParseError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def parse_arguments(raw: Any) -> Dict[str, Any]:
    """Best-effort decoding: anything undecodable is wrapped as {"input": raw}."""
    try:
        return decode_arguments(raw)
    except ArgumentParseError as e:
        log.debug("argument_parse_fallback", error=str(e))
        return {"input": raw}


def stringify_result(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def invoke_capability(capability: Capability, params: Dict[str, Any]) -> Tuple[str, bool]:
    """
    Execute a capability and always return text for the model.

    Returns (text, ok). On failure the text is "Error: <message>" and ok is False.
    """
    try:
        result = capability.execute(params)
    except Exception as e:
        log.warning("tool_failed", tool_name=capability.name, error=str(e), error_type=type(e).__name__)
        return f"Error: {e}", False
    log.info("tool_executed", tool_name=capability.name)
    return stringify_result(result), True
