"""
tools/registry.py
-----------------
Name -> Capability mapping handed to the agents at construction time.
The runtime performs no discovery: whatever is registered here is all a loop
can call.
"""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from ..logging import get_logger
from ..models import ToolSpec
from .base import Capability

log = get_logger(__name__)


class ToolRegistry(Mapping[str, Capability]):
    """Read-only mapping view over registered capabilities."""

    def __init__(self, tools: Optional[Iterable[Capability]] = None) -> None:
        self._tools: Dict[str, Capability] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Capability, name: Optional[str] = None) -> None:
        """Register a tool under `name` (its own name by default). Re-registering a name replaces it."""
        key = name or tool.name
        if key in self._tools:
            log.warning("tool_replaced", tool_name=key)
        self._tools[key] = tool
        log.debug("tool_registered", tool_name=key)

    def __getitem__(self, name: str) -> Capability:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def specs(self) -> List[ToolSpec]:
        return [tool.spec() for tool in self._tools.values()]

    def describe_all(self) -> str:
        """One "- name: description" line per tool, or a marker when empty."""
        if not self._tools:
            return "No tools available."
        return "\n".join(f"- {name}: {tool.describe()}" for name, tool in self._tools.items())


def as_registry(tools: Optional[Mapping[str, Capability]]) -> ToolRegistry:
    """Accept a ToolRegistry or any name -> Capability mapping."""
    if isinstance(tools, ToolRegistry):
        return tools
    registry = ToolRegistry()
    for name, tool in (tools or {}).items():
        if name != tool.name:
            log.warning("tool_name_mismatch", key=name, tool_name=tool.name)
        registry.register(tool, name=name)
    return registry
