"""
errors.py
---------
Exception hierarchy for the agent runtime.

Everything raised by the runtime inherits from MiniAgentError so callers can
catch broad or specific failures as needed. Which of these are fatal and which
are recovered locally is decided by the control loops, not here.
"""
from __future__ import annotations


class MiniAgentError(Exception):
    """Base exception for all runtime errors."""


class ConfigurationError(MiniAgentError):
    """Raised at compile time when a graph or agent is wired incorrectly."""


class GraphError(MiniAgentError):
    """Base for failures raised while a compiled graph is executing."""


class RoutingError(GraphError):
    """Raised when an edge resolves to a route or node that does not exist."""


class StateValidationError(GraphError):
    """Raised when a node output or merged state violates the state schema."""


class ToolExecutionError(MiniAgentError):
    """Raised by a capability whose execution failed."""


class ModelCallError(MiniAgentError):
    """Raised when a model consultation fails. Never recovered by the loops."""


class ArgumentParseError(MiniAgentError):
    """Raised when tool-call arguments cannot be decoded."""


class AgentNotFoundError(MiniAgentError, KeyError):
    """Raised when an agent id is not present in the registry."""

    def __str__(self) -> str:
        return Exception.__str__(self)
