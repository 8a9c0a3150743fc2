from __future__ import annotations
from functools import lru_cache
from ..config import settings
from ..agents.registry import AgentRegistry
from ..llm.base import ChatModel
from ..llm.langchain_client import build_chat_model
from ..tools.builtin import default_tools
from ..tools.registry import ToolRegistry

@lru_cache(maxsize=1)
def get_chat_model() -> ChatModel:
    return build_chat_model(settings)

@lru_cache(maxsize=1)
def get_tools() -> ToolRegistry:
    return ToolRegistry(default_tools())

@lru_cache(maxsize=1)
def get_registry() -> AgentRegistry:
    return AgentRegistry(
        get_chat_model(),
        tools=get_tools(),
        default_system_prompt=settings.system_prompt,
        memory_max_messages=settings.memory_max_messages,
        memory_policy=settings.memory_policy,
        long_term_min_length=settings.long_term_min_length,
        fncall_max_iterations=settings.fncall_max_iterations,
        react_max_iterations=settings.react_max_iterations,
    )
