"""
prompts.py
----------
Centralized prompt templates for the control loops.
"""
from __future__ import annotations

FNCALL_SUFFIX = """You have access to the following tools:

{tools}

When you need to call a function, use the tool_calls format.
After getting the tool results, generate your final response."""

REACT_SUFFIX = """You are a ReAct agent. Follow this format:

Thought: [your reasoning about what to do next]
Action: [tool name to use, or 'finish' if done]
Action Input: [input to the tool in JSON format]
Observation: [result from the tool]

Available tools: {tools}

Repeat Thought->Action->Action Input->Observation until you can answer the question.
When done, use 'finish' as the action with your final answer in the observation."""


def fncall_system_prompt(system_prompt: str, tool_descriptions: str) -> str:
    return f"{system_prompt}\n\n{FNCALL_SUFFIX.format(tools=tool_descriptions)}"


def react_system_prompt(system_prompt: str, tool_names: list[str]) -> str:
    tools = ", ".join(tool_names) if tool_names else "none"
    return f"{system_prompt}\n\n{REACT_SUFFIX.format(tools=tools)}"
