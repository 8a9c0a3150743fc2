"""
llm/langchain_client.py
-----------------------
ChatModel implementations backed by LangChain.

This module defines:
- Conversions between our `Message` model and `langchain_core.messages`
- `LangChainChatModel`, which wraps any LangChain chat model (ChatOpenAI by default)
- `OfflineChatModel`, a deterministic stand-in used when no API key is configured
- `build_chat_model`, which picks one of the two from settings

Key design notes:
- Tool specs are bound per request with `bind_tools`, in OpenAI function format.
- Temperature / max-token overrides are bound per request with `bind`.
- Tool messages whose call id is missing, or whose assistant message was trimmed
  away, cannot be shown to the model as ToolMessage; they are included as plain
  text context instead.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Set

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from ..config import Settings
from ..errors import ModelCallError
from ..logging import get_logger
from ..models import Message, ModelRequest, ModelResponse, TokenUsage, ToolCall
from ..tools.base import parse_arguments
from .base import ChatModel

log = get_logger(__name__)


# --------------------------------------------------------------------------------------
# Message conversion
# --------------------------------------------------------------------------------------
def to_langchain_messages(messages: List[Message], system_prompt: Optional[str] = None) -> List[BaseMessage]:
    """
    Convert our messages into LangChain messages, system prompt first.

    A tool result only becomes a ToolMessage when an earlier assistant message
    in `messages` carries its call id. Trimmed history can cut that pairing, and
    such orphans are sent as plain text context instead.
    """
    out: List[BaseMessage] = []
    if system_prompt:
        out.append(SystemMessage(content=system_prompt))
    seen_call_ids: Set[str] = set()
    for m in messages:
        if m.role == "system":
            out.append(SystemMessage(content=m.content))
        elif m.role == "user":
            out.append(HumanMessage(content=m.content))
        elif m.role == "assistant":
            tool_calls = [
                {"name": tc.name, "args": parse_arguments(tc.arguments), "id": tc.id}
                for tc in m.tool_calls
            ]
            seen_call_ids.update(tc.id for tc in m.tool_calls)
            out.append(AIMessage(content=m.content, tool_calls=tool_calls))
        elif m.tool_call_id in seen_call_ids:
            out.append(ToolMessage(content=m.content, tool_call_id=m.tool_call_id))
        else:
            out.append(HumanMessage(content=f"(Tool observation) {m.content}"))
    return out


def _text_content(content: Any) -> str:
    """AIMessage.content may be a string or a list of content blocks."""
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def from_langchain_message(message: AIMessage) -> ModelResponse:
    """
    Convert a LangChain AIMessage into a ModelResponse.
    """
    tool_calls = [
        ToolCall(id=tc.get("id") or f"call_{uuid.uuid4().hex[:12]}", name=tc["name"], arguments=tc.get("args") or {})
        for tc in getattr(message, "tool_calls", None) or []
    ]
    usage = None
    meta = getattr(message, "usage_metadata", None)
    if meta:
        usage = TokenUsage(
            input_tokens=meta.get("input_tokens", 0),
            output_tokens=meta.get("output_tokens", 0),
            total_tokens=meta.get("total_tokens", 0),
        )
    finish_reason = (getattr(message, "response_metadata", None) or {}).get("finish_reason")
    return ModelResponse(
        content=_text_content(message.content),
        tool_calls=tool_calls,
        finish_reason=finish_reason,
        usage=usage,
    )


# --------------------------------------------------------------------------------------
# Chat models
# --------------------------------------------------------------------------------------
class LangChainChatModel(ChatModel):
    """Adapts a LangChain `BaseChatModel` to the ChatModel contract."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    def chat(self, request: ModelRequest) -> ModelResponse:
        runnable: Any = self._llm
        if request.tools:
            runnable = runnable.bind_tools([t.to_openai_schema() for t in request.tools])
        overrides: Dict[str, Any] = {}
        if request.temperature is not None:
            overrides["temperature"] = request.temperature
        if request.max_tokens is not None:
            overrides["max_tokens"] = request.max_tokens
        if overrides:
            runnable = runnable.bind(**overrides)

        msgs = to_langchain_messages(request.messages, request.system_prompt)
        try:
            out = runnable.invoke(msgs)
        except Exception as e:
            log.error("model_call_failed", error=str(e), error_type=type(e).__name__)
            raise ModelCallError(f"Model call failed: {e}") from e

        response = from_langchain_message(out)
        log.debug(
            "model_response",
            tool_calls=len(response.tool_calls),
            content_length=len(response.content),
            finish_reason=response.finish_reason,
        )
        return response


class OfflineChatModel(ChatModel):
    """
    Deterministic model used without credentials (DEV_NO_LLM=true or no OPENAI_API_KEY).
    Echoes the latest user message and never requests tools.
    """

    def chat(self, request: ModelRequest) -> ModelResponse:
        last_user = next((m.content for m in reversed(request.messages) if m.role == "user"), "")
        return ModelResponse(content=f"(offline) {last_user}", finish_reason="stop")


def build_chat_model(settings: Settings) -> ChatModel:
    if settings.offline:
        log.info("chat_model_offline")
        return OfflineChatModel()
    llm = ChatOpenAI(
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        timeout=settings.timeout,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url or None,
    )
    log.info("chat_model_ready", model=settings.model)
    return LangChainChatModel(llm)
