"""
memory.py
---------
Conversation memory for one agent.

Two logs are kept side by side:
- a bounded short-term log, which is what the control loops send to the model;
- an unbounded long-term log of substantive user/assistant messages that is
  never trimmed and can be searched.

When the short-term log overflows it is trimmed according to the policy chosen
at construction. FIFO drops the oldest messages. SUMMARIZE collapses the oldest
messages into a single digest that `with_summary()` prepends as a system
message; every compaction replaces the previous digest wholesale.
"""
from __future__ import annotations

import enum
from typing import List, Optional

from .logging import get_logger
from .models import Message, Role, ToolCall

log = get_logger(__name__)

SUMMARY_PREFIX = "[Summary of previous conversation]: "
SNIPPET_LENGTH = 50


class TrimPolicy(str, enum.Enum):
    FIFO = "fifo"
    SUMMARIZE = "summarize"


class ConversationMemory:
    """Per-conversation message log. Not shared between agents."""

    def __init__(
        self,
        max_messages: int = 100,
        policy: TrimPolicy | str = TrimPolicy.FIFO,
        long_term_min_length: int = 20,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._max_messages = max_messages
        self._policy = TrimPolicy(policy)
        self._long_term_min_length = long_term_min_length
        self._messages: List[Message] = []
        self._summary = ""
        self._long_term: List[Message] = []

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @property
    def policy(self) -> TrimPolicy:
        return self._policy

    @property
    def summary(self) -> str:
        """Current digest text, empty until the first compaction."""
        return self._summary

    # ----------------------------------------------------------------------------------
    # Writes
    # ----------------------------------------------------------------------------------
    def append(
        self,
        role: Role,
        content: str,
        tool_call_id: Optional[str] = None,
        tool_calls: Optional[List[ToolCall]] = None,
    ) -> Message:
        message = Message(role=role, content=content or "", tool_call_id=tool_call_id, tool_calls=tool_calls or [])
        self.add(message)
        return message

    def add(self, message: Message) -> None:
        self._messages.append(message)
        if message.role in ("user", "assistant") and len(message.content) > self._long_term_min_length:
            self._long_term.append(message)
        if len(self._messages) > self._max_messages:
            if self._policy is TrimPolicy.SUMMARIZE:
                self._summarize_oldest()
            else:
                self._drop_oldest()

    def _drop_oldest(self) -> None:
        overflow = len(self._messages) - self._max_messages
        del self._messages[:overflow]
        log.debug("memory_trimmed", dropped=overflow, size=len(self._messages))

    def _summarize_oldest(self) -> None:
        keep = self._max_messages // 2
        cut = len(self._messages) - keep
        old = self._messages[:cut]
        self._summary = "".join(f"{m.role}: {m.content[:SNIPPET_LENGTH]}...; " for m in old)
        del self._messages[:cut]
        log.debug("memory_compacted", summarized=len(old), size=len(self._messages))

    def clear(self) -> None:
        """Drop the short-term log and the digest. The long-term log is kept."""
        self._messages.clear()
        self._summary = ""

    def clear_long_term(self) -> None:
        self._long_term.clear()

    # ----------------------------------------------------------------------------------
    # Reads
    # ----------------------------------------------------------------------------------
    def all(self) -> List[Message]:
        return list(self._messages)

    def recent(self, n: int) -> List[Message]:
        if n <= 0:
            return []
        return self._messages[-n:]

    def with_summary(self) -> List[Message]:
        """Retained messages, preceded by the digest as a system message if there is one."""
        if not self._summary:
            return self.all()
        return [Message(role="system", content=SUMMARY_PREFIX + self._summary)] + self._messages

    def size(self) -> int:
        return len(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def estimate_tokens(self) -> int:
        # Rough heuristic: ~4 characters per token
        tokens = sum(len(m.content) // 4 for m in self._messages)
        return tokens + len(self._summary) // 4

    def long_term(self) -> List[Message]:
        return list(self._long_term)

    def search_long_term(self, query: str) -> List[Message]:
        needle = query.lower()
        return [m for m in self._long_term if needle in m.content.lower()]
