"""
llm/base.py
-----------
Model consultation contract.

The control loops only ever see `ChatModel.chat(ModelRequest) -> ModelResponse`.
Transport concerns (HTTP, provider selection, wall-clock timeouts) belong to the
implementation; any failure it cannot handle must surface as ModelCallError.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import ModelRequest, ModelResponse


class ChatModel(ABC):
    """Blocking, single-shot model consultation."""

    @abstractmethod
    def chat(self, request: ModelRequest) -> ModelResponse:
        ...
