"""
driver.py
---------
The one bounded-iteration driver both control loops run on.

Each iteration consults the model once and hands the response to a strategy.
The strategy decides what the response means (final answer, or tool work to
do before asking again) and performs any tool dispatch and bookkeeping. The
driver owns termination: the first final answer wins, and when the turn budget
runs out the fixed fallback text is returned instead.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..errors import ModelCallError
from ..llm.base import ChatModel
from ..logging import get_logger
from ..models import MAX_ITERATIONS_REACHED, ModelRequest, ModelResponse

log = get_logger(__name__)


class LoopStrategy(ABC):
    """Response interpretation for one control-loop style."""

    name: str = "loop"

    @abstractmethod
    def build_request(self, iteration: int) -> ModelRequest:
        """Request for this iteration (1-based)."""
        ...

    @abstractmethod
    def interpret(self, response: ModelResponse, iteration: int) -> Optional[str]:
        """Return the final answer, or None to go around again."""
        ...


def consult(model: ChatModel, request: ModelRequest) -> ModelResponse:
    """Call the model; every failure reaches the caller as ModelCallError."""
    try:
        return model.chat(request)
    except ModelCallError:
        raise
    except Exception as e:
        raise ModelCallError(f"Model call failed: {e}") from e


def run_bounded(model: ChatModel, strategy: LoopStrategy, max_iterations: int) -> Tuple[str, int]:
    """
    Drive `strategy` for at most `max_iterations` model consultations.

    Returns (final_text, iterations_used). When no final answer was produced the
    text is MAX_ITERATIONS_REACHED and iterations_used == max_iterations.
    """
    if max_iterations < 1:
        raise ValueError("max_iterations must be at least 1")
    for iteration in range(1, max_iterations + 1):
        response = consult(model, strategy.build_request(iteration))
        log.debug(
            "agent_iteration",
            loop=strategy.name,
            iteration=iteration,
            tool_calls=len(response.tool_calls),
        )
        final = strategy.interpret(response, iteration)
        if final is not None:
            log.info("agent_finished", loop=strategy.name, iterations=iteration)
            return final, iteration
    log.warning("agent_iteration_cap", loop=strategy.name, iterations=max_iterations)
    return MAX_ITERATIONS_REACHED, max_iterations
