"""
logging.py
----------
structlog setup for the runtime.

Every module logs through `get_logger(__name__)` with a snake_case event and
key/value context. The events an operator usually filters on:
  agent_chat, agent_finished, agent_iteration_cap    (control loops)
  tool_executed, tool_failed, tool_not_found         (capability dispatch)
  node_executing, graph_halted, graph_iteration_cap  (graph engine)
  memory_trimmed, memory_compacted                   (conversation memory)
  model_call_failed                                  (model adapter)
"""

import logging
import sys

import structlog

from .config import settings


def _renderer(is_dev: bool):
    if is_dev:
        return [structlog.dev.ConsoleRenderer()]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure_logging() -> None:
    """Call once at startup. MINIAGENT_ENV=development gives console output, anything else JSON."""
    is_dev = settings.environment == "development"
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderer(is_dev),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if is_dev else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
