"""
config.py
-----------
Typed configuration loader for environment variables and runtime defaults.
This centralizes settings so other modules can import a single authoritative source.
"""
from __future__ import annotations
import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Settings(BaseModel):
    openai_api_key: str = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openai_base_url: str = Field(default_factory=lambda: os.getenv("OPENAI_BASE_URL", ""))
    model: str = Field(default_factory=lambda: os.getenv("MINIAGENT_MODEL", "gpt-4o-mini"))
    temperature: float = Field(default_factory=lambda: _env_float("MINIAGENT_TEMPERATURE", 0.7))
    max_tokens: int = Field(default_factory=lambda: _env_int("MINIAGENT_MAX_TOKENS", 4096))
    timeout: float = Field(default_factory=lambda: _env_float("MINIAGENT_TIMEOUT", 60.0))

    # Turn budgets for the control loops and the graph engine
    fncall_max_iterations: int = Field(default_factory=lambda: _env_int("MINIAGENT_FNCALL_MAX_ITERATIONS", 5))
    react_max_iterations: int = Field(default_factory=lambda: _env_int("MINIAGENT_REACT_MAX_ITERATIONS", 10))
    graph_max_iterations: int = Field(default_factory=lambda: _env_int("MINIAGENT_GRAPH_MAX_ITERATIONS", 50))

    # Conversation memory
    memory_max_messages: int = Field(default_factory=lambda: _env_int("MINIAGENT_MEMORY_MAX_MESSAGES", 100))
    memory_policy: str = Field(default_factory=lambda: os.getenv("MINIAGENT_MEMORY_POLICY", "fifo"))
    long_term_min_length: int = Field(default_factory=lambda: _env_int("MINIAGENT_LONG_TERM_MIN_LENGTH", 20))

    system_prompt: str = Field(
        default_factory=lambda: os.getenv("MINIAGENT_SYSTEM_PROMPT", "You are a helpful assistant.")
    )
    environment: str = Field(default_factory=lambda: os.getenv("MINIAGENT_ENV", "development"))
    dev_no_llm: bool = Field(
        default_factory=lambda: os.getenv("DEV_NO_LLM", "").strip().lower() in {"1", "true", "yes"}
    )

    @property
    def offline(self) -> bool:
        """True when no real model should be contacted."""
        return self.dev_no_llm or not self.openai_api_key


settings = Settings()
