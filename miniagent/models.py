"""
models.py
---------
Pydantic models shared by the memory, the control loops, the model adapters
and the API layer.
"""
from __future__ import annotations
import time
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]

MAX_ITERATIONS_REACHED = "Maximum iterations reached"


class ToolCall(BaseModel):
    id: str
    name: str
    # Either already-decoded arguments or the raw JSON text a transport emitted
    arguments: Union[Dict[str, Any], str, None] = None


class Message(BaseModel):
    role: Role
    content: str = ""
    tool_call_id: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    timestamp: float = Field(default_factory=time.time)


class ToolParameter(BaseModel):
    type: str = "string"
    description: str = ""
    required: bool = False


class ToolSpec(BaseModel):
    """Capability descriptor handed to the model."""
    name: str
    description: str = ""
    parameters: Dict[str, ToolParameter] = Field(default_factory=dict)

    def to_openai_schema(self) -> Dict[str, Any]:
        properties = {
            key: {"type": p.type, "description": p.description}
            for key, p in self.parameters.items()
        }
        required = [key for key, p in self.parameters.items() if p.required]
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {"type": "object", "properties": properties, "required": required},
            },
        }


class ReasoningStep(BaseModel):
    thought: Optional[str] = None
    action: Optional[str] = None
    action_input: Optional[str] = None
    observation: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.action)


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class ModelRequest(BaseModel):
    messages: List[Message] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    tools: List[ToolSpec] = Field(default_factory=list)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ModelResponse(BaseModel):
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class AgentResult(BaseModel):
    response: str
    iterations: int

    @property
    def gave_up(self) -> bool:
        return self.response == MAX_ITERATIONS_REACHED


class ReActResult(AgentResult):
    reasoning_trace: List[ReasoningStep] = Field(default_factory=list)


# --------------------------------------------------------------------------------------
# API payloads
# --------------------------------------------------------------------------------------
class CreateAgentRequest(BaseModel):
    name: str = Field(..., description="Display name of the agent")
    kind: Literal["fncall", "react"] = Field("fncall", description="Control loop style")
    system_prompt: Optional[str] = Field(None, description="Overrides the configured system prompt")
    max_iterations: Optional[int] = Field(None, ge=1, description="Overrides the loop's turn budget")


class ChatRequest(BaseModel):
    message: str = Field(..., description="User utterance")
