"""
main.py
-------
FastAPI app exposing the agent registry over HTTP.
Includes /health and /ready for liveness and readiness checks.
"""
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from ..agents.registry import AgentRegistry
from ..config import settings
from ..errors import AgentNotFoundError, ConfigurationError, ModelCallError
from ..logging import configure_logging, get_logger
from ..models import ChatRequest, CreateAgentRequest, ReasoningStep
from .deps import get_registry, get_tools

configure_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("startup", environment=settings.environment, model=settings.model, offline=settings.offline)
    yield
    log.info("shutdown")


app = FastAPI(title="MiniAgent Runtime", version="1.0.0", lifespan=lifespan)


class AgentInfo(BaseModel):
    """Response model describing one registered agent."""
    id: str
    name: str
    kind: str
    system_prompt: str
    max_iterations: int
    history_size: int
    created_at: float


class ChatResponse(BaseModel):
    """Response model for /agents/{agent_id}/chat."""
    agent_id: str
    response: str
    iterations: int
    reasoning_trace: Optional[List[ReasoningStep]] = None


# --------------------------------------------------------------------------------------
# Error mapping
# --------------------------------------------------------------------------------------
@app.exception_handler(AgentNotFoundError)
def agent_not_found(request: Request, exc: AgentNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(ModelCallError)
def model_call_failed(request: Request, exc: ModelCallError) -> JSONResponse:
    log.error("model_call_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(ConfigurationError)
def bad_configuration(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


# --------------------------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/ready")
def ready(tools=Depends(get_tools)) -> Dict[str, Any]:
    """Readiness check: reports the model mode and the registered tools."""
    return {"status": "ready", "offline": settings.offline, "tools": tools.names()}


@app.post("/agents", response_model=AgentInfo, status_code=201)
def create_agent(req: CreateAgentRequest, registry: AgentRegistry = Depends(get_registry)):
    handle = registry.create(
        name=req.name,
        kind=req.kind,
        system_prompt=req.system_prompt,
        max_iterations=req.max_iterations,
    )
    return AgentInfo(**handle.summary())


@app.get("/agents", response_model=List[AgentInfo])
def list_agents(registry: AgentRegistry = Depends(get_registry)):
    return [AgentInfo(**h.summary()) for h in registry.list()]


@app.get("/agents/{agent_id}", response_model=AgentInfo)
def get_agent(agent_id: str, registry: AgentRegistry = Depends(get_registry)):
    return AgentInfo(**registry.get(agent_id).summary())


@app.post("/agents/{agent_id}/chat", response_model=ChatResponse)
def chat(agent_id: str, req: ChatRequest, registry: AgentRegistry = Depends(get_registry)):
    """
    Run one user turn through the agent's control loop.
    """
    result = registry.chat(agent_id, req.message)
    return ChatResponse(
        agent_id=agent_id,
        response=result.response,
        iterations=result.iterations,
        reasoning_trace=getattr(result, "reasoning_trace", None),
    )


@app.delete("/agents/{agent_id}/history")
def clear_history(agent_id: str, registry: AgentRegistry = Depends(get_registry)):
    registry.clear_history(agent_id)
    return {"agent_id": agent_id, "cleared": True}


@app.delete("/agents/{agent_id}")
def delete_agent(agent_id: str, registry: AgentRegistry = Depends(get_registry)):
    registry.remove(agent_id)
    return {"agent_id": agent_id, "deleted": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("miniagent.app.main:app", host="0.0.0.0", port=8000)
