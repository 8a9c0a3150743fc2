"""
graph/engine.py
---------------
A small state-graph runtime: named nodes, ordered edges, and one shared state
mapping threaded through a single invocation.

Wiring mirrors LangGraph's StateGraph API:

    g = StateGraph("agent")
    g.add_node("think", think)
    g.add_node("act", act)
    g.add_edge(START, "think")
    g.add_conditional_edges("think", router, {"tools": "act", "done": END})
    g.add_edge("act", "think")
    app = g.compile()
    state = app.invoke({"user_message": "hi"})

Step semantics:
- run the current node against a copy of the state;
- merge the returned partial state (default: overwrite, no deep merge);
- halt if the node is a finish point, otherwise follow the node's first edge.
  An unconditional edge names its target; a conditional edge asks its router
  for a key and looks it up in the route table (RoutingError if absent);
  `END` or a node without edges halts.

Cyclic graphs are bounded by a per-invocation iteration cap. Hitting the cap is
a soft stop: the accumulated state is returned and a warning is logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Type

from pydantic import BaseModel, ValidationError

from ..config import settings
from ..errors import ConfigurationError, RoutingError, StateValidationError
from ..logging import get_logger

log = get_logger(__name__)

START = "__start__"
END = "__end__"

State = Dict[str, Any]
NodeFn = Callable[[State], Optional[Mapping[str, Any]]]
Router = Callable[[State], str]
MergeFn = Callable[[State, Mapping[str, Any]], State]


# --------------------------------------------------------------------------------------
# Merge functions
# --------------------------------------------------------------------------------------
def merge_overwrite(state: State, update: Mapping[str, Any]) -> State:
    """Later writes replace earlier ones key by key."""
    merged = dict(state)
    merged.update(update)
    return merged


def merge_appending(*keys: str) -> MergeFn:
    """
    Overwrite like `merge_overwrite`, except list values under `keys` are
    appended to the existing list instead of replacing it.
    """
    appended = frozenset(keys)

    def _merge(state: State, update: Mapping[str, Any]) -> State:
        merged = dict(state)
        for key, value in update.items():
            if key in appended and isinstance(value, list):
                merged[key] = list(merged.get(key) or []) + value
            else:
                merged[key] = value
        return merged

    return _merge


# --------------------------------------------------------------------------------------
# Graph description
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class Node:
    name: str
    fn: NodeFn
    merge: MergeFn = merge_overwrite
    writes: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class Edge:
    """Either a fixed `target` or a `router` plus its route table."""
    target: Optional[str] = None
    router: Optional[Router] = None
    routes: Mapping[str, str] = field(default_factory=dict)

    @property
    def conditional(self) -> bool:
        return self.router is not None


@dataclass
class GraphRun:
    state: State
    path: List[str]
    iterations: int
    stop_reason: str  # "terminal" | "end" | "no_edge" | "iteration_cap"


class StateGraph:
    """Mutable graph builder. `compile()` produces an immutable CompiledGraph."""

    def __init__(self, name: str = "graph", state_schema: Optional[Type[BaseModel]] = None) -> None:
        self.name = name
        self.state_schema = state_schema
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, List[Edge]] = {}
        self._entry: Optional[str] = None
        self._finish: Set[str] = set()

    def add_node(
        self,
        name: str,
        fn: NodeFn,
        merge: Optional[MergeFn] = None,
        writes: Optional[Iterable[str]] = None,
    ) -> "StateGraph":
        if name in (START, END):
            raise ConfigurationError(f"Node name {name!r} is reserved")
        self._nodes[name] = Node(
            name=name,
            fn=fn,
            merge=merge or merge_overwrite,
            writes=tuple(writes) if writes is not None else None,
        )
        self._edges.setdefault(name, [])
        log.debug("node_added", graph=self.name, node=name)
        return self

    def add_edge(self, source: str, target: str) -> "StateGraph":
        if source == START:
            return self.set_entry_point(target)
        self._edges.setdefault(source, []).append(Edge(target=target))
        return self

    def add_conditional_edges(self, source: str, router: Router, routes: Mapping[str, str]) -> "StateGraph":
        self._edges.setdefault(source, []).append(Edge(router=router, routes=dict(routes)))
        return self

    def set_entry_point(self, name: str) -> "StateGraph":
        self._entry = name
        return self

    def set_finish_point(self, name: str) -> "StateGraph":
        self._finish.add(name)
        return self

    def compile(self, max_iterations: Optional[int] = None) -> "CompiledGraph":
        """Freeze the wiring. The cap defaults to MINIAGENT_GRAPH_MAX_ITERATIONS (50)."""
        if max_iterations is None:
            max_iterations = settings.graph_max_iterations
        if self._entry is None:
            raise ConfigurationError(f"Graph {self.name!r}: entry point not set")
        if self._entry not in self._nodes:
            raise ConfigurationError(f"Graph {self.name!r}: entry point {self._entry!r} is not a registered node")
        if max_iterations < 1:
            raise ConfigurationError("max_iterations must be at least 1")
        if self.state_schema is not None:
            fields = set(self.state_schema.model_fields)
            for node in self._nodes.values():
                unknown = sorted(set(node.writes or ()) - fields)
                if unknown:
                    raise ConfigurationError(
                        f"Graph {self.name!r}: node {node.name!r} writes keys not in "
                        f"{self.state_schema.__name__}: {', '.join(unknown)}"
                    )
        return CompiledGraph(
            name=self.name,
            nodes=dict(self._nodes),
            edges={k: tuple(v) for k, v in self._edges.items()},
            entry=self._entry,
            finish=frozenset(self._finish),
            state_schema=self.state_schema,
            max_iterations=max_iterations,
        )


class CompiledGraph:
    """Immutable, executable snapshot of a StateGraph."""

    def __init__(
        self,
        name: str,
        nodes: Dict[str, Node],
        edges: Dict[str, Tuple[Edge, ...]],
        entry: str,
        finish: frozenset,
        state_schema: Optional[Type[BaseModel]],
        max_iterations: int,
    ) -> None:
        self.name = name
        self.nodes = MappingProxyType(nodes)
        self.edges = MappingProxyType(edges)
        self.entry = entry
        self.finish = finish
        self.state_schema = state_schema
        self.max_iterations = max_iterations

    def invoke(self, input: Mapping[str, Any], history: Optional[List[Any]] = None) -> State:
        """Run the graph and return the final shared state."""
        return self.run(input, history=history).state

    def run(self, input: Mapping[str, Any], history: Optional[List[Any]] = None) -> GraphRun:
        """Run the graph and return the final state plus how execution ended."""
        state: State = {}
        if history is not None:
            state["history"] = list(history)
        state.update(input)
        state = self._validate(state, where="input")

        current = self.entry
        path: List[str] = []
        iterations = 0
        while iterations < self.max_iterations:
            iterations += 1
            node = self.nodes[current]
            path.append(current)
            log.debug("node_executing", graph=self.name, node=current, iteration=iterations)

            update = node.fn(dict(state))
            if update is not None:
                if not isinstance(update, Mapping):
                    raise StateValidationError(
                        f"Node {current!r} returned {type(update).__name__}, expected a mapping"
                    )
                state = self._validate(node.merge(state, update), where=current)

            if current in self.finish:
                return self._halt(state, path, iterations, "terminal")

            nxt = self._next(current, state)
            if nxt is None:
                return self._halt(state, path, iterations, "no_edge")
            if nxt == END:
                return self._halt(state, path, iterations, "end")
            current = nxt

        log.warning("graph_iteration_cap", graph=self.name, iterations=iterations, last_node=current)
        return GraphRun(state=state, path=path, iterations=iterations, stop_reason="iteration_cap")

    def _next(self, current: str, state: State) -> Optional[str]:
        edges = self.edges.get(current) or ()
        if not edges:
            return None
        edge = edges[0]
        if edge.conditional:
            key = edge.router(state)
            if key not in edge.routes:
                raise RoutingError(
                    f"Graph {self.name!r}: router on {current!r} returned {key!r}, "
                    f"expected one of {sorted(edge.routes)}"
                )
            target = edge.routes[key]
        else:
            target = edge.target
        if target != END and target not in self.nodes:
            raise RoutingError(f"Graph {self.name!r}: edge from {current!r} targets unknown node {target!r}")
        return target

    def _validate(self, state: State, where: str) -> State:
        if self.state_schema is None:
            return state
        try:
            self.state_schema.model_validate(state)
        except ValidationError as e:
            raise StateValidationError(f"Graph {self.name!r}: invalid state after {where}: {e}") from e
        return state

    def _halt(self, state: State, path: List[str], iterations: int, reason: str) -> GraphRun:
        log.debug("graph_halted", graph=self.name, reason=reason, iterations=iterations)
        return GraphRun(state=state, path=path, iterations=iterations, stop_reason=reason)
