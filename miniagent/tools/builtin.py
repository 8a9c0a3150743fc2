"""
tools/builtin.py
----------------
Small self-contained capabilities used by the demo app and the tests.
Real integrations (search, sandboxes, weather) live outside this package.
"""
from __future__ import annotations
import datetime as dt
import operator
from numbers import Number
from typing import Any, Dict

from ..errors import ToolExecutionError
from ..models import ToolParameter
from .base import Capability

_OPERATIONS = {
    "add": operator.add,
    "subtract": operator.sub,
    "multiply": operator.mul,
    "divide": operator.truediv,
}


def _number(params: Dict[str, Any], key: str) -> Number:
    if key not in params:
        raise ToolExecutionError(f"Missing parameter: {key}")
    value = params[key]
    if isinstance(value, bool):
        raise ToolExecutionError(f"Parameter {key} must be a number")
    if isinstance(value, Number):
        return value
    try:
        text = str(value).strip()
        return int(text) if text.lstrip("-").isdigit() else float(text)
    except ValueError as e:
        raise ToolExecutionError(f"Parameter {key} must be a number, got {value!r}") from e


class Calculator(Capability):
    name = "calculator"
    description = "Basic arithmetic on two numbers: add, subtract, multiply or divide."

    def execute(self, params: Dict[str, Any]) -> Number:
        a = _number(params, "a")
        b = _number(params, "b")
        op = str(params.get("op", "add")).strip().lower()
        fn = _OPERATIONS.get(op)
        if fn is None:
            raise ToolExecutionError(f"Unsupported operation: {op}")
        if fn is operator.truediv and b == 0:
            raise ToolExecutionError("Division by zero")
        result = fn(a, b)
        # 6 / 3 -> 2 rather than 2.0
        if isinstance(result, float) and result.is_integer() and op == "divide":
            if isinstance(a, int) and isinstance(b, int):
                return int(result)
        return result

    def parameters(self) -> Dict[str, ToolParameter]:
        return {
            "a": ToolParameter(type="number", description="First operand", required=True),
            "b": ToolParameter(type="number", description="Second operand", required=True),
            "op": ToolParameter(type="string", description="add, subtract, multiply or divide", required=True),
        }


class CurrentTime(Capability):
    name = "current_time"
    description = "Return the current UTC date and time as an ISO 8601 string."

    def execute(self, params: Dict[str, Any]) -> str:
        return dt.datetime.now(dt.timezone.utc).isoformat()


def default_tools() -> list[Capability]:
    return [Calculator(), CurrentTime()]
