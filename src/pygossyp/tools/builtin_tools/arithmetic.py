from __future__ import annotations
import math
from typing import Any

from ...environment import Environment
from ...errors import tool_failure
from ..base import ToolSpec
from ..native import expect_array, expect_number

_NUMBERS = {"type": "array", "items": {"type": "number"}}
_PAIR = {"type": "array", "items": {"type": "number"}, "minItems": 2, "maxItems": 2}


def _numbers(input: Any, tool: str, length: int | None = None) -> list[int | float]:
    items = expect_array(input, tool, length=length)
    return [expect_number(x, tool, "an array of numbers") for x in items]


def _finite(value: int | float, tool: str) -> int | float:
    if isinstance(value, float) and not math.isfinite(value):
        raise tool_failure("Result is not a finite number", tool=tool)
    return value


class AddTool:
    spec = ToolSpec(description="Sum of an array of numbers (0 when empty).", parameters=_NUMBERS)

    def invoke(self, input: Any, env: Environment) -> Any:
        return _finite(sum(_numbers(input, "add")), "add")


class MultiplyTool:
    spec = ToolSpec(description="Product of an array of numbers (1 when empty).", parameters=_NUMBERS)

    def invoke(self, input: Any, env: Environment) -> Any:
        return _finite(math.prod(_numbers(input, "multiply")), "multiply")


class SubtractTool:
    spec = ToolSpec(description="[a, b] -> a - b.", parameters=_PAIR)

    def invoke(self, input: Any, env: Environment) -> Any:
        a, b = _numbers(input, "subtract", length=2)
        return _finite(a - b, "subtract")


class DivideTool:
    spec = ToolSpec(
        description="[a, b] -> a / b. Integers that divide exactly give an integer.",
        parameters=_PAIR,
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        a, b = _numbers(input, "divide", length=2)
        if b == 0:
            raise tool_failure("Division by zero", tool="divide")
        if isinstance(a, int) and isinstance(b, int) and a % b == 0:
            return a // b
        return _finite(a / b, "divide")
