from __future__ import annotations
from functools import cmp_to_key
from typing import Any

from ...environment import Environment
from ...errors import ToolError, invalid_input, tool_failure, unknown_tool
from ...value import compare_values, type_name, values_equal
from ..base import ToolSpec, call_tool
from ..native import expect_array, expect_string


class CompareTool:
    spec = ToolSpec(
        description=(
            "Compare two values: [a, b] -> -1, 0 or 1. Values of different types order as "
            "array < boolean < null < number < object < string."
        ),
        parameters={"type": "array", "minItems": 2, "maxItems": 2},
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        a, b = expect_array(input, "compare", length=2)
        return compare_values(a, b)


class EqualsTool:
    spec = ToolSpec(
        description="Structural equality of two values: [a, b] -> boolean.",
        parameters={"type": "array", "minItems": 2, "maxItems": 2},
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        a, b = expect_array(input, "equals", length=2)
        return values_equal(a, b)


class _Abort(Exception):
    # carries a ToolError out of list.sort()
    def __init__(self, error: ToolError):
        self.error = error


class SortTool:
    spec = ToolSpec(
        description=(
            "Sort an array. Input is the array itself, or {array, compare_tool} where compare_tool "
            "names a tool taking [a, b] and returning a negative, zero or positive number."
        ),
        parameters={
            "type": ["array", "object"],
            "properties": {
                "array": {"type": "array"},
                "compare_tool": {"type": "string"},
            },
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        if isinstance(input, list):
            return sorted(input, key=cmp_to_key(compare_values))
        if not isinstance(input, dict) or "array" not in input:
            raise invalid_input("sort expects an array or {array, compare_tool}", tool="sort", got=type_name(input))

        items = list(expect_array(input["array"], "sort"))
        name = input.get("compare_tool")
        if name is None:
            return sorted(items, key=cmp_to_key(compare_values))
        name = expect_string(name, "sort", "compare_tool to be a tool name")
        comparator = env.lookup(name)
        if comparator is None:
            raise unknown_tool(name)

        def _cmp(a: Any, b: Any) -> int:
            try:
                out = call_tool(comparator, [a, b], env)
            except ToolError as e:
                raise _Abort(e)
            if isinstance(out, bool) or not isinstance(out, (int, float)):
                raise _Abort(tool_failure("compare tool must return a number", tool=name, got=type_name(out)))
            return -1 if out < 0 else (1 if out > 0 else 0)

        try:
            items.sort(key=cmp_to_key(_cmp))
        except _Abort as a:
            raise a.error
        return items
