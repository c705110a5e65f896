from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable

from ..errors import ToolError, invalid_input
from ..value import Value, copy_value, type_name
from .base import ToolSpec

if TYPE_CHECKING:
    from ..environment import Environment


@dataclass
class NativeTool:
    """A tool whose computation is a Python callable taking (input, env)."""
    function: Callable[[Value, "Environment"], Value]
    spec: ToolSpec = field(default_factory=ToolSpec)

    def invoke(self, input: Value, env: "Environment") -> Value:
        return self.function(input, env)


@dataclass
class ConstantTool:
    value: Value
    spec: ToolSpec = field(default_factory=lambda: ToolSpec(description="Constant value."))

    def invoke(self, input: Value, env: "Environment") -> Value:
        return copy_value(self.value)


def make_tool(function: Callable[[Value], Value], description: str = "") -> NativeTool:
    """Wrap a pure function of the input alone."""
    return NativeTool(lambda input, _env: function(input), ToolSpec(description=description))


# ---- input shape checks ----

def _mismatch(tool: str, expected: str, got: Any) -> ToolError:
    return invalid_input(f"{tool} expects {expected}", tool=tool, got=type_name(got))


def expect_object(input: Value, tool: str, required: Iterable[str] = ()) -> dict[str, Any]:
    if not isinstance(input, dict):
        raise _mismatch(tool, "an object", input)
    missing = [k for k in required if k not in input]
    if missing:
        raise invalid_input(f"{tool} input is missing field(s): {', '.join(missing)}", tool=tool, missing=missing)
    return input


def expect_array(input: Value, tool: str, length: int | None = None) -> list[Any]:
    if not isinstance(input, list):
        raise _mismatch(tool, "an array", input)
    if length is not None and len(input) != length:
        raise invalid_input(f"{tool} expects an array of {length} values", tool=tool, length=len(input))
    return input


def expect_string(input: Value, tool: str, what: str = "a string") -> str:
    if not isinstance(input, str):
        raise _mismatch(tool, what, input)
    return input


def expect_number(input: Value, tool: str, what: str = "a number") -> int | float:
    if isinstance(input, bool) or not isinstance(input, (int, float)):
        raise _mismatch(tool, what, input)
    return input


def expect_bool(input: Value, tool: str, what: str = "a boolean") -> bool:
    if not isinstance(input, bool):
        raise _mismatch(tool, what, input)
    return input
