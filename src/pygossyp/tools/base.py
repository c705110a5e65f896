from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from ..errors import ToolError, tool_failure
from ..value import Value, is_value, type_name

if TYPE_CHECKING:
    from ..environment import Environment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)   # JSONSchema-ish, informational


class Tool(Protocol):
    spec: ToolSpec
    def invoke(self, input: Value, env: "Environment") -> Value: ...


@dataclass
class ToolResult:
    value: Value = None
    error: ToolError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_value(self) -> dict[str, Any]:
        if self.error is not None:
            return {"ok": False, "error": self.error.to_value()}
        return {"ok": True, "value": self.value}


def describe(tool: Any) -> str:
    spec = getattr(tool, "spec", None)
    return spec.description if isinstance(spec, ToolSpec) else ""


def call_tool(tool: Tool, input: Value, env: "Environment") -> Value:
    """Invoke a tool, normalising every outcome to a value or a ToolError."""
    try:
        out = tool.invoke(input, env)
    except ToolError:
        raise
    except Exception as e:
        logger.debug("tool %r raised", tool, exc_info=True)
        raise tool_failure(
            "Tool raised an exception",
            description=str(e),
            exception=type(e).__name__,
        ) from e
    if not is_value(out):
        raise tool_failure("Tool returned a non-JSON value", type=type_name(out))
    return out


def run_tool(tool: Tool, input: Value, env: "Environment") -> ToolResult:
    try:
        return ToolResult(value=call_tool(tool, input, env))
    except ToolError as e:
        return ToolResult(error=e)
