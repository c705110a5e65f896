from __future__ import annotations
from typing import Any

from ...environment import Environment
from ...errors import ErrorKind, invalid_input
from ...script.interpreter import evaluate
from ..base import ToolSpec
from ..native import expect_bool, expect_object, expect_string


class EvalTool:
    spec = ToolSpec(
        description="Evaluate the input as a program in the calling environment.",
        parameters={},
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        return evaluate(input, env)


class IfTool:
    spec = ToolSpec(
        description=(
            "Evaluate 'then' or 'else' depending on a boolean condition. Only the chosen branch runs; "
            "quote the branches so they reach this tool unevaluated."
        ),
        parameters={
            "type": "object",
            "properties": {
                "condition": {"type": "boolean"},
                "then": {"description": "Program run when the condition is true."},
                "else": {"description": "Program run when the condition is false (default null)."},
            },
            "required": ["condition", "then"],
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        args = expect_object(input, "if", required=("condition", "then"))
        extra = set(args) - {"condition", "then", "else"}
        if extra:
            raise invalid_input("if got unexpected field(s)", tool="if", fields=sorted(extra))
        cond = expect_bool(args["condition"], "if", "condition to be a boolean")
        branch = args["then"] if cond else args.get("else")
        return evaluate(branch, env)


class TryTool:
    spec = ToolSpec(
        description=(
            "Invoke a tool and capture the outcome: {ok: true, value} or {ok: false, error: {kind, payload}}. "
            "Cancellation is never captured."
        ),
        parameters={
            "type": "object",
            "properties": {
                "tool": {"type": "string"},
                "input": {"description": "Input passed to the tool (default null)."},
            },
            "required": ["tool"],
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        args = expect_object(input, "try", required=("tool",))
        name = expect_string(args["tool"], "try", "a tool name")
        result = env.run(name, args.get("input"))
        if result.error is not None and result.error.kind is ErrorKind.CANCELLED:
            raise result.error
        return result.to_value()
