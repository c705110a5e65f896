from __future__ import annotations
from typing import Any

from ...environment import Environment
from ...errors import invalid_input, unknown_tool
from ...script.defined_tool import DefinedTool
from ..base import ToolSpec
from ..native import expect_object, expect_string


class DefineTool:
    spec = ToolSpec(
        description=(
            "Create a tool from an orchestration program and bind it in the calling environment. "
            "The new tool resolves names against the bindings in place when it was defined, "
            "plus its own name."
        ),
        parameters={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name to bind the new tool to."},
                "body": {"description": "Program run on each invocation."},
                "parameters": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Input fields bound as names while the body runs.",
                },
                "description": {"type": "string"},
            },
            "required": ["name", "body"],
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        args = expect_object(input, "define", required=("name", "body"))
        name = expect_string(args["name"], "define", "a string name")
        if not name:
            raise invalid_input("define expects a non-empty name", tool="define")

        params = args.get("parameters") or []
        if not isinstance(params, list) or not all(isinstance(p, str) and p for p in params):
            raise invalid_input("define expects parameters to be an array of names", tool="define")
        desc = args.get("description") or ""
        if not isinstance(desc, str):
            raise invalid_input("define expects description to be a string", tool="define")

        tool = DefinedTool.create(args["body"], env, params, description=desc, name=name)
        env.define(name, tool)
        return name


class UndefineTool:
    spec = ToolSpec(
        description="Remove a binding from the calling environment. Returns whether anything was removed.",
        parameters={
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        args = expect_object(input, "undefine", required=("name",))
        name = expect_string(args["name"], "undefine", "a string name")
        return env.undefine(name)


class AliasTool:
    spec = ToolSpec(
        description="Bind an existing tool under another name in the calling environment.",
        parameters={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "New name."},
                "tool": {"type": "string", "description": "Name of the tool to copy."},
            },
            "required": ["name", "tool"],
        },
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        args = expect_object(input, "alias", required=("name", "tool"))
        name = expect_string(args["name"], "alias", "a string name")
        source = expect_string(args["tool"], "alias", "a string tool name")
        if not name:
            raise invalid_input("alias expects a non-empty name", tool="alias")
        tool = env.lookup(source)
        if tool is None:
            raise unknown_tool(source)
        env.define(name, tool)
        return name


class ListToolsTool:
    spec = ToolSpec(
        description="List the names visible from the calling environment.",
        parameters={"type": "null"},
    )

    def invoke(self, input: Any, env: Environment) -> Any:
        return {"names": env.names()}
