from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..environment import Environment
from ..errors import invalid_input
from ..tools.base import ToolSpec
from ..tools.native import ConstantTool
from ..value import Value, type_name
from . import forms
from .interpreter import run_form

INPUT_NAME = "input"


@dataclass
class DefinedTool:
    """A program closed over the environment it was defined in.

    ``closure`` is a snapshot of the defining chain taken by ``create``, plus a
    frame binding the tool under its own name. Redefining a name afterwards
    does not change what the body sees, and neither do the caller's bindings.
    """
    body: Value
    closure: Environment
    parameters: tuple[str, ...] = ()
    spec: ToolSpec = field(default_factory=ToolSpec)
    _form: forms.Form = field(init=False, repr=False)

    def __post_init__(self):
        self._form = forms.parse(self.body)

    @staticmethod
    def create(
        body: Value,
        env: Environment,
        parameters: Sequence[str] = (),
        description: str = "",
        name: str | None = None,
    ) -> "DefinedTool":
        """Build a tool over a snapshot of ``env``; ``name`` is pre-bound so the body can recurse."""
        params = tuple(parameters)
        if INPUT_NAME in params:
            raise invalid_input(f"parameter name '{INPUT_NAME}' is reserved", tool="define")
        if len(set(params)) != len(params):
            raise invalid_input("duplicate parameter names", tool="define", parameters=list(params))
        spec = ToolSpec(
            description=description or "Defined tool.",
            parameters={"type": "object", "required": list(params)} if params else {},
        )
        closure = env.snapshot().child()
        tool = DefinedTool(body=body, closure=closure, parameters=params, spec=spec)
        if name:
            closure.define(name, tool)
        return tool

    def invoke(self, input: Value, env: Environment) -> Value:
        frame = self.closure.child({INPUT_NAME: ConstantTool(input)})
        if self.parameters:
            if not isinstance(input, dict):
                raise invalid_input(
                    "defined tool expects an object input",
                    parameters=list(self.parameters),
                    got=type_name(input),
                )
            missing = [p for p in self.parameters if p not in input]
            if missing:
                raise invalid_input(
                    f"input is missing parameter(s): {', '.join(missing)}",
                    parameters=list(self.parameters),
                    missing=missing,
                )
            for p in self.parameters:
                frame.define(p, ConstantTool(input[p]))
        return run_form(self._form, frame)
