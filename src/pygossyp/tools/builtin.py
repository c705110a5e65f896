from __future__ import annotations
from typing import TextIO

from .registry import ToolSet

from .builtin_tools.env_tools import AliasTool, DefineTool, ListToolsTool, UndefineTool
from .builtin_tools.io_tools import PrintTool, ReadLineTool
from .builtin_tools.algorithm import CompareTool, EqualsTool, SortTool
from .builtin_tools.arithmetic import AddTool, DivideTool, MultiplyTool, SubtractTool
from .builtin_tools.control import EvalTool, IfTool, TryTool


def register_builtin_tools(toolset: ToolSet, stdout: TextIO | None = None, stdin: TextIO | None = None) -> None:
    toolset.register("define", DefineTool())
    toolset.register("undefine", UndefineTool())
    toolset.register("alias", AliasTool())
    toolset.register("list-tools", ListToolsTool())
    toolset.register("print", PrintTool(stdout))
    toolset.register("read-line", ReadLineTool(stdin))
    toolset.register("compare", CompareTool())
    toolset.register("equals", EqualsTool())
    toolset.register("sort", SortTool())
    toolset.register("add", AddTool())
    toolset.register("multiply", MultiplyTool())
    toolset.register("subtract", SubtractTool())
    toolset.register("divide", DivideTool())
    toolset.register("eval", EvalTool())
    toolset.register("if", IfTool())
    toolset.register("try", TryTool())


def builtin_toolset(stdout: TextIO | None = None, stdin: TextIO | None = None) -> ToolSet:
    toolset = ToolSet()
    register_builtin_tools(toolset, stdout=stdout, stdin=stdin)
    return toolset
