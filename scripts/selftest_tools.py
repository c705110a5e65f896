from __future__ import annotations
import sys

from pygossyp.environment import Environment
from pygossyp.errors import ToolError
from pygossyp.script.interpreter import evaluate
from pygossyp.tools.builtin import builtin_toolset
from pygossyp.tools.builtin_tools.process_tool import ProcessTool


def main():
    env = Environment.root(builtin_toolset())

    # print
    evaluate({"call": "print", "input": "Hello, world"}, env)

    # let
    print("LET:", evaluate({"let": "x", "value": 5, "in": {"$": "x"}}, env))

    # define + call
    evaluate({"define": "double", "parameters": ["n"], "body": {"call": "multiply", "input": [{"$": "n"}, 2]}}, env)
    print("DOUBLE:", env.invoke("double", {"n": 21}))

    # sort with a comparator
    print("SORT:", env.invoke("sort", [3, "a", None, 1, [2]]))

    # try
    print("TRY:", env.invoke("try", {"tool": "divide", "input": [1, 0]}))

    # process tool: the child echoes its input back
    env.define("echo", ProcessTool([sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read())"]))
    print("PROCESS:", env.invoke("echo", {"hello": ["world"]}))

    # missing tool
    try:
        evaluate({"call": "missing-tool", "input": None}, env)
    except ToolError as e:
        print("ERROR:", e.to_value())


if __name__ == "__main__":
    main()
