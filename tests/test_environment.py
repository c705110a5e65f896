"""
Environment, tool contract and ToolSet tests.
"""
import threading

import pytest

from pygossyp.environment import Environment
from pygossyp.errors import ErrorKind, ToolError, invalid_input
from pygossyp.tools.base import ToolResult, call_tool, run_tool
from pygossyp.tools.native import ConstantTool, NativeTool, make_tool
from pygossyp.tools.registry import ToolSet


class TestBindings:

    def test_define_then_lookup(self):
        env = Environment()
        tool = ConstantTool(1)
        env.define("one", tool)
        assert env.lookup("one") is tool
        assert env.child().lookup("one") is tool

    def test_child_shadows_without_touching_parent(self):
        env = Environment()
        outer, inner = ConstantTool("outer"), ConstantTool("inner")
        env.define("x", outer)
        child = env.child()
        child.define("x", inner)
        assert child.lookup("x") is inner
        assert env.lookup("x") is outer

    def test_redefine_rebinds(self):
        env = Environment()
        env.define("x", ConstantTool(1))
        env.define("x", ConstantTool(2))
        assert env.invoke("x") == 2

    def test_undefine_is_local(self):
        env = Environment()
        env.define("x", ConstantTool(1))
        child = env.child()
        assert child.undefine("x") is False
        assert env.undefine("x") is True
        assert env.lookup("x") is None
        assert env.undefine("x") is False

    def test_names_are_sorted_and_unique(self):
        env = Environment()
        env.define("b", ConstantTool(1))
        env.define("a", ConstantTool(1))
        child = env.child()
        child.define("b", ConstantTool(2))
        child.define("c", ConstantTool(3))
        assert child.names() == ["a", "b", "c"]
        assert child.local_names() == ["b", "c"]

    def test_snapshot_is_independent_of_later_defines(self):
        env = Environment()
        env.define("x", ConstantTool(1))
        child = env.child({"y": ConstantTool("y")})
        snap = child.snapshot()

        env.define("x", ConstantTool(2))
        env.define("z", ConstantTool(3))
        child.undefine("y")
        snap.define("w", ConstantTool(4))

        assert snap.invoke("x") == 1
        assert snap.invoke("y") == "y"
        assert snap.lookup("z") is None
        assert child.lookup("w") is None
        assert snap.names() == ["w", "x", "y"]

    def test_empty_name_is_rejected(self):
        with pytest.raises(ValueError):
            Environment().define("", ConstantTool(1))

    def test_invoke_unknown_name(self):
        with pytest.raises(ToolError) as ei:
            Environment().invoke("missing")
        assert ei.value.kind is ErrorKind.UNKNOWN_TOOL
        assert ei.value.payload == {"error": "Tool not found", "tool_name": "missing"}

    def test_root_installs_toolsets(self):
        ts = ToolSet()
        ts.register("one", ConstantTool(1))
        env = Environment.root(ts)
        assert env.invoke("one") == 1
        assert "one" in env


class TestConcurrency:

    def test_concurrent_defines_all_land(self):
        env = Environment()
        errors = []

        def writer(start):
            for i in range(start, start + 200):
                env.define(f"t{i}", ConstantTool(i))

        def reader():
            for _ in range(2000):
                try:
                    env.names()
                    env.lookup("t5")
                except Exception as e:  # pragma: no cover
                    errors.append(e)

        threads = [threading.Thread(target=writer, args=(n * 200,)) for n in range(4)]
        threads += [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(env.local_names()) == 800
        assert env.invoke("t799") == 799

    def test_define_is_visible_to_other_threads_once_returned(self):
        env = Environment()
        child = env.child()
        ready = threading.Event()
        seen = []

        def look():
            ready.wait()
            seen.append(child.invoke("late"))

        t = threading.Thread(target=look)
        t.start()
        env.define("late", ConstantTool("here"))
        ready.set()
        t.join()
        assert seen == ["here"]


class TestToolContract:

    def test_exceptions_become_tool_failures(self):
        def boom(input, env):
            raise RuntimeError("kaput")

        with pytest.raises(ToolError) as ei:
            call_tool(NativeTool(boom), None, Environment())
        assert ei.value.kind is ErrorKind.TOOL_FAILURE
        assert ei.value.payload == {
            "error": "Tool raised an exception",
            "description": "kaput",
            "exception": "RuntimeError",
        }

    def test_tool_errors_pass_through(self):
        def reject(input, env):
            raise invalid_input("nope", field="x")

        with pytest.raises(ToolError) as ei:
            call_tool(NativeTool(reject), None, Environment())
        assert ei.value.kind is ErrorKind.INVALID_INPUT
        assert ei.value.payload == {"error": "nope", "field": "x"}

    def test_non_json_result_is_a_failure(self):
        with pytest.raises(ToolError) as ei:
            call_tool(make_tool(lambda x: {1, 2}), None, Environment())
        assert ei.value.kind is ErrorKind.TOOL_FAILURE

    def test_run_tool_returns_exactly_one_outcome(self):
        ok = run_tool(make_tool(lambda x: x + 1), 1, Environment())
        assert ok == ToolResult(value=2)
        assert ok.to_value() == {"ok": True, "value": 2}

        bad = run_tool(make_tool(lambda x: x + 1), "a", Environment())
        assert not bad.ok
        assert bad.error.kind is ErrorKind.TOOL_FAILURE
        assert bad.to_value()["ok"] is False
        assert bad.to_value()["error"]["kind"] == "ToolFailure"

    def test_run_by_name_reports_unknown_tools(self):
        env = Environment()
        env.define("inc", make_tool(lambda x: x + 1))
        assert env.run("inc", 1) == ToolResult(value=2)
        missing = env.run("nope")
        assert missing.error.kind is ErrorKind.UNKNOWN_TOOL
        assert missing.to_value() == {"ok": False, "error": missing.error.to_value()}

    def test_constant_tool_returns_a_copy(self):
        tool = ConstantTool({"a": [1]})
        got = call_tool(tool, None, Environment())
        got["a"].append(2)
        assert tool.value == {"a": [1]}

    def test_error_round_trips_through_value(self):
        err = invalid_input("bad", tool="add")
        assert ToolError.from_value(err.to_value()) == err
        assert ToolError.from_value({"kind": "Bogus", "payload": 1}) is None
        assert err.exit_code == 3


class TestToolSet:

    def test_duplicate_registration_fails(self):
        ts = ToolSet()
        ts.register("a", ConstantTool(1))
        with pytest.raises(ValueError):
            ts.register("a", ConstantTool(2))

    def test_combine_keeps_the_first_on_collision(self):
        first, second = ToolSet(), ToolSet()
        first.register("a", ConstantTool("first"))
        second.register("a", ConstantTool("second"))
        second.register("b", ConstantTool("b"))
        merged = first.combine(second)
        assert merged.names() == ["a", "b"]
        assert merged.get("a").value == "first"
        assert len(merged) == 2
