"""
Configuration loading and runtime assembly tests.
"""
import json
import logging
import sys
import threading

import pytest

from pygossyp.app_context import RuntimeContext
from pygossyp.config import loader
from pygossyp.config.loader import expand_env_placeholders, load_runtime_config
from pygossyp.errors import ErrorKind, ToolError
from pygossyp.script import interpreter
from pygossyp.script.interpreter import evaluate
from pygossyp.tools.builtin_tools.process_tool import ProcessTool


@pytest.fixture(autouse=True)
def global_dir(tmp_path, monkeypatch):
    """Point the user config directory somewhere empty."""
    d = tmp_path / "global"
    d.mkdir()
    monkeypatch.setattr(loader, "user_config_dir", lambda app: str(d))
    return d


@pytest.fixture
def project(tmp_path):
    d = tmp_path / "project"
    d.mkdir()
    return d


def _write_json(path, obj):
    path.write_text(json.dumps(obj), encoding="utf-8")
    return path


class TestLoading:

    def test_defaults(self, project):
        cfg = load_runtime_config(cwd=project)
        assert cfg.max_depth == 64
        assert cfg.remote_timeout == 30.0
        assert cfg.process_tools == {} and cfg.remote_servers == {}
        assert cfg.loaded_from == []

    def test_merge_order(self, project, global_dir, tmp_path):
        _write_json(global_dir / "pygossyp.json", {"max_depth": 10, "remote_timeout": 5})
        _write_json(project / "pygossyp.json", {"max_depth": 20})
        explicit = _write_json(tmp_path / "explicit.json", {"max_depth": 30})

        assert load_runtime_config(cwd=project).max_depth == 20
        cfg = load_runtime_config(cwd=project, explicit_path=explicit)
        assert cfg.max_depth == 30
        assert cfg.remote_timeout == 5.0
        assert len(cfg.loaded_from) == 3

    def test_isolated_skips_global_and_project(self, project, global_dir):
        _write_json(global_dir / "pygossyp.json", {"max_depth": 10})
        _write_json(project / "pygossyp.json", {"max_depth": 20})
        assert load_runtime_config(cwd=project, isolated=True).max_depth == 64

    def test_first_project_file_wins(self, project):
        _write_json(project / ".pygossyp.json", {"max_depth": 11})
        _write_json(project / "pygossyp.json", {"max_depth": 12})
        assert load_runtime_config(cwd=project).max_depth == 11

    def test_yaml(self, project):
        (project / "pygossyp.yaml").write_text(
            "max_depth: 7\n"
            "log_level: info\n"
            "process_tools:\n"
            "  upper:\n"
            "    command: [python, upper.py]\n"
            "    timeout: 5\n"
            "remote_servers:\n"
            "  far:\n"
            "    command: [python, -m, pygossyp.remote.server]\n"
            "    prefix: f\n",
            encoding="utf-8",
        )
        cfg = load_runtime_config(cwd=project)
        assert cfg.max_depth == 7
        assert cfg.log_level == "info"
        assert cfg.process_tools["upper"].command == ["python", "upper.py"]
        assert cfg.process_tools["upper"].timeout == 5.0
        assert cfg.remote_servers["far"].tool_prefix == "f"

    def test_env_placeholders(self, project, monkeypatch):
        monkeypatch.setenv("PYGOSSYP_TOOL_BIN", "/opt/bin/tool")
        _write_json(project / "pygossyp.json", {
            "process_tools": {
                "ok": {"command": ["${PYGOSSYP_TOOL_BIN}", "--json"], "env": {"HOME_DIR": "${PYGOSSYP_TOOL_BIN}/home"}},
                "missing": {"command": ["${PYGOSSYP_NOT_SET_ANYWHERE}"]},
            }
        })
        monkeypatch.delenv("PYGOSSYP_NOT_SET_ANYWHERE", raising=False)
        cfg = load_runtime_config(cwd=project)
        assert cfg.process_tools["ok"].command == ["/opt/bin/tool", "--json"]
        assert cfg.process_tools["ok"].env == {"HOME_DIR": "/opt/bin/tool/home"}
        assert "missing" not in cfg.process_tools

    def test_expand_env_placeholders(self, monkeypatch):
        monkeypatch.setenv("PYGOSSYP_X", "1")
        assert expand_env_placeholders("a${PYGOSSYP_X}b") == "a1b"
        monkeypatch.delenv("PYGOSSYP_X")
        with pytest.raises(ValueError):
            expand_env_placeholders("${PYGOSSYP_X}")

    def test_invalid_entries_are_skipped_with_a_warning(self, project, caplog):
        _write_json(project / "pygossyp.json", {
            "max_depth": "deep",
            "process_tools": {"bad": {"command": "not-a-list"}, "good": {"command": ["x"]}},
            "remote_servers": {"bad": 3},
        })
        with caplog.at_level(logging.WARNING, logger="pygossyp"):
            cfg = load_runtime_config(cwd=project)
        assert cfg.max_depth == 64
        assert list(cfg.process_tools) == ["good"]
        assert cfg.remote_servers == {}
        assert "process_tools.bad" in caplog.text
        assert "remote_servers.bad" in caplog.text

    def test_unreadable_file_is_skipped(self, project, caplog):
        (project / ".pygossyp.json").write_text("{broken", encoding="utf-8")
        _write_json(project / "pygossyp.json", {"max_depth": 5})
        with caplog.at_level(logging.WARNING, logger="pygossyp"):
            cfg = load_runtime_config(cwd=project)
        assert cfg.max_depth == 5
        assert "skipping config" in caplog.text

    def test_preload_paths_are_relative_to_cwd(self, project):
        _write_json(project / "pygossyp.json", {"preload": ["lib/defs.json"]})
        assert load_runtime_config(cwd=project).preload == [project / "lib" / "defs.json"]


class TestRuntimeContext:

    def test_builds_root_with_process_tools_and_preload(self, project):
        _write_json(project / "defs.json", {
            "define": "double", "parameters": ["n"], "body": {"call": "multiply", "input": [{"$": "n"}, 2]},
        })
        _write_json(project / "pygossyp.json", {
            "preload": ["defs.json"],
            "process_tools": {
                "echo": {"command": [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read())"]},
            },
        })
        with RuntimeContext.from_env(cwd=project) as ctx:
            assert ctx.env.invoke("double", {"n": 4}) == 8
            assert isinstance(ctx.env.lookup("echo"), ProcessTool)
            assert ctx.env.invoke("echo", [1, 2]) == [1, 2]
            assert "print" in ctx.env

    def test_bad_preload_fails(self, project):
        _write_json(project / "pygossyp.json", {"preload": ["missing.json"]})
        with pytest.raises(ToolError) as ei:
            RuntimeContext.from_env(cwd=project)
        assert ei.value.kind is ErrorKind.TOOL_FAILURE

    def test_remote_servers_are_registered_and_closed(self, project, server_command, server_env):
        _write_json(project / "pygossyp.json", {
            "remote_servers": {"far": {"command": server_command, "env": server_env}},
        })
        ctx = RuntimeContext.from_env(cwd=project)
        try:
            assert ctx.env.invoke("far.add", [1, 2]) == 3
            clients = list(ctx.remote_clients)
        finally:
            ctx.close()
        assert all(c.closed for c in clients)

    def test_configured_depth_applies_on_any_thread(self, project):
        _write_json(project / "pygossyp.json", {"max_depth": 3})
        errors = []
        with RuntimeContext.from_env(cwd=project) as ctx:
            evaluate({"define": "loop", "body": {"call": "loop"}}, ctx.env)

            def worker():
                with ctx.limits():
                    try:
                        evaluate({"call": "loop"}, ctx.env)
                    except ToolError as e:
                        errors.append(e)

            t = threading.Thread(target=worker)
            t.start()
            t.join()

        assert [e.payload for e in errors] == [{"error": "maximum call depth exceeded", "limit": 3}]
        assert interpreter._limit_var.get() == interpreter.DEFAULT_MAX_DEPTH
