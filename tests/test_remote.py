"""
Remote tool tests: the stdio server in memory, then a real child process.
"""
import io
import json
import sys

import pytest

from pygossyp.cancellation import CancelScope
from pygossyp.environment import Environment
from pygossyp.errors import ErrorKind, ToolError
from pygossyp.remote.bridge import RemoteTool, register_remote_servers
from pygossyp.remote.client import RemoteClient, _content_text
from pygossyp.remote.models import RemoteServerConfig
from pygossyp.remote.server import METHOD_NOT_FOUND, PARSE_ERROR, TOOL_ERROR, handle, serve
from pygossyp.tools.registry import ToolSet


def _serve(env, *requests):
    lines = [r if isinstance(r, str) else json.dumps(r) for r in requests]
    out = io.StringIO()
    serve(env, io.StringIO("\n".join(lines) + "\n"), out)
    return [json.loads(line) for line in out.getvalue().splitlines()]


class TestServer:

    def test_list_tools(self, env):
        result, error = handle(env, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        assert error is None
        names = [t["name"] for t in result["tools"]]
        assert "add" in names and "define" in names
        add = next(t for t in result["tools"] if t["name"] == "add")
        assert add["description"]
        assert add["inputSchema"]["type"] == "array"

    def test_call(self, env):
        replies = _serve(env, {"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {"name": "add", "arguments": [1, 2]}})
        assert replies == [{"jsonrpc": "2.0", "id": 7, "result": {"value": 3}}]

    def test_tool_error_is_carried_in_data(self, env):
        [reply] = _serve(env, {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "nope"}})
        assert reply["error"]["code"] == TOOL_ERROR
        assert reply["error"]["data"] == {"kind": "UnknownTool", "payload": {"error": "Tool not found", "tool_name": "nope"}}

    def test_protocol_errors(self, env):
        replies = _serve(
            env,
            "{not json",
            {"jsonrpc": "2.0", "method": "tools/list"},  # notification, no reply
            {"jsonrpc": "2.0", "id": 2, "method": "nope"},
        )
        assert [r["error"]["code"] for r in replies] == [PARSE_ERROR, METHOD_NOT_FOUND]
        assert replies[1]["id"] == 2

    def test_definitions_persist_between_requests(self, env):
        replies = _serve(
            env,
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call",
             "params": {"name": "define", "arguments": {"name": "seven", "body": 7}}},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "seven"}},
        )
        assert [r["result"]["value"] for r in replies] == ["seven", 7]


class TestContent:

    def test_text_parts_are_joined(self):
        assert _content_text([{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]) == "a\nb"

    def test_other_parts_are_json(self):
        assert _content_text([{"type": "image", "data": "x"}]) == '{"type": "image", "data": "x"}'


class TestRemoteClient:

    @pytest.fixture
    def client(self, server_command, server_env):
        c = RemoteClient(server_command, env=server_env, timeout=20)
        yield c
        c.close()

    def test_list_and_call(self, client):
        names = [t.name for t in client.list_tools()]
        assert "multiply" in names
        assert client.call_tool("multiply", [21, 2]) == 42

    def test_errors_keep_their_kind(self, client):
        with pytest.raises(ToolError) as ei:
            client.call_tool("divide", [1, 0])
        assert ei.value.kind is ErrorKind.TOOL_FAILURE
        assert ei.value.payload["error"] == "Division by zero"

        with pytest.raises(ToolError) as ei:
            client.call_tool("nope", None)
        assert ei.value.kind is ErrorKind.UNKNOWN_TOOL

    def test_closed_client_fails_fast(self, client):
        client.close()
        with pytest.raises(ToolError) as ei:
            client.call_tool("add", [])
        assert ei.value.kind is ErrorKind.TRANSPORT_FAILURE

    def test_crashed_server(self):
        c = RemoteClient([sys.executable, "-c", "import sys; sys.stdin.readline()"], timeout=20)
        try:
            with pytest.raises(ToolError) as ei:
                c.call_tool("add", [])
            assert ei.value.kind is ErrorKind.TRANSPORT_FAILURE
            with pytest.raises(ToolError) as ei:
                c.call_tool("add", [])
            assert ei.value.kind is ErrorKind.TRANSPORT_FAILURE
        finally:
            c.close()

    def test_request_timeout(self):
        c = RemoteClient([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.3)
        try:
            with pytest.raises(ToolError) as ei:
                c.list_tools()
            assert ei.value.kind is ErrorKind.TRANSPORT_FAILURE
            assert ei.value.payload["error"] == "Remote request timed out"
        finally:
            c.close()

    def test_cancel_while_waiting(self):
        c = RemoteClient([sys.executable, "-c", "import time; time.sleep(30)"], timeout=30)
        try:
            with CancelScope(timeout=0.3):
                with pytest.raises(ToolError) as ei:
                    c.call_tool("add", [])
            assert ei.value.kind is ErrorKind.CANCELLED
        finally:
            c.close()

    def test_missing_executable(self):
        with pytest.raises(ToolError) as ei:
            RemoteClient(["definitely-not-a-command-pygossyp"])
        assert ei.value.kind is ErrorKind.TRANSPORT_FAILURE


class TestBridge:

    def test_remote_tools_are_prefixed(self, server_command, server_env):
        ts = ToolSet()
        cfg = RemoteServerConfig(name="far", command=server_command, env=server_env)
        clients = register_remote_servers(ts, [cfg], default_timeout=20)
        try:
            assert "far.add" in ts.names()
            assert isinstance(ts.get("far.add"), RemoteTool)
            env = Environment.root(ts)
            assert env.invoke("far.add", [2, 3]) == 5
        finally:
            for c in clients:
                c.close()

    def test_location_transparency(self, env, server_command, server_env):
        ts = ToolSet()
        clients = register_remote_servers(
            ts, [RemoteServerConfig(name="far", command=server_command, env=server_env, prefix="r")], default_timeout=20
        )
        try:
            ts.install(env)
            local = env.invoke("try", {"tool": "divide", "input": [1, 0]})
            remote = env.invoke("try", {"tool": "r.divide", "input": [1, 0]})
            assert local == remote
        finally:
            for c in clients:
                c.close()

    def test_unstartable_server_is_skipped(self):
        ts = ToolSet()
        clients = register_remote_servers(ts, [RemoteServerConfig(name="x", command=["definitely-not-a-command-pygossyp"])])
        assert clients == []
        assert len(ts) == 0
