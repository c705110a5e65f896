"""
Serve an Environment over line-delimited JSON-RPC 2.0 on stdio.

This is the far side of RemoteClient:

  - tools/list  -> {"tools": [{"name", "description", "inputSchema"}]}
  - tools/call  {"name", "arguments"} -> {"value": ...}

A failed call answers with an error whose ``data`` is the serialized
ToolError, so the client can raise it again with its original kind.

Run the built-in tools as a server with ``python -m pygossyp.remote.server``.
"""
from __future__ import annotations

import io
import json
import logging
import sys
import threading
from typing import Any, TextIO

from .. import __version__
from ..environment import Environment
from ..tools.base import describe
from ..value import dumps

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
TOOL_ERROR = -32000


class _Replier:
    def __init__(self, stdout: TextIO):
        self._out = stdout
        self._lock = threading.Lock()

    def send(self, rid: Any, result: Any = None, error: dict[str, Any] | None = None) -> None:
        msg: dict[str, Any] = {"jsonrpc": "2.0", "id": rid}
        if error is not None:
            msg["error"] = error
        else:
            msg["result"] = result
        with self._lock:
            self._out.write(dumps(msg) + "\n")
            self._out.flush()


def _list_tools(env: Environment) -> dict[str, Any]:
    tools = []
    for name in env.names():
        tool = env.lookup(name)
        spec = getattr(tool, "spec", None)
        tools.append({
            "name": name,
            "description": describe(tool),
            "inputSchema": getattr(spec, "parameters", None) or {},
        })
    return {"tools": tools}


def handle(env: Environment, req: Any) -> tuple[Any, dict[str, Any] | None]:
    """Answer one decoded request: (result, None) or (None, error)."""
    if not isinstance(req, dict) or not isinstance(req.get("method"), str):
        return None, {"code": INVALID_REQUEST, "message": "Invalid request"}
    method = req["method"]
    params = req.get("params") or {}
    if not isinstance(params, dict):
        return None, {"code": INVALID_PARAMS, "message": "params must be an object"}

    if method == "initialize":
        return {"serverInfo": {"name": "pygossyp", "version": __version__}, "capabilities": {"tools": {}}}, None
    if method == "tools/list":
        return _list_tools(env), None
    if method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str):
            return None, {"code": INVALID_PARAMS, "message": "tools/call needs a tool name"}
        logger.debug("serve call %s", name)
        result = env.run(name, params.get("arguments"))
        if result.error is not None:
            return None, {"code": TOOL_ERROR, "message": str(result.error), "data": result.error.to_value()}
        return {"value": result.value}, None
    return None, {"code": METHOD_NOT_FOUND, "message": f"Unknown method: {method}"}


def serve(env: Environment, stdin: TextIO, stdout: TextIO) -> None:
    """Answer requests until stdin closes. Requests are handled one at a time."""
    reply = _Replier(stdout)
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        try:
            req = json.loads(line)
        except (ValueError, RecursionError):
            reply.send(None, error={"code": PARSE_ERROR, "message": "Parse error"})
            continue
        # notifications (no id) get no answer
        if isinstance(req, dict) and "id" not in req:
            continue
        rid = req.get("id") if isinstance(req, dict) else None
        result, error = handle(env, req)
        reply.send(rid, result=result, error=error)


def main() -> None:
    from ..tools.builtin import builtin_toolset
    from ..util.log import configure_logging

    configure_logging()
    # stdout carries the protocol, so print goes to stderr and read-line sees EOF
    env = Environment.root(builtin_toolset(stdout=sys.stderr, stdin=io.StringIO("")))
    serve(env, sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
