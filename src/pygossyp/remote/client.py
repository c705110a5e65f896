from __future__ import annotations

import itertools
import json
import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from ..cancellation import check_cancelled, wait_timeout
from ..errors import ToolError, tool_failure, transport_failure
from ..util.subprocess import merged_env
from ..value import Value, dumps

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class RemoteToolInfo:
    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)


class RemoteClient:
    """A line-delimited JSON-RPC 2.0 client for a tool server on a child's stdio.

    Methods used:
      - tools/list -> { tools: [{name, description, inputSchema}] }
      - tools/call -> {value: ...}, or an MCP-style {content: [...]}
    """

    def __init__(
        self,
        command: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        name: str | None = None,
    ):
        self.command = list(command)
        self.name = name or (command[0] if command else "remote")
        self.timeout = timeout
        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                bufsize=1,
                cwd=cwd,
                env=merged_env(env),
            )
        except OSError as e:
            raise transport_failure("Remote server could not be started", command=self.command, description=str(e)) from e
        if self._proc.stdin is None or self._proc.stdout is None:
            raise transport_failure("Remote server started without pipes", command=self.command)
        self._stdin = self._proc.stdin
        self._stdout = self._proc.stdout
        self._id_iter = itertools.count(1)
        self._lock = threading.Lock()
        self._closed = False
        self._pending: dict[int, tuple[threading.Event, dict[str, Any]]] = {}
        self._reader = threading.Thread(target=self._read_loop, name=f"remote-{self.name}", daemon=True)
        self._reader.start()
        logger.info("started remote server %s: %s", self.name, " ".join(self.command))

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._mark_closed()
        if self._proc.poll() is None:
            try:
                self._stdin.close()
            except OSError:
                pass
            self._proc.terminate()
            try:
                self._proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._proc.kill()
                self._proc.wait()

    def _mark_closed(self) -> None:
        # fail everything still waiting; nothing more will arrive
        with self._lock:
            self._closed = True
            for ev, _holder in self._pending.values():
                ev.set()

    def _read_loop(self) -> None:
        try:
            for line in self._stdout:
                line = line.strip()
                if not line:
                    continue
                try:
                    msg = json.loads(line)
                except (ValueError, RecursionError):
                    logger.debug("%s: ignoring non-JSON line %r", self.name, line[:200])
                    continue
                if not isinstance(msg, dict) or not isinstance(msg.get("id"), int):
                    continue
                with self._lock:
                    entry = self._pending.get(msg["id"])
                    if entry is not None:
                        ev, holder = entry
                        holder["msg"] = msg
                        ev.set()
        except (OSError, ValueError):
            logger.debug("%s: reader stopped", self.name, exc_info=True)
        finally:
            self._mark_closed()

    def request(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        limit = self.timeout if timeout is None else timeout
        rid = next(self._id_iter)
        req = {"jsonrpc": "2.0", "id": rid, "method": method, "params": params or {}}
        ev = threading.Event()
        holder: dict[str, Any] = {}
        with self._lock:
            if self._closed:
                raise transport_failure("Remote server is not running", server=self.name, method=method)
            self._pending[rid] = (ev, holder)
            try:
                self._stdin.write(dumps(req) + "\n")
                self._stdin.flush()
            except (OSError, ValueError) as e:
                self._pending.pop(rid, None)
                raise transport_failure("Could not write to remote server", server=self.name, description=str(e)) from e

        deadline = time.monotonic() + limit
        try:
            while True:
                check_cancelled()
                left = deadline - time.monotonic()
                if left <= 0:
                    raise transport_failure("Remote request timed out", server=self.name, method=method, timeout=limit)
                if ev.wait(wait_timeout(left)):
                    break
        finally:
            with self._lock:
                self._pending.pop(rid, None)

        msg = holder.get("msg")
        if msg is None:
            raise transport_failure("Remote server exited", server=self.name, method=method, exit_code=self._proc.poll())
        if "error" in msg:
            raise self._error_from(msg["error"], method)
        return msg.get("result")

    def _error_from(self, error: Any, method: str) -> ToolError:
        if isinstance(error, dict):
            carried = ToolError.from_value(error.get("data"))
            if carried is not None:
                return carried
            return tool_failure(
                "Remote call failed",
                server=self.name,
                method=method,
                message=str(error.get("message", "")),
                code=error.get("code") if isinstance(error.get("code"), int) else None,
            )
        return tool_failure("Remote call failed", server=self.name, method=method, message=str(error))

    def list_tools(self) -> list[RemoteToolInfo]:
        res = self.request("tools/list", {})
        arr = res.get("tools", []) if isinstance(res, dict) else res
        tools = []
        if isinstance(arr, list):
            for t in arr:
                if not isinstance(t, dict):
                    continue
                name = t.get("name")
                desc = t.get("description", "")
                schema = t.get("inputSchema") or t.get("input_schema") or t.get("parameters") or {}
                if isinstance(name, str):
                    tools.append(RemoteToolInfo(name=name, description=str(desc), input_schema=schema if isinstance(schema, dict) else {}))
        return tools

    def call_tool(self, name: str, input: Value) -> Value:
        res = self.request("tools/call", {"name": name, "arguments": input})
        if isinstance(res, dict):
            if set(res) == {"value"}:
                return res["value"]
            if "content" in res:
                text = _content_text(res["content"])
                if res.get("isError"):
                    raise tool_failure("Remote tool reported an error", server=self.name, tool=name, message=text)
                return text
        return res


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return dumps(content)
    texts = []
    for part in content:
        if isinstance(part, dict):
            if part.get("type") == "text":
                texts.append(str(part.get("text", "")))
            else:
                texts.append(dumps(part))
        else:
            texts.append(str(part))
    return "\n".join(texts)
