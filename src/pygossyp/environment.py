"""
Environments bind names to tools.

An environment is a frame of bindings with an optional parent. Lookup walks
the chain from the frame outwards and the first match wins; define and
undefine only ever touch the receiving frame, so a child can shadow a name
without disturbing its ancestors.

Each frame is copy-on-write: writers build a new dict under a lock and publish
it with a single assignment, while readers use whatever dict is current and
never block. A define that has returned is visible to every later lookup on
the frame and on any of its descendants. A snapshot shares those published
dicts, so it costs one new frame per level of the chain.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Mapping, Optional

from .errors import unknown_tool
from .tools.base import Tool, ToolResult, call_tool, run_tool
from .value import Value

if TYPE_CHECKING:
    from .tools.registry import ToolSet

logger = logging.getLogger(__name__)


class Environment:
    def __init__(self, parent: Optional["Environment"] = None, bindings: Mapping[str, Tool] | None = None):
        self._parent = parent
        self._bindings: dict[str, Tool] = dict(bindings or {})
        self._lock = threading.Lock()

    @staticmethod
    def root(*toolsets: "ToolSet") -> "Environment":
        env = Environment()
        for ts in toolsets:
            ts.install(env)
        return env

    @property
    def parent(self) -> Optional["Environment"]:
        return self._parent

    def lookup(self, name: str) -> Optional[Tool]:
        frame: Environment | None = self
        while frame is not None:
            tool = frame._bindings.get(name)
            if tool is not None:
                return tool
            frame = frame._parent
        return None

    def define(self, name: str, tool: Tool) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("Tool name must be a non-empty string.")
        with self._lock:
            updated = dict(self._bindings)
            updated[name] = tool
            self._bindings = updated
        logger.debug("define %s -> %s", name, type(tool).__name__)

    def undefine(self, name: str) -> bool:
        with self._lock:
            if name not in self._bindings:
                return False
            updated = dict(self._bindings)
            del updated[name]
            self._bindings = updated
        logger.debug("undefine %s", name)
        return True

    def child(self, bindings: Mapping[str, Tool] | None = None) -> "Environment":
        return Environment(parent=self, bindings=bindings)

    def snapshot(self) -> "Environment":
        """Copy the chain as it stands now.

        The copy shares each frame's current dict, which is never mutated in
        place, so later defines on either chain are invisible to the other.
        """
        chain: list[Environment] = []
        frame: Environment | None = self
        while frame is not None:
            chain.append(frame)
            frame = frame._parent
        copy: Environment | None = None
        for frame in reversed(chain):
            copy = Environment(parent=copy)
            copy._bindings = frame._bindings
        assert copy is not None
        return copy

    def local_names(self) -> list[str]:
        return sorted(self._bindings.keys())

    def names(self) -> list[str]:
        seen: set[str] = set()
        frame: Environment | None = self
        while frame is not None:
            seen.update(frame._bindings.keys())
            frame = frame._parent
        return sorted(seen)

    def invoke(self, name: str, input: Value = None) -> Value:
        tool = self.lookup(name)
        if tool is None:
            raise unknown_tool(name)
        return call_tool(tool, input, self)

    def run(self, name: str, input: Value = None) -> ToolResult:
        """Like invoke, but the outcome comes back as a ToolResult instead of raising."""
        tool = self.lookup(name)
        if tool is None:
            return ToolResult(error=unknown_tool(name))
        return run_tool(tool, input, self)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __repr__(self) -> str:
        depth, frame = 0, self._parent
        while frame is not None:
            depth, frame = depth + 1, frame._parent
        return f"<Environment depth={depth} local={len(self._bindings)}>"
