from __future__ import annotations
import sys
import threading
from typing import Any, TextIO

from ...environment import Environment
from ...errors import tool_failure
from ...value import dumps
from ..base import ToolSpec


class PrintTool:
    """Writes its input to a stream and returns it unchanged."""

    spec = ToolSpec(
        description="Print a string (or any other value as JSON) followed by a newline. Returns the input.",
        parameters={},
    )

    def __init__(self, stream: TextIO | None = None, end: str = "\n"):
        # None means "whatever sys.stdout is at call time"
        self._stream = stream
        self._end = end
        self._lock = threading.Lock()

    def invoke(self, input: Any, env: Environment) -> Any:
        text = input if isinstance(input, str) else dumps(input, pretty=True)
        target = self._stream or sys.stdout
        try:
            with self._lock:
                target.write(text + self._end)
                target.flush()
        except OSError as e:
            raise tool_failure("Write failed", description=str(e)) from e
        return input


class ReadLineTool:
    spec = ToolSpec(
        description="Read one line. Returns {line, eof}; the trailing newline is removed.",
        parameters={"type": "null"},
    )

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def invoke(self, input: Any, env: Environment) -> Any:
        source = self._stream or sys.stdin
        try:
            line = source.readline()
        except OSError as e:
            raise tool_failure("Read failed", description=str(e)) from e
        eof = not line.endswith("\n")
        return {"line": line.rstrip("\r\n"), "eof": eof}
