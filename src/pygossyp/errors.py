from __future__ import annotations

from enum import Enum
from typing import Any

from .value import Value, is_value


class ErrorKind(str, Enum):
    UNKNOWN_TOOL = "UnknownTool"            # lookup found no binding
    UNBOUND_NAME = "UnboundName"            # variable reference unresolved
    INVALID_INPUT = "InvalidInput"          # a tool rejected the shape of its input
    TOOL_FAILURE = "ToolFailure"            # the tool's own computation failed
    TRANSPORT_FAILURE = "TransportFailure"  # process/remote call could not complete
    CANCELLED = "Cancelled"                 # caller-initiated abort or deadline


# Process exit codes used by the command line front end
EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNKNOWN_TOOL: 2,
    ErrorKind.UNBOUND_NAME: 2,
    ErrorKind.INVALID_INPUT: 3,
    ErrorKind.TOOL_FAILURE: 4,
    ErrorKind.TRANSPORT_FAILURE: 5,
    ErrorKind.CANCELLED: 130,
}


class ToolError(Exception):
    """A failed tool invocation.

    The payload is itself a JSON value so that errors can be logged, sent
    across a transport and inspected by other tools.
    """

    def __init__(self, kind: ErrorKind, payload: Value = None):
        self.kind = ErrorKind(kind)
        self.payload = payload if is_value(payload) else str(payload)
        super().__init__(f"{self.kind.value}: {self._summary()}")

    def _summary(self) -> str:
        if isinstance(self.payload, dict) and isinstance(self.payload.get("error"), str):
            return self.payload["error"]
        return repr(self.payload)

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.kind]

    def to_value(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "payload": self.payload}

    @staticmethod
    def from_value(obj: Any) -> "ToolError | None":
        """Rebuild an error from to_value() output, or None if obj isn't one."""
        if not isinstance(obj, dict) or set(obj.keys()) != {"kind", "payload"}:
            return None
        try:
            kind = ErrorKind(obj["kind"])
        except ValueError:
            return None
        return ToolError(kind, obj["payload"])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolError):
            return NotImplemented
        return self.kind == other.kind and self.payload == other.payload

    __hash__ = Exception.__hash__


def _payload(message: str, details: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {"error": message}
    out.update({k: v for k, v in details.items() if v is not None})
    return out


def unknown_tool(name: str) -> ToolError:
    return ToolError(ErrorKind.UNKNOWN_TOOL, {"error": "Tool not found", "tool_name": name})


def unbound_name(name: str) -> ToolError:
    return ToolError(ErrorKind.UNBOUND_NAME, {"error": "Name is not bound", "name": name})


def invalid_input(message: str, **details: Any) -> ToolError:
    return ToolError(ErrorKind.INVALID_INPUT, _payload(message, details))


def tool_failure(message: str, **details: Any) -> ToolError:
    return ToolError(ErrorKind.TOOL_FAILURE, _payload(message, details))


def transport_failure(message: str, **details: Any) -> ToolError:
    return ToolError(ErrorKind.TRANSPORT_FAILURE, _payload(message, details))


def cancelled(reason: str = "cancelled") -> ToolError:
    return ToolError(ErrorKind.CANCELLED, {"error": "Call was cancelled", "reason": reason})
