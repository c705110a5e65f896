from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator

from .base import Tool

if TYPE_CHECKING:
    from ..environment import Environment


@dataclass
class ToolSet:
    """An ordered collection of named tools, ready to install into an environment."""
    _tools: Dict[str, Tool] = None  # type: ignore

    def __post_init__(self):
        if self._tools is None:
            self._tools = {}

    def register(self, name: str, tool: Tool) -> None:
        if not name:
            raise ValueError("Tool name cannot be empty.")
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def get(self, name: str) -> Tool:
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}")
        return self._tools[name]

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def items(self) -> Iterator[tuple[str, Tool]]:
        return iter(list(self._tools.items()))

    def combine(self, other: "ToolSet") -> "ToolSet":
        """Both sets in one; on a name collision the receiver's tool wins."""
        merged = dict(self._tools)
        for name, tool in other.items():
            merged.setdefault(name, tool)
        return ToolSet(merged)

    def install(self, env: "Environment") -> None:
        for name, tool in self.items():
            env.define(name, tool)

    def __len__(self) -> int:
        return len(self._tools)
