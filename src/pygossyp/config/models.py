from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..remote.models import RemoteServerConfig


@dataclass
class ProcessToolConfig:
    name: str
    command: list[str]
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    timeout: float | None = 120
    description: str = ""

    @staticmethod
    def from_obj(name: str, obj: Any) -> "ProcessToolConfig | None":
        if not isinstance(obj, dict):
            return None
        cmd = obj.get("command")
        if not isinstance(cmd, list) or not cmd or not all(isinstance(x, str) for x in cmd):
            return None
        cwd = obj.get("cwd")
        if cwd is not None and not isinstance(cwd, str):
            return None
        env = obj.get("env", {})
        if not isinstance(env, dict):
            env = {}
        timeout = obj.get("timeout", 120)
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
            return None
        desc = obj.get("description", "")
        if not isinstance(desc, str):
            desc = ""
        return ProcessToolConfig(
            name=name,
            command=list(cmd),
            cwd=cwd,
            env={str(k): str(v) for k, v in env.items()},
            timeout=float(timeout) if timeout is not None else None,
            description=desc,
        )


@dataclass
class RuntimeConfig:
    """Runtime configuration merged from global, project and explicit files."""

    max_depth: int = 64
    remote_timeout: float = 30.0
    log_level: str | None = None
    process_tools: dict[str, ProcessToolConfig] = field(default_factory=dict)
    remote_servers: dict[str, RemoteServerConfig] = field(default_factory=dict)
    preload: list[Path] = field(default_factory=list)

    loaded_from: list[Path] = field(default_factory=list)
