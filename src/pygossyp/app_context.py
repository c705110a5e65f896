from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, TextIO

from .config.loader import load_runtime_config
from .config.models import RuntimeConfig
from .environment import Environment
from .errors import ToolError, tool_failure
from .remote.bridge import register_remote_servers
from .remote.client import RemoteClient
from .script.interpreter import evaluate, max_depth
from .tools.base import ToolSpec
from .tools.builtin import register_builtin_tools
from .tools.builtin_tools.process_tool import ProcessTool
from .tools.registry import ToolSet
from .util.log import ENV_LEVEL, configure_logging
from .value import loads

logger = logging.getLogger(__name__)

# Python frames used per nested tool call, with headroom
_FRAMES_PER_CALL = 25


@dataclass
class RuntimeContext:
    cwd: Path
    config: RuntimeConfig
    env: Environment
    tools: ToolSet
    remote_clients: list[RemoteClient] = field(default_factory=list)

    def close(self) -> None:
        """Terminate remote server processes."""
        for c in self.remote_clients:
            c.close()
        self.remote_clients = []

    def __enter__(self) -> "RuntimeContext":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @contextmanager
    def limits(self) -> Iterator[None]:
        """Apply the configured call depth while evaluating in the current thread."""
        needed = self.config.max_depth * _FRAMES_PER_CALL + 200
        if sys.getrecursionlimit() < needed:
            sys.setrecursionlimit(needed)
        with max_depth(self.config.max_depth):
            yield

    @staticmethod
    def from_env(
        cwd: Path,
        config_path: Optional[Path] = None,
        isolated: bool = False,
        log_level: str | None = None,
        stdout: TextIO | None = None,
        stdin: TextIO | None = None,
        remotes: bool = True,
    ) -> "RuntimeContext":
        cwd = cwd.expanduser().resolve()
        config = load_runtime_config(cwd=cwd, explicit_path=config_path, isolated=isolated)
        configure_logging(log_level or os.environ.get(ENV_LEVEL) or config.log_level)

        tools = ToolSet()
        register_builtin_tools(tools, stdout=stdout, stdin=stdin)

        for name, pc in config.process_tools.items():
            tool = ProcessTool(
                command=pc.command,
                cwd=str((cwd / pc.cwd).resolve()) if pc.cwd else str(cwd),
                env=pc.env,
                timeout=pc.timeout,
                spec=ToolSpec(description=pc.description or f"[process] {' '.join(pc.command)}"),
            )
            try:
                tools.register(name, tool)
            except ValueError as e:
                logger.warning("skipping process tool %s: %s", name, e)

        clients: list[RemoteClient] = []
        if remotes and config.remote_servers:
            clients = register_remote_servers(
                tools, list(config.remote_servers.values()), default_timeout=config.remote_timeout
            )

        ctx = RuntimeContext(cwd=cwd, config=config, env=Environment.root(tools), tools=tools, remote_clients=clients)
        try:
            with ctx.limits():
                for p in config.preload:
                    ctx.preload(p)
        except ToolError:
            ctx.close()
            raise
        return ctx

    def preload(self, path: Path) -> None:
        """Evaluate a program file into the root environment."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise tool_failure("Cannot read preload file", path=str(path), description=str(e)) from e
        logger.debug("preload %s", path)
        evaluate(loads(text), self.env)
