from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import ToolError
from ..tools.base import ToolSpec
from ..tools.registry import ToolSet
from .client import DEFAULT_TIMEOUT, RemoteClient
from .models import RemoteServerConfig

logger = logging.getLogger(__name__)


@dataclass
class RemoteTool:
    spec: ToolSpec
    client: RemoteClient
    remote_name: str

    def invoke(self, input: Any, env: Any) -> Any:
        return self.client.call_tool(self.remote_name, input)


def register_remote_servers(
    toolset: ToolSet,
    servers: list[RemoteServerConfig],
    default_timeout: float = DEFAULT_TIMEOUT,
) -> list[RemoteClient]:
    """Start each server and register its tools as ``<prefix>.<remote name>``.

    A server that cannot be started or listed is skipped with a warning; the
    returned clients are the ones left running and must be closed by the caller.
    """
    clients: list[RemoteClient] = []
    for s in servers:
        try:
            client = RemoteClient(s.command, cwd=s.cwd, env=s.env, timeout=s.timeout or default_timeout, name=s.name)
        except ToolError as e:
            logger.warning("remote server %s not started: %s", s.name, e)
            continue
        try:
            infos = client.list_tools()
        except ToolError as e:
            logger.warning("remote server %s did not list its tools: %s", s.name, e)
            client.close()
            continue
        clients.append(client)
        for t in infos:
            tool_name = f"{s.tool_prefix}.{t.name}"
            spec = ToolSpec(
                description=f"[remote:{s.name}] {t.description}".strip(),
                parameters=t.input_schema,
            )
            try:
                toolset.register(tool_name, RemoteTool(spec=spec, client=client, remote_name=t.name))
            except ValueError as e:
                logger.warning("skipping remote tool %s: %s", tool_name, e)
    return clients
