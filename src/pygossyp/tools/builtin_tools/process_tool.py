from __future__ import annotations
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any, Optional

from ...environment import Environment
from ...errors import ToolError, transport_failure
from ...util.subprocess import run_cmd
from ...value import dumps, loads
from ..base import ToolSpec

logger = logging.getLogger(__name__)


@dataclass
class ProcessTool:
    """Runs a command per call: JSON input on stdin, one JSON document on stdout.

    A command that exits non-zero after printing a serialized error
    (``{"kind": ..., "payload": ...}``) fails with that error, so tools
    written as scripts can report InvalidInput and friends themselves.
    """
    command: list[str]
    cwd: Optional[str] = None
    env: dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = 120
    spec: ToolSpec = field(default_factory=lambda: ToolSpec(description="External command."))

    def invoke(self, input: Any, env: Environment) -> Any:
        logger.debug("process %s", self.command)
        try:
            res = run_cmd(self.command, cwd=self.cwd, timeout=self.timeout, input=dumps(input), env=self.env)
        except FileNotFoundError as e:
            raise transport_failure("Command not found", command=self.command, description=str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise transport_failure("Command timed out", command=self.command, timeout=self.timeout) from e
        except OSError as e:
            raise transport_failure("Command could not be started", command=self.command, description=str(e)) from e

        out = res.stdout.strip()
        if res.returncode != 0:
            err = self._reported_error(out)
            if err is not None:
                raise err
            raise transport_failure(
                "Command exited with an error",
                command=self.command,
                exit_code=res.returncode,
                stderr=res.stderr.strip(),
            )
        if not out:
            return None
        try:
            return loads(out)
        except ToolError as e:
            raise transport_failure(
                "Command printed invalid JSON",
                command=self.command,
                description=e.payload.get("description") if isinstance(e.payload, dict) else None,
            ) from e

    @staticmethod
    def _reported_error(out: str) -> ToolError | None:
        if not out:
            return None
        try:
            return ToolError.from_value(loads(out))
        except ToolError:
            return None
