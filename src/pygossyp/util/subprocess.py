from __future__ import annotations
import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..cancellation import check_cancelled, wait_timeout
from ..errors import ToolError


@dataclass
class CmdResult:
    returncode: int
    stdout: str
    stderr: str


def merged_env(extra: Mapping[str, str] | None) -> dict[str, str] | None:
    """The process environment overlaid with ``extra``; None keeps it as is."""
    if not extra:
        return None
    return {**os.environ, **extra}


def run_cmd(
    cmd: Sequence[str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = 120,
    input: Optional[str] = None,
    env: Mapping[str, str] | None = None,
) -> CmdResult:
    """Run a command to completion, feeding ``input`` on stdin.

    Raises subprocess.TimeoutExpired when ``timeout`` elapses and the
    Cancelled ToolError when the active cancel scope fires; the child is
    killed in both cases.
    """
    p = subprocess.Popen(
        list(cmd),
        cwd=cwd,
        env=merged_env(env),
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        shell=False,
    )
    pending = input or ""
    waited = 0.0
    try:
        while True:
            check_cancelled()
            step = wait_timeout(None if timeout is None else timeout - waited)
            try:
                # stdin is written on the first round only; later rounds just collect output
                stdout, stderr = p.communicate(pending, timeout=step)
                return CmdResult(p.returncode, stdout, stderr)
            except subprocess.TimeoutExpired:
                pending = None
                waited += step or 0.0
                if timeout is not None and waited >= timeout:
                    raise subprocess.TimeoutExpired(list(cmd), timeout)
    except (subprocess.TimeoutExpired, ToolError):
        p.kill()
        p.communicate()
        raise
