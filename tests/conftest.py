"""
Shared fixtures.

The root environment used by most tests writes "print" output to a StringIO
so assertions can look at it, and reads "read-line" input from one.
"""
import io
import sys
from pathlib import Path

import pytest

from pygossyp.environment import Environment
from pygossyp.tools.builtin import builtin_toolset
from pygossyp.tools.native import NativeTool

PROJECT_ROOT = Path(__file__).parent.parent
SRC_DIR = PROJECT_ROOT / "src"


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def env(out):
    """Root environment with the built-in tools."""
    return Environment.root(builtin_toolset(stdout=out, stdin=io.StringIO("")))


@pytest.fixture
def recorder():
    """A tool that records each input it gets and returns it."""
    seen = []

    def _record(input, _env):
        seen.append(input)
        return input

    tool = NativeTool(_record)
    tool.seen = seen
    return tool


@pytest.fixture
def server_command():
    """Command line that runs the built-in tools as a remote server."""
    return [sys.executable, "-m", "pygossyp.remote.server"]


@pytest.fixture
def server_env():
    # make the child importable even when the package is not installed
    return {"PYTHONPATH": str(SRC_DIR)}


@pytest.fixture(scope="session")
def project_root():
    return PROJECT_ROOT
