from __future__ import annotations

import io
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from .app_context import RuntimeContext
from .cancellation import CancelScope
from .config.loader import load_runtime_config
from .errors import ToolError, cancelled
from .remote.client import RemoteClient
from .remote.server import serve as serve_stdio
from .script.interpreter import evaluate
from .tools.base import describe
from .value import Value, dumps, loads

app = typer.Typer(add_completion=False, help="pygossyp: compose JSON tools with a JSON orchestration language.")
console = Console()

CWD_HELP = "Working directory (project root). Defaults to current directory."
CONFIG_HELP = "Explicit config file (JSON or YAML), merged over global and project config."
ISOLATED_HELP = "Ignore global and project config files."
TIMEOUT_HELP = "Cancel the evaluation after this many seconds."
VERBOSE_HELP = "Debug logging on stderr."


def _resolve_cwd(cwd: Path | None) -> Path:
    cwd = Path(str(cwd or Path.cwd())).expanduser()
    if not cwd.is_absolute():
        cwd = (Path.cwd() / cwd).resolve()
    else:
        cwd = cwd.resolve()
    if not cwd.is_dir():
        raise typer.BadParameter(f"--cwd must be an existing directory, got: {cwd}")
    return cwd


def _open(cwd: Path | None, config: Path | None, isolated: bool, verbose: bool, **kwargs) -> RuntimeContext:
    try:
        return RuntimeContext.from_env(
            cwd=_resolve_cwd(cwd),
            config_path=config,
            isolated=isolated,
            log_level="DEBUG" if verbose else None,
            **kwargs,
        )
    except ToolError as e:
        _fail(e)


def _emit(value: Value) -> None:
    typer.echo(dumps(value, pretty=True))


def _fail(e: ToolError) -> NoReturn:
    _emit({"error": e.to_value()})
    raise typer.Exit(code=e.exit_code)


@contextmanager
def _scoped(ctx: RuntimeContext, timeout: float | None) -> Iterator[None]:
    with ctx.limits(), CancelScope(timeout=timeout):
        try:
            yield
        except KeyboardInterrupt:
            raise cancelled("interrupted")


def _evaluate(ctx: RuntimeContext, program: Value, timeout: float | None) -> Value:
    with _scoped(ctx, timeout):
        return evaluate(program, ctx.env)


@app.command()
def run(
    file: Optional[Path] = typer.Argument(None, help="Program file (JSON). Reads stdin when omitted and no -e is given."),
    expr: str = typer.Option(None, "--expr", "-e", help="Inline program (JSON text)."),
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
    timeout: float = typer.Option(None, "--timeout", help=TIMEOUT_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_HELP),
):
    """Evaluate a program and print its result as JSON."""
    if file is not None and expr is not None:
        raise typer.BadParameter("give either FILE or --expr, not both")
    if expr is not None:
        text = expr
    elif file is not None:
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as e:
            raise typer.BadParameter(f"cannot read {file}: {e}")
    else:
        text = sys.stdin.read()

    ctx = _open(cwd, config, isolated, verbose)
    try:
        _emit(_evaluate(ctx, loads(text), timeout))
    except ToolError as e:
        _fail(e)
    finally:
        ctx.close()


@app.command()
def call(
    name: str = typer.Argument(..., help="Tool name."),
    input: str = typer.Option("null", "--input", "-i", help="Tool input (JSON text)."),
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
    timeout: float = typer.Option(None, "--timeout", help=TIMEOUT_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_HELP),
):
    """Invoke one tool with a JSON input."""
    ctx = _open(cwd, config, isolated, verbose)
    try:
        arg = loads(input)
        with _scoped(ctx, timeout):
            value = ctx.env.invoke(name, arg)
        _emit(value)
    except ToolError as e:
        _fail(e)
    finally:
        ctx.close()


@app.command()
def tools(
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print {names: [...]} instead of a table."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_HELP),
):
    """List the tools visible from the root environment."""
    ctx = _open(cwd, config, isolated, verbose)
    try:
        names = ctx.env.names()
        if as_json:
            _emit({"names": names})
            return
        table = Table(title="Tools")
        table.add_column("name", style="bold")
        table.add_column("description")
        for n in names:
            table.add_row(n, describe(ctx.env.lookup(n)))
        console.print(table)
    finally:
        ctx.close()


@app.command()
def repl(
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
    timeout: float = typer.Option(None, "--timeout", help="Per-program timeout in seconds."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_HELP),
):
    """Evaluate one JSON program per line against a persistent root environment."""
    ctx = _open(cwd, config, isolated, verbose)
    try:
        while True:
            try:
                line = typer.prompt("pygossyp", prompt_suffix="> ")
            except (EOFError, KeyboardInterrupt, typer.Abort):
                break
            if line.strip().lower() in {"exit", "quit", ":q"}:
                break
            try:
                _emit(_evaluate(ctx, loads(line), timeout))
            except ToolError as e:
                _emit({"error": e.to_value()})
    finally:
        ctx.close()


@app.command()
def serve(
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_HELP),
):
    """Expose the root environment as a JSON-RPC tool server on stdio."""
    # stdout carries the protocol, so print goes to stderr and read-line sees EOF
    ctx = _open(cwd, config, isolated, verbose, stdout=sys.stderr, stdin=io.StringIO(""))
    try:
        with ctx.limits():
            serve_stdio(ctx.env, sys.stdin, sys.stdout)
    finally:
        ctx.close()


@app.command()
def remotes(
    cwd: Path = typer.Option(None, "--cwd", help=CWD_HELP),
    config: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    isolated: bool = typer.Option(False, "--isolated", help=ISOLATED_HELP),
):
    """List configured remote servers and the tools they offer."""
    cfg = load_runtime_config(cwd=_resolve_cwd(cwd), explicit_path=config, isolated=isolated)
    if not cfg.remote_servers:
        console.print("No remote servers configured. Add remote_servers to pygossyp.json.")
        raise typer.Exit(code=0)

    table = Table(title="Remote tools")
    table.add_column("server", style="bold")
    table.add_column("tool")
    table.add_column("description")
    for name, sc in cfg.remote_servers.items():
        try:
            client = RemoteClient(sc.command, cwd=sc.cwd, env=sc.env, timeout=sc.timeout or cfg.remote_timeout, name=name)
        except ToolError as e:
            table.add_row(name, "[red](not started)[/red]", str(e))
            continue
        try:
            for t in client.list_tools():
                table.add_row(name, f"{sc.tool_prefix}.{t.name}", t.description)
        except ToolError as e:
            table.add_row(name, "[red](no listing)[/red]", str(e))
        finally:
            client.close()
    console.print(table)


if __name__ == "__main__":
    app()
