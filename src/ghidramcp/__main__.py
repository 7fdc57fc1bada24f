"""CLI entry point for ghidramcp."""

from __future__ import annotations

# Python version check - must be before any imports that use 3.12+ syntax.
import sys

if sys.version_info < (3, 12):  # noqa: UP036
    print("Error: ghidramcp requires Python 3.12 or higher.")
    sys.exit(1)

import asyncio  # noqa: E402
import shlex  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import TYPE_CHECKING, Any  # noqa: E402

import click  # noqa: E402

from ghidramcp import __version__  # noqa: E402
from ghidramcp.config import GhidraMCPConfig  # noqa: E402
from ghidramcp.errors import GhidraMCPError  # noqa: E402
from ghidramcp.manifest import read_manifest  # noqa: E402
from ghidramcp.notify import ConsoleNotifier  # noqa: E402
from ghidramcp.output import OutputChannel, configure_logging  # noqa: E402
from ghidramcp.paths import (  # noqa: E402
    get_cache_dir,
    get_config_path,
    get_data_dir,
    get_default_venv_dir,
)
from ghidramcp.server import ServerController  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Callable


def _server_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the config file and per-run override options to a command."""
    options = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Path to config.toml (defaults to the user config dir)",
        ),
        click.option("--script", default=None, help="Bridge script path (overrides config)"),
        click.option("--venv", default=None, help="Fallback environment root (overrides config)"),
        click.option("--host", default=None, help="Host the MCP server binds to"),
        click.option("--port", type=int, default=None, help="Port the MCP server binds to"),
        click.option("--ghidra-server", default=None, help="URL of the Ghidra HTTP server"),
        click.option("-v", "--verbose", is_flag=True, help="Show debug logging"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(
    config_path: Path | None,
    *,
    script: str | None,
    venv: str | None,
    host: str | None,
    port: int | None,
    ghidra_server: str | None,
) -> GhidraMCPConfig:
    config = GhidraMCPConfig.load(config_path)
    overrides = {
        "bridge_script_path": script,
        "venv_path": venv,
        "mcp_host": host,
        "mcp_port": port,
        "ghidra_server": ghidra_server,
    }
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return config.model_copy(update={"server": config.server.model_copy(update=updates)})


def _build_controller(
    config_path: Path | None,
    *,
    verbose: bool,
    **overrides: Any,
) -> ServerController:
    configure_logging(verbose=verbose)
    try:
        config = _load_config(config_path, **overrides)
    except GhidraMCPError as exc:
        click.secho(str(exc), fg="red", err=True)
        sys.exit(2)
    sink = OutputChannel(echo=click.echo)
    return ServerController(config, sink, ConsoleNotifier())


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """Launch and supervise the Ghidra MCP bridge server."""
    if version:
        click.echo(f"ghidramcp {__version__}")
        ctx.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


async def _run_foreground(controller: ServerController) -> int:
    if not await controller.start():
        return 1
    try:
        returncode = await controller.supervisor.wait()
    except asyncio.CancelledError:
        await controller.shutdown()
        raise
    return returncode or 0


@cli.command()
@_server_options
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the captured server output here on exit",
)
def run(config_path: Path | None, verbose: bool, log_file: Path | None, **overrides: Any) -> None:
    """Start the server and stay attached until it exits (Ctrl+C stops it)."""
    controller = _build_controller(config_path, verbose=verbose, **overrides)
    try:
        returncode = asyncio.run(_run_foreground(controller))
    except KeyboardInterrupt:
        click.secho("Interrupted, server stopped.", fg="yellow")
        returncode = 130
    finally:
        if log_file is not None:
            count = controller.sink.export(log_file)
            click.echo(f"Wrote {count} output lines to {log_file}")
    sys.exit(returncode)


_CONSOLE_HELP = "Commands: start, stop, restart, status, clear, quit"


async def _console_loop(controller: ServerController) -> None:
    click.echo(_CONSOLE_HELP)
    try:
        while True:
            try:
                raw = await asyncio.to_thread(input, "ghidramcp> ")
            except EOFError:
                break
            command = raw.strip().lower()
            if command in {"quit", "exit"}:
                break
            if command == "start":
                await controller.start()
            elif command == "stop":
                controller.stop()
            elif command == "restart":
                if controller.is_running:
                    controller.stop()
                await controller.start()
            elif command == "status":
                if controller.is_running:
                    click.echo(f"Running (pid {controller.supervisor.pid})")
                else:
                    last = controller.supervisor.last_exit_code
                    suffix = f", last exit code {last}" if last is not None else ""
                    click.echo(f"Not running{suffix}")
            elif command == "clear":
                controller.sink.clear()
            elif command:
                click.echo(_CONSOLE_HELP)
    finally:
        await controller.shutdown()


@cli.command()
@_server_options
def console(config_path: Path | None, verbose: bool, **overrides: Any) -> None:
    """Interactive start/stop console for the server."""
    controller = _build_controller(config_path, verbose=verbose, **overrides)
    try:
        asyncio.run(_console_loop(controller))
    except KeyboardInterrupt:
        click.echo()


@cli.command()
@_server_options
def provision(config_path: Path | None, verbose: bool, **overrides: Any) -> None:
    """Prepare the launch environment and print the resulting command line."""
    controller = _build_controller(config_path, verbose=verbose, **overrides)
    config = controller.config

    async def _provision() -> list[str]:
        script_path = config.resolve_script_path()
        provisioned = await controller.provisioner.provision(
            script_path, config.resolve_venv_path()
        )
        return provisioned.command_line(config.server_options())

    try:
        command_line = asyncio.run(_provision())
    except GhidraMCPError as exc:
        click.secho(f"Provisioning failed: {exc}", fg="red", err=True)
        sys.exit(1)
    click.echo(shlex.join(command_line))


@cli.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def deps(script: Path) -> None:
    """List the dependencies declared in SCRIPT's inline manifest."""
    dependencies = read_manifest(script)
    if not dependencies:
        click.secho("No dependencies declared.", fg="yellow")
        return
    for dependency in dependencies:
        click.echo(dependency)


@cli.command()
def paths() -> None:
    """Show the directories ghidramcp uses."""
    click.echo(f"  Config:   {get_config_path()}")
    click.echo(f"  Data:     {get_data_dir()}")
    click.echo(f"  Cache:    {get_cache_dir()}")
    click.echo(f"  Venv:     {get_default_venv_dir()}")


@cli.command(name="init-config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write config.toml (defaults to the user config dir)",
)
@click.option("--script", default=None, help="Bridge script path to record")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init_config(config_path: Path | None, script: str | None, force: bool) -> None:
    """Write a config file with default settings."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        click.secho(f"Config already exists: {path} (use --force to overwrite)", fg="yellow")
        sys.exit(1)

    config = GhidraMCPConfig()
    if script is not None:
        config.server.bridge_script_path = script
    asyncio.run(config.save(path))
    click.secho(f"Wrote {path}", fg="green")


if __name__ == "__main__":
    cli()
