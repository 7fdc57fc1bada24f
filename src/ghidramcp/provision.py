"""Resolve how to launch the bridge script and provision its environment.

When the dependency-aware runner is installed the script is handed to it
as-is. Otherwise a virtual environment is created once under the private
storage directory and the script's declared dependencies are installed into
it on every start.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from ghidramcp.errors import ConfigurationError, ProvisioningError
from ghidramcp.manifest import read_manifest
from ghidramcp.paths import CURRENT_PLATFORM, get_default_venv_dir, venv_pip_path, venv_python_path
from ghidramcp.probe import DEFAULT_RUNNER, PROBE_TIMEOUT_SECONDS, is_runner_available
from ghidramcp.process import run_exec_streaming

if TYPE_CHECKING:
    from collections.abc import Callable

    from ghidramcp.output import OutputChannel

logger = logging.getLogger(__name__)

REQUIREMENTS_FILENAME = "requirements.txt"


class LaunchStrategy(StrEnum):
    """How the bridge script is executed."""

    DIRECT_INTERPRETER = "direct-interpreter"
    DEPENDENCY_AWARE_RUNNER = "dependency-aware-runner"


@dataclass(frozen=True)
class LaunchTarget:
    """The script to run and the strategy used to run it."""

    script_path: Path
    strategy: LaunchStrategy = LaunchStrategy.DIRECT_INTERPRETER


@dataclass(frozen=True)
class ServerOptions:
    """Command-line options passed to the bridge server."""

    mcp_host: str = "127.0.0.1"
    mcp_port: int = 8081
    ghidra_server: str = "http://127.0.0.1:8080/"
    transport: str = "sse"

    def to_args(self) -> list[str]:
        return [
            "--transport",
            self.transport,
            "--mcp-host",
            self.mcp_host,
            "--mcp-port",
            str(self.mcp_port),
            "--ghidra-server",
            self.ghidra_server,
        ]


@dataclass(frozen=True)
class ProvisionedEnvironment:
    """A resolved launch command for one start request."""

    target: LaunchTarget
    command: str
    env_root: Path | None = None

    @property
    def uses_runner(self) -> bool:
        return self.target.strategy is LaunchStrategy.DEPENDENCY_AWARE_RUNNER

    def launch_args(self, options: ServerOptions) -> list[str]:
        """Arguments following the command, including the script path."""
        args = ["run"] if self.uses_runner else []
        args.append(str(self.target.script_path))
        args.extend(options.to_args())
        return args

    def command_line(self, options: ServerOptions) -> list[str]:
        return [self.command, *self.launch_args(options)]


class EnvironmentProvisioner:
    """Choose the launch strategy and prepare the fallback environment."""

    def __init__(
        self,
        sink: OutputChannel,
        *,
        runner: str = DEFAULT_RUNNER,
        base_interpreter: str | None = None,
        default_env_root: Path | None = None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        platform: str = CURRENT_PLATFORM,
    ) -> None:
        self._sink = sink
        self.runner = runner
        self.base_interpreter = base_interpreter or sys.executable
        self._default_env_root = default_env_root
        self.probe_timeout = probe_timeout
        self.platform = platform

    @property
    def default_env_root(self) -> Path:
        return self._default_env_root or get_default_venv_dir()

    async def provision(
        self,
        script_path: Path,
        env_root: str | Path | None = None,
    ) -> ProvisionedEnvironment:
        """Return the command that should launch *script_path*.

        Args:
            script_path: The bridge script. Must exist.
            env_root: Explicit environment root; blank or None selects the default.

        Raises:
            ConfigurationError: If the script does not exist.
            ProvisioningError: If the virtual environment cannot be created.
        """
        if not script_path.is_file():
            msg = f"Bridge script not found: {script_path}"
            raise ConfigurationError(msg)

        if await is_runner_available(self.runner, timeout=self.probe_timeout):
            self._sink.append_line(f"Using {self.runner} to run {script_path.name}")
            return ProvisionedEnvironment(
                target=LaunchTarget(script_path, LaunchStrategy.DEPENDENCY_AWARE_RUNNER),
                command=self.runner,
            )

        root = self._resolve_env_root(env_root)
        try:
            root.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot prepare virtual environment directory {root.parent}: {exc}"
            self._sink.append_line(msg)
            raise ProvisioningError(msg) from exc

        if not root.exists():
            await self._create_environment(root)

        for ok, message in await self._install_dependencies(root, script_path):
            if ok:
                logger.debug(message)
            else:
                logger.warning(message)

        return ProvisionedEnvironment(
            target=LaunchTarget(script_path, LaunchStrategy.DIRECT_INTERPRETER),
            command=str(venv_python_path(root, self.platform)),
            env_root=root,
        )

    def _resolve_env_root(self, env_root: str | Path | None) -> Path:
        if env_root is not None and str(env_root).strip():
            return Path(env_root).expanduser()
        return self.default_env_root

    def _stream_to_sink(self, label: str, stream: str) -> Callable[[str], None]:
        def forward(line: str) -> None:
            self._sink.append_line(f"[{label} {stream}] {line}")

        return forward

    async def _create_environment(self, root: Path) -> None:
        self._sink.append_line(f"Creating virtual environment at: {root}")
        try:
            returncode = await run_exec_streaming(
                self.base_interpreter,
                "-m",
                "venv",
                str(root),
                on_stdout=self._stream_to_sink("VENV CREATE", "STDOUT"),
                on_stderr=self._stream_to_sink("VENV CREATE", "STDERR"),
            )
        except OSError as exc:
            msg = f"Failed to create virtual environment: {exc}"
            raise ProvisioningError(msg) from exc

        if returncode != 0:
            msg = f"Failed to create virtual environment (exit code: {returncode})"
            raise ProvisioningError(msg, returncode=returncode)
        self._sink.append_line("Virtual environment created successfully")

    async def _install_dependencies(self, root: Path, script_path: Path) -> list[tuple[bool, str]]:
        outcomes: list[tuple[bool, str]] = []

        dependencies = read_manifest(script_path)
        if dependencies:
            self._sink.append_line(f"Installing dependencies: {', '.join(dependencies)}")
            outcomes.append(await self._run_install(root, *dependencies))

        requirements = script_path.parent / REQUIREMENTS_FILENAME
        if requirements.is_file():
            self._sink.append_line(f"Installing requirements from: {requirements}")
            outcomes.append(await self._run_install(root, "-r", str(requirements)))

        return outcomes

    async def _run_install(self, root: Path, *args: str) -> tuple[bool, str]:
        """Run the environment's installer; failures are reported, never raised."""
        pip = venv_pip_path(root, self.platform)
        try:
            returncode = await run_exec_streaming(
                str(pip),
                "install",
                *args,
                on_stdout=self._stream_to_sink("PIP", "STDOUT"),
                on_stderr=self._stream_to_sink("PIP", "STDERR"),
            )
        except OSError as exc:
            message = f"pip install error: {exc}"
            self._sink.append_line(message)
            return False, message

        if returncode != 0:
            message = f"pip install failed with exit code: {returncode}"
            self._sink.append_line(message)
            return False, message

        message = "Requirements installed successfully"
        self._sink.append_line(message)
        return True, message


__all__ = [
    "REQUIREMENTS_FILENAME",
    "EnvironmentProvisioner",
    "LaunchStrategy",
    "LaunchTarget",
    "ProvisionedEnvironment",
    "ServerOptions",
]
